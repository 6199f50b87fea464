"""Cliente HTTP centralizado com retry, timeout e logging.

Usado para todas as chamadas à Poli Digital:
- Timeout fixo por request (padrão 10s)
- Retry em 5xx e falhas de rede (timeout, conexão, DNS, conexão abortada)
- Backoff com agenda fixa de atrasos (padrão 0.25s, 1s, 4s)
- 4xx falha na hora, com o corpo preservado para o adapter inspecionar

Nunca logar payloads (nome/telefone do lead) nem headers de autorização.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx

from olx_relay.infra.retry import DEFAULT_BACKOFF_SCHEDULE, with_retry
from olx_relay.observability.logging import get_logger

if TYPE_CHECKING:
    from olx_relay.config.settings import Settings

logger: logging.Logger = get_logger(__name__)

_TOKEN_QUERY_PATTERN = re.compile(r"(access_token|token)=[^&]+")

# Falhas de transporte tratadas como transitórias
_TRANSIENT_EXCEPTIONS: tuple[type[Exception], ...] = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
)


def _sanitize_url(url: str) -> str:
    """Remove tokens de query string para logging seguro."""
    return _TOKEN_QUERY_PATTERN.sub(r"\1=***", url)


@dataclass
class HttpClientConfig:
    """Configuração do cliente HTTP."""

    timeout_seconds: float = 10.0
    max_attempts: int = 3
    backoff_schedule: tuple[float, ...] = DEFAULT_BACKOFF_SCHEDULE
    default_headers: dict[str, str] = field(default_factory=dict)
    verify_ssl: bool = True
    transport: httpx.AsyncBaseTransport | None = None  # MockTransport em testes


class HttpError(Exception):
    """Erro de requisição HTTP sem expor informações sensíveis.

    `body` guarda o JSON da resposta de erro (quando houver) para que o
    adapter recupere dados como o id de um contato já existente.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        is_retryable: bool = False,
        body: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.is_retryable = is_retryable
        self.body = body


def _is_retryable_status(status_code: int) -> bool:
    """Apenas 5xx é retentável; 4xx são definitivos."""
    return 500 <= status_code < 600


def safe_json(response: httpx.Response) -> Any:
    """Corpo JSON da resposta, ou None se vazio/inválido."""
    if not response.content:
        return None
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None


def _log_request_success(method: str, url: str, status_code: int) -> None:
    logger.debug(
        "Requisição HTTP bem-sucedida",
        extra={"method": method, "url": _sanitize_url(url), "status_code": status_code},
    )


def _log_http_failure(method: str, url: str, status_code: int, retryable: bool) -> None:
    logger.warning(
        "Requisição HTTP falhou",
        extra={
            "method": method,
            "url": _sanitize_url(url),
            "status_code": status_code,
            "retryable": retryable,
        },
    )


def _log_transient_error(method: str, url: str, error_type: str) -> None:
    logger.warning(
        "Erro transitório em requisição HTTP",
        extra={"method": method, "url": _sanitize_url(url), "error_type": error_type},
    )


def _is_retryable_error(exc: Exception) -> bool:
    return isinstance(exc, HttpError) and exc.is_retryable


class HttpClient:
    """Cliente HTTP assíncrono com retry e logging.

    Uso típico:
        async with HttpClient(config) as client:
            response = await client.post(url, data=form)
    """

    def __init__(self, config: HttpClientConfig | None = None) -> None:
        self._config = config or HttpClientConfig()
        self._client: httpx.AsyncClient | None = None

    @property
    def config(self) -> HttpClientConfig:
        return self._config

    async def _get_client(self) -> httpx.AsyncClient:
        """Retorna cliente httpx (lazy loading)."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._config.timeout_seconds),
                headers=self._config.default_headers,
                verify=self._config.verify_ssl,
                transport=self._config.transport,
            )
        return self._client

    async def close(self) -> None:
        """Fecha o cliente e libera conexões."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> HttpClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def _send_once(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Uma tentativa: devolve a resposta 2xx ou levanta HttpError."""
        client = await self._get_client()
        try:
            response = await client.request(method, url, **kwargs)
        except _TRANSIENT_EXCEPTIONS as exc:
            _log_transient_error(method, url, type(exc).__name__)
            raise HttpError(f"Erro de rede: {type(exc).__name__}", is_retryable=True) from exc
        except httpx.HTTPError as exc:
            logger.error(
                "Erro inesperado em requisição HTTP",
                extra={
                    "method": method,
                    "url": _sanitize_url(url),
                    "error_type": type(exc).__name__,
                },
            )
            raise HttpError(f"Erro inesperado: {type(exc).__name__}") from exc

        if response.is_success:
            _log_request_success(method, url, response.status_code)
            return response

        retryable = _is_retryable_status(response.status_code)
        _log_http_failure(method, url, response.status_code, retryable)
        raise HttpError(
            f"HTTP {response.status_code}",
            status_code=response.status_code,
            is_retryable=retryable,
            body=safe_json(response),
        )

    async def request(
        self,
        method: str,
        url: str,
        *,
        retry: bool = True,
        **kwargs: Any,
    ) -> httpx.Response:
        """Executa a requisição com a política de retry configurada.

        Args:
            method: Método HTTP
            url: URL absoluta
            retry: False faz uma única tentativa (consultas apenas informativas)
            **kwargs: Repassados ao httpx (json, data, headers, timeout...)

        Raises:
            HttpError: 4xx imediato, ou 5xx/rede após esgotar as tentativas
        """
        cfg = self._config
        return await with_retry(
            lambda: self._send_once(method, url, **kwargs),
            is_retryable=_is_retryable_error,
            backoff_schedule=cfg.backoff_schedule,
            max_attempts=cfg.max_attempts if retry else 1,
            label=f"{method} {_sanitize_url(url)}",
        )

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def put(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PUT", url, **kwargs)


def create_http_client(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> HttpClient:
    """Factory do cliente HTTP a partir de Settings."""
    config = HttpClientConfig(
        timeout_seconds=float(settings.request_timeout_seconds),
        max_attempts=settings.max_attempts,
        backoff_schedule=settings.backoff_schedule or DEFAULT_BACKOFF_SCHEDULE,
        default_headers={
            "User-Agent": f"{settings.service_name}/{settings.version}",
            "Accept": "application/json",
        },
        transport=transport,
    )

    logger.info(
        "Cliente HTTP criado",
        extra={
            "timeout_seconds": config.timeout_seconds,
            "max_attempts": config.max_attempts,
        },
    )
    return HttpClient(config)
