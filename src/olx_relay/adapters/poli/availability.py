"""Consulta de disponibilidade (online) dos operadores na Poli.

Sinal apenas consultivo: qualquer falha vira "sem dados" e a atribuição
segue com o roster completo.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from olx_relay.adapters.poli.extractors import parse_available_operators
from olx_relay.infra.http import HttpClient, HttpError, safe_json
from olx_relay.observability.logging import get_logger, log_fallback

if TYPE_CHECKING:
    from olx_relay.config.settings import Settings

logger: logging.Logger = get_logger(__name__)

_COMPONENT = "operator_availability"


class OperatorAvailabilityClient:
    """GET no endpoint de usuários da revenda; uma tentativa, timeout curto."""

    def __init__(
        self,
        http: HttpClient,
        *,
        url: str,
        token: str,
        timeout_seconds: float = 5.0,
    ) -> None:
        self._http = http
        self._url = url
        self._token = token
        self._timeout = timeout_seconds

    async def fetch(self) -> frozenset[str] | None:
        """Ids disponíveis agora, ou None quando o dado não pôde ser obtido."""
        start = time.perf_counter()
        try:
            response = await self._http.get(
                self._url,
                retry=False,
                timeout=self._timeout,
                headers={"Authorization": f"Bearer {self._token}"},
            )
        except HttpError as exc:
            log_fallback(
                logger,
                _COMPONENT,
                reason=f"http_{exc.status_code}" if exc.status_code else "network",
                elapsed_ms=round((time.perf_counter() - start) * 1000, 2),
            )
            return None

        available = parse_available_operators(safe_json(response))
        if available is None:
            log_fallback(logger, _COMPONENT, reason="unexpected_shape")
            return None
        logger.debug("operator_availability_fetched", extra={"available": len(available)})
        return available


def create_availability_client(
    settings: Settings, http: HttpClient
) -> OperatorAvailabilityClient | None:
    """None quando a consulta está desligada (AVAILABILITY_ENABLED=false)."""
    if not settings.availability_enabled or not settings.availability_url:
        return None
    return OperatorAvailabilityClient(
        http,
        url=settings.availability_url,
        token=settings.effective_availability_token or "",
        timeout_seconds=settings.availability_timeout_seconds,
    )
