"""Configuração de logging estruturado (JSON) do relay."""

from __future__ import annotations

import logging

from pythonjsonlogger.json import JsonFormatter

from olx_relay.observability.middleware import get_correlation_id

_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(correlation_id)s] %(message)s"


class CorrelationIdFilter(logging.Filter):
    """Anexa correlation_id e nome do serviço a cada record.

    Nunca incluir payload bruto do lead, telefone completo ou tokens no `extra`.
    """

    def __init__(self, service_name: str) -> None:
        super().__init__()
        self._service_name = service_name

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        explicit = getattr(record, "correlation_id", None)
        record.correlation_id = explicit or get_correlation_id()
        record.service = self._service_name
        return True


def _build_formatter(log_format: str) -> logging.Formatter:
    if log_format == "text":
        return logging.Formatter(_TEXT_FORMAT)
    return JsonFormatter(
        "%(asctime)s %(levelname)s %(name)s %(message)s %(correlation_id)s %(service)s",
        rename_fields={"levelname": "level", "name": "logger"},
    )


def configure_logging(level: str, service_name: str, log_format: str = "json") -> None:
    """Instala um único handler no root logger (json | text)."""

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(_build_formatter(log_format.lower()))
    handler.addFilter(CorrelationIdFilter(service_name))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]

    # httpx loga a URL completa em INFO; mantemos só warnings
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Retorna logger simples; o filtro injeta service/correlation_id."""

    return logging.getLogger(name)


def log_fallback(
    logger: logging.Logger,
    component: str,
    reason: str | None = None,
    elapsed_ms: float | None = None,
) -> None:
    """Registra de forma observável que um componente caiu no fallback.

    Args:
        logger: Logger do módulo chamador
        component: Nome do componente (ex: "operator_availability")
        reason: Motivo curto, sem PII (ex: "timeout", "invalid_json")
        elapsed_ms: Tempo decorrido até o fallback, quando medido

    Exemplo:
        log_fallback(logger, "operator_availability", reason="ConnectError")
    """
    extra: dict[str, object] = {
        "fallback_used": True,
        "component": component,
    }
    if reason:
        extra["reason"] = reason
    if elapsed_ms is not None:
        extra["elapsed_ms"] = elapsed_ms

    logger.warning(f"Fallback applied for {component}", extra=extra)
