"""Fábrica da aplicação FastAPI."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx
import redis
from fastapi import FastAPI

from olx_relay.api.routes import router
from olx_relay.application.factory import build_lead_pipeline
from olx_relay.config.settings import Settings, get_settings
from olx_relay.infra.http import create_http_client
from olx_relay.infra.lead_store import create_lead_store
from olx_relay.infra.purge import PurgeWorker
from olx_relay.infra.rotation_state import create_rotation_state
from olx_relay.observability.logging import configure_logging, get_logger
from olx_relay.observability.middleware import CorrelationIdMiddleware

logger = get_logger(__name__)


def _create_redis_client(redis_url: str | None) -> Any:
    """Cria cliente Redis se URL disponível (conexão é lazy no redis-py)."""
    if not redis_url:
        return None
    return redis.from_url(redis_url, decode_responses=True)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Sobe a purga periódica do lead store e fecha o cliente HTTP no fim."""
    purge_worker: PurgeWorker = app.state.purge_worker
    purge_worker.start()
    logger.info("relay_started", extra={"store_backend": app.state.settings.store_backend})
    try:
        yield
    finally:
        await purge_worker.stop()
        await app.state.http_client.close()
        logger.info("relay_stopped")


def create_app(
    settings: Settings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    redis_client: Any | None = None,
) -> FastAPI:
    """Cria a aplicação FastAPI.

    Args:
        settings: Configuração explícita (padrão: get_settings())
        transport: Transport httpx alternativo (MockTransport em testes)
        redis_client: Cliente Redis pronto; se ausente, criado via REDIS_URL

    Raises:
        ValueError: configuração de boot inválida (backend, HTTP, enums)
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.service_name, settings.log_format)

    validation_errors: list[str] = []
    validation_errors.extend(settings.validate_store_backend())
    validation_errors.extend(settings.validate_relay_options())
    validation_errors.extend(settings.validate_http_config())

    if validation_errors:
        error_msg = "; ".join(validation_errors)
        raise ValueError(f"Configuração inválida: {error_msg}")

    # Falta de token/roster/templates não derruba o boot: o webhook responde 500
    relay_errors = settings.validate_relay_config()
    if relay_errors:
        logger.warning("relay_configuration_incomplete", extra={"errors": relay_errors})

    app = FastAPI(title=settings.service_name, version=settings.version, lifespan=lifespan)
    app.add_middleware(CorrelationIdMiddleware, header_name=settings.correlation_id_header)
    app.include_router(router)

    if redis_client is None and settings.store_backend.lower() == "redis":
        redis_client = _create_redis_client(settings.redis_url)

    http_client = create_http_client(settings, transport=transport)
    lead_store = create_lead_store(settings, redis_client=redis_client)
    rotation_state = create_rotation_state(settings, redis_client=redis_client)

    app.state.settings = settings
    app.state.http_client = http_client
    app.state.lead_store = lead_store
    app.state.rotation_state = rotation_state
    app.state.purge_worker = PurgeWorker(lead_store, settings.purge_interval_seconds)
    app.state.pipeline = build_lead_pipeline(
        http=http_client,
        lead_store=lead_store,
        rotation_state=rotation_state,
        settings=settings,
    )

    return app


app = create_app()
