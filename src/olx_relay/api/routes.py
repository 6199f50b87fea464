"""Rotas HTTP: healthcheck e webhook de leads da OLX."""

from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse

from olx_relay.api.dependencies import get_pipeline, get_settings
from olx_relay.application.pipeline import LeadPipeline
from olx_relay.config.settings import Settings
from olx_relay.domain.enums import LeadOutcome
from olx_relay.domain.models import PipelineResult
from olx_relay.observability.logging import get_logger
from olx_relay.observability.middleware import get_correlation_id

logger = get_logger(__name__)

router = APIRouter()


@router.get("/", include_in_schema=False)
def root_health() -> Response:
    """Liveness da plataforma de hospedagem (200 sem corpo)."""
    return Response(status_code=status.HTTP_200_OK)


@router.get("/health")
def health(settings: Settings = Depends(get_settings)) -> dict[str, str]:
    """Healthcheck simples para Cloud Run."""
    return {"status": "ok", "service": settings.service_name, "version": settings.version}


def _response_body(result: PipelineResult) -> dict[str, Any]:
    body: dict[str, Any] = {
        "ok": result.ok,
        "status": result.outcome.value,
        "correlation_id": get_correlation_id(),
    }
    if result.detail:
        body["detail"] = result.detail
    if result.outcome == LeadOutcome.INVALID:
        body["missing"] = result.extra.get("missing", [])
    if result.contact_id and result.ok:
        body["contact_id"] = result.contact_id
    return body


async def _read_payload(request: Request) -> Any:
    """JSON do corpo; corpo vazio vale como `{}` (ping da OLX)."""
    raw_body = await request.body()
    if not raw_body.strip():
        return {}
    return json.loads(raw_body)


@router.post("/")
@router.post("/webhooks/olx")
async def olx_webhook(
    request: Request,
    pipeline: LeadPipeline = Depends(get_pipeline),
) -> JSONResponse:
    """Recebe o lead da OLX e executa o pipeline de forma síncrona.

    A OLX reenvia em caso de 5xx; a idempotência do pipeline absorve os
    reenvios.
    """
    try:
        payload = await _read_payload(request)
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.warning("webhook_invalid_json")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "ok": False,
                "status": LeadOutcome.INVALID.value,
                "detail": "invalid_json",
                "correlation_id": get_correlation_id(),
            },
        )

    result = await pipeline.process(payload)
    return JSONResponse(status_code=result.http_status, content=_response_body(result))
