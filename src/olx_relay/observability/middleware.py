"""Middleware de correlação por request."""

from __future__ import annotations

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

_correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")

DEFAULT_CORRELATION_HEADER = "X-Correlation-ID"


def get_correlation_id() -> str:
    """Retorna o correlation_id corrente (ou vazio fora de request)."""

    return _correlation_id.get()


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Propaga o correlation_id recebido ou gera um novo por webhook."""

    def __init__(self, app: ASGIApp, header_name: str = DEFAULT_CORRELATION_HEADER) -> None:
        super().__init__(app)
        self._header_name = header_name

    async def dispatch(self, request: Request, call_next) -> Response:  # type: ignore[override]
        correlation_id = request.headers.get(self._header_name) or uuid.uuid4().hex
        token = _correlation_id.set(correlation_id)
        try:
            response = await call_next(request)
        finally:
            _correlation_id.reset(token)

        response.headers[self._header_name] = correlation_id
        return response
