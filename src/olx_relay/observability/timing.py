"""Medição de latência por etapa do pipeline de leads."""

from __future__ import annotations

import contextlib
import time
from collections.abc import Generator
from typing import Any

from olx_relay.observability.logging import get_logger

logger = get_logger(__name__)


@contextlib.contextmanager
def timed(component: str, **fields: Any) -> Generator[None, None, None]:
    """Loga `component_latency` ao fim do bloco, mesmo em exceção.

    Uso:
        with timed("contact_resolving", lead_key=key):
            ...

    Campos extras são anexados ao record (nunca passar PII).
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "component_latency",
            extra={
                "component": component,
                "elapsed_ms": round(elapsed_ms, 2),
                **fields,
            },
        )
