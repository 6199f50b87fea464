"""Retry com backoff fixo como operação reutilizável."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

from olx_relay.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_BACKOFF_SCHEDULE: tuple[float, ...] = (0.25, 1.0, 4.0)


def backoff_delay(schedule: Sequence[float], attempt: int) -> float:
    """Atraso após a tentativa `attempt` (1-based); repete o último valor."""
    if not schedule:
        return 0.0
    return float(schedule[min(attempt - 1, len(schedule) - 1)])


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    is_retryable: Callable[[Exception], bool],
    backoff_schedule: Sequence[float] = DEFAULT_BACKOFF_SCHEDULE,
    max_attempts: int = 3,
    sleep: Callable[[float], Awaitable[None]] | None = None,
    label: str = "operation",
) -> T:
    """Executa `operation` até `max_attempts` vezes.

    Args:
        operation: Fábrica da coroutine (chamada a cada tentativa)
        is_retryable: Predicado sobre a exceção; False propaga na hora
        backoff_schedule: Atrasos em segundos entre tentativas, em ordem
        max_attempts: Total de tentativas, incluindo a primeira
        sleep: Injetável para testes (padrão asyncio.sleep)
        label: Nome curto para logs (sem PII)

    Raises:
        A última exceção de `operation` quando não retentável ou esgotada.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except Exception as exc:
            if not is_retryable(exc):
                raise
            if attempt >= max_attempts:
                logger.error(
                    "Esgotou tentativas de retry",
                    extra={"operation": label, "total_attempts": attempt},
                )
                raise
            delay = backoff_delay(backoff_schedule, attempt)
            logger.info(
                "Aguardando backoff antes de retry",
                extra={
                    "operation": label,
                    "backoff_seconds": delay,
                    "next_attempt": attempt + 1,
                    "error_type": type(exc).__name__,
                },
            )
            await (sleep or asyncio.sleep)(delay)
