"""Estado compartilhado do rodízio de operadores (memória | Redis)."""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from olx_relay.domain.errors import StoreError
from olx_relay.domain.protocols.rotation_state import RotationState
from olx_relay.observability.logging import get_logger

if TYPE_CHECKING:
    from olx_relay.config.settings import Settings

logger: logging.Logger = get_logger(__name__)


class InMemoryRotationState(RotationState):
    """Cursores e contadores em memória, protegidos por lock."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cursors: dict[str, int] = defaultdict(int)
        self._counts: dict[str, dict[str, int]] = defaultdict(dict)

    def next_cursor(self, queue: str) -> int:
        with self._lock:
            current = self._cursors[queue]
            self._cursors[queue] = current + 1
        return current

    def counts(self, scope: str, operator_ids: Iterable[str]) -> dict[str, int]:
        with self._lock:
            scoped = dict(self._counts.get(scope, {}))
        return {operator_id: scoped.get(operator_id, 0) for operator_id in operator_ids}

    def increment(self, scope: str, operator_id: str) -> int:
        with self._lock:
            scoped = self._counts[scope]
            scoped[operator_id] = scoped.get(operator_id, 0) + 1
            return scoped[operator_id]


class RedisRotationState(RotationState):
    """Rodízio distribuído.

    Estrutura:
        {prefix}cursor:{fila}   → INCR
        {prefix}fair:{escopo}   → HASH operador → total (HINCRBY, EX 48h)
    """

    def __init__(
        self,
        redis_client: Any,
        key_prefix: str = "olx_relay:",
        counter_ttl_seconds: int = 172800,
    ) -> None:
        self._redis = redis_client
        self._prefix = key_prefix
        self._counter_ttl = int(counter_ttl_seconds)

    def _fail(self, operation: str, exc: Exception) -> StoreError:
        logger.error(
            "Redis rotation state failed",
            extra={"operation": operation, "error_type": type(exc).__name__},
        )
        return StoreError(f"Redis indisponível em {operation}: {type(exc).__name__}")

    def next_cursor(self, queue: str) -> int:
        try:
            return int(self._redis.incr(f"{self._prefix}cursor:{queue}")) - 1
        except Exception as e:
            raise self._fail("next_cursor", e) from e

    def counts(self, scope: str, operator_ids: Iterable[str]) -> dict[str, int]:
        ids = list(operator_ids)
        if not ids:
            return {}
        try:
            values = self._redis.hmget(f"{self._prefix}fair:{scope}", ids)
        except Exception as e:
            raise self._fail("counts", e) from e
        return {operator_id: int(value or 0) for operator_id, value in zip(ids, values)}

    def increment(self, scope: str, operator_id: str) -> int:
        key = f"{self._prefix}fair:{scope}"
        try:
            total = int(self._redis.hincrby(key, operator_id, 1))
            if total == 1:
                # Primeira atribuição do escopo: o hash expira sozinho
                self._redis.expire(key, self._counter_ttl)
            return total
        except Exception as e:
            raise self._fail("increment", e) from e


def create_rotation_state(settings: Settings, redis_client: Any | None = None) -> RotationState:
    """Factory do estado de rodízio; segue o mesmo backend do lead store."""
    backend = settings.store_backend.lower()
    if backend == "memory":
        return InMemoryRotationState()
    if backend == "redis":
        if redis_client is None:
            raise ValueError("STORE_BACKEND=redis requer cliente Redis (REDIS_URL)")
        return RedisRotationState(
            redis_client,
            counter_ttl_seconds=settings.fair_share_ttl_seconds,
        )
    raise ValueError(f"Backend de rodízio não reconhecido: {backend}")
