"""Stores de idempotência de leads e cooldown de templates.

- InMemoryLeadStore: processo único (dev/testes), purga periódica
- RedisLeadStore: multi-instância, SET NX + TTL nativo, fail-closed
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from olx_relay.domain.enums import BeginStatus
from olx_relay.domain.errors import StoreError
from olx_relay.domain.protocols.lead_store import LeadStore
from olx_relay.observability.logging import get_logger

if TYPE_CHECKING:
    from olx_relay.config.settings import Settings

logger: logging.Logger = get_logger(__name__)

_INFLIGHT = "inflight"
_DONE = "done"


class InMemoryLeadStore(LeadStore):
    """Store em memória protegido por lock.

    ⚠️ Não compartilha estado entre instâncias; proibido em staging/prod.
    """

    def __init__(
        self,
        lead_ttl_seconds: float = 600,
        cooldown_seconds: float = 1800,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._lead_ttl = lead_ttl_seconds
        self._cooldown = cooldown_seconds
        self._clock = clock or time.time
        self._lock = threading.Lock()
        # {chave: (timestamp, status)}
        self._leads: dict[str, tuple[float, str]] = {}
        # {contato:template: timestamp}
        self._sends: dict[str, float] = {}

    def try_begin(self, key: str) -> BeginStatus:
        now = self._clock()
        with self._lock:
            record = self._leads.get(key)
            if record is not None and now - record[0] < self._lead_ttl:
                if record[1] == _DONE:
                    return BeginStatus.ALREADY_DONE
                return BeginStatus.ALREADY_INFLIGHT
            self._leads[key] = (now, _INFLIGHT)
        return BeginStatus.ACCEPTED

    def mark_done(self, key: str) -> None:
        with self._lock:
            self._leads[key] = (self._clock(), _DONE)

    def release(self, key: str) -> bool:
        with self._lock:
            return self._leads.pop(key, None) is not None

    def is_within_cooldown(self, key: str, window_seconds: float | None = None) -> bool:
        window = self._cooldown if window_seconds is None else window_seconds
        with self._lock:
            sent_at = self._sends.get(key)
        return sent_at is not None and self._clock() - sent_at < window

    def record_send(self, key: str) -> None:
        with self._lock:
            self._sends[key] = self._clock()

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired_leads = [k for k, (ts, _) in self._leads.items() if now - ts >= self._lead_ttl]
            expired_sends = [k for k, ts in self._sends.items() if now - ts >= self._cooldown]
            for key in expired_leads:
                del self._leads[key]
            for key in expired_sends:
                del self._sends[key]
        return len(expired_leads) + len(expired_sends)


class RedisLeadStore(LeadStore):
    """Store Redis para produção.

    Estrutura:
        {prefix}lead:{chave}      → "inflight" | "done"   (EX lead_ttl)
        {prefix}cooldown:{chave}  → epoch do envio         (EX cooldown)

    Falhas do Redis levantam StoreError: sem idempotência garantida o lead
    não é processado.
    """

    def __init__(
        self,
        redis_client: Any,
        lead_ttl_seconds: int = 600,
        cooldown_seconds: int = 1800,
        key_prefix: str = "olx_relay:",
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._redis = redis_client
        self._lead_ttl = int(lead_ttl_seconds)
        self._cooldown = int(cooldown_seconds)
        self._prefix = key_prefix
        self._clock = clock or time.time

    def _lead_key(self, key: str) -> str:
        return f"{self._prefix}lead:{key}"

    def _cooldown_key(self, key: str) -> str:
        return f"{self._prefix}cooldown:{key}"

    @staticmethod
    def _decode(value: Any) -> str | None:
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def _fail(self, operation: str, exc: Exception) -> StoreError:
        logger.error(
            "Redis lead store failed (fail-closed)",
            extra={"operation": operation, "error_type": type(exc).__name__},
        )
        return StoreError(f"Redis indisponível em {operation}: {type(exc).__name__}")

    def try_begin(self, key: str) -> BeginStatus:
        redis_key = self._lead_key(key)
        try:
            # Duas tentativas cobrem a chave expirando entre o SET NX e o GET
            for _ in range(2):
                if self._redis.set(redis_key, _INFLIGHT, nx=True, ex=self._lead_ttl):
                    return BeginStatus.ACCEPTED
                status = self._decode(self._redis.get(redis_key))
                if status == _DONE:
                    return BeginStatus.ALREADY_DONE
                if status == _INFLIGHT:
                    return BeginStatus.ALREADY_INFLIGHT
        except Exception as e:
            raise self._fail("try_begin", e) from e
        return BeginStatus.ALREADY_INFLIGHT

    def mark_done(self, key: str) -> None:
        try:
            self._redis.set(self._lead_key(key), _DONE, ex=self._lead_ttl)
        except Exception as e:
            raise self._fail("mark_done", e) from e

    def release(self, key: str) -> bool:
        try:
            return bool(self._redis.delete(self._lead_key(key)))
        except Exception as e:
            raise self._fail("release", e) from e

    def is_within_cooldown(self, key: str, window_seconds: float | None = None) -> bool:
        window = self._cooldown if window_seconds is None else window_seconds
        try:
            raw = self._decode(self._redis.get(self._cooldown_key(key)))
        except Exception as e:
            raise self._fail("is_within_cooldown", e) from e
        if raw is None:
            return False
        return self._clock() - float(raw) < window

    def record_send(self, key: str) -> None:
        try:
            self._redis.set(self._cooldown_key(key), str(self._clock()), ex=self._cooldown)
        except Exception as e:
            raise self._fail("record_send", e) from e

    def purge_expired(self) -> int:
        # TTL nativo do Redis
        return 0


def create_lead_store(settings: Settings, redis_client: Any | None = None) -> LeadStore:
    """Factory do store conforme settings.store_backend (memory | redis)."""
    backend = settings.store_backend.lower()

    if backend == "memory":
        logger.info(
            "Usando InMemoryLeadStore (apenas dev/testes)",
            extra={
                "lead_ttl_seconds": settings.lead_dedupe_ttl_seconds,
                "cooldown_seconds": settings.send_cooldown_seconds,
            },
        )
        return InMemoryLeadStore(
            lead_ttl_seconds=settings.lead_dedupe_ttl_seconds,
            cooldown_seconds=settings.send_cooldown_seconds,
        )

    if backend == "redis":
        if redis_client is None:
            raise ValueError("STORE_BACKEND=redis requer cliente Redis (REDIS_URL)")
        logger.info(
            "Usando RedisLeadStore",
            extra={
                "lead_ttl_seconds": settings.lead_dedupe_ttl_seconds,
                "cooldown_seconds": settings.send_cooldown_seconds,
            },
        )
        return RedisLeadStore(
            redis_client,
            lead_ttl_seconds=settings.lead_dedupe_ttl_seconds,
            cooldown_seconds=settings.send_cooldown_seconds,
        )

    raise ValueError(f"Backend de store não reconhecido: {backend}")
