"""Varredura periódica dos registros vencidos do lead store."""

from __future__ import annotations

import asyncio
import contextlib
import logging

from olx_relay.domain.protocols.lead_store import LeadStore
from olx_relay.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)


class PurgeWorker:
    """Task asyncio que chama `store.purge_expired()` a cada intervalo.

    Uso típico (lifespan do FastAPI):
        worker = PurgeWorker(store, interval_seconds=60)
        worker.start()
        ...
        await worker.stop()
    """

    def __init__(self, store: LeadStore, interval_seconds: float = 60.0) -> None:
        self._store = store
        self._interval = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def sweep(self) -> int:
        """Executa uma varredura; falhas são logadas e não derrubam o loop."""
        try:
            removed = self._store.purge_expired()
        except Exception as exc:  # noqa: BLE001
            logger.error("lead_store_purge_failed", extra={"error": type(exc).__name__})
            return 0
        if removed:
            logger.debug("lead_store_purged", extra={"removed": removed})
        return removed

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            self.sweep()

    def start(self) -> None:
        if not self.running:
            self._task = asyncio.create_task(self._run(), name="lead-store-purge")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
