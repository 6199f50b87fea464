"""Testes da varredura periódica do lead store."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import pytest

from olx_relay.infra.lead_store import InMemoryLeadStore
from olx_relay.infra.purge import PurgeWorker


def test_sweep_returns_removed_count() -> None:
    now = {"t": 0.0}
    store = InMemoryLeadStore(lead_ttl_seconds=10, cooldown_seconds=10, clock=lambda: now["t"])
    store.try_begin("a")
    store.record_send("901:tpl")
    now["t"] = 11.0

    assert PurgeWorker(store).sweep() == 2
    assert PurgeWorker(store).sweep() == 0


def test_sweep_swallows_store_errors() -> None:
    store = MagicMock()
    store.purge_expired.side_effect = ConnectionError("down")
    assert PurgeWorker(store).sweep() == 0


@pytest.mark.asyncio
async def test_start_and_stop() -> None:
    store = MagicMock()
    store.purge_expired.return_value = 0
    worker = PurgeWorker(store, interval_seconds=0.01)

    worker.start()
    assert worker.running is True
    await asyncio.sleep(0.05)
    await worker.stop()

    assert worker.running is False
    assert store.purge_expired.call_count >= 1


@pytest.mark.asyncio
async def test_stop_without_start() -> None:
    await PurgeWorker(MagicMock()).stop()
