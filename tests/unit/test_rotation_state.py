"""Testes do estado de rodízio (cursores e contadores fair-share)."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from olx_relay.config.settings import Settings
from olx_relay.domain.errors import StoreError
from olx_relay.infra.rotation_state import (
    InMemoryRotationState,
    RedisRotationState,
    create_rotation_state,
)


class TestInMemoryRotationState:
    def test_cursor_is_monotonic_per_queue(self) -> None:
        state = InMemoryRotationState()
        assert [state.next_cursor("geral") for _ in range(3)] == [0, 1, 2]
        assert state.next_cursor("sorocaba") == 0

    def test_counts_default_to_zero(self) -> None:
        state = InMemoryRotationState()
        state.increment("123:2026-03-04", "10")
        state.increment("123:2026-03-04", "10")
        assert state.counts("123:2026-03-04", ["10", "20"]) == {"10": 2, "20": 0}

    def test_scopes_are_independent(self) -> None:
        state = InMemoryRotationState()
        state.increment("123:2026-03-04", "10")
        assert state.counts("123:2026-03-05", ["10"]) == {"10": 0}


class TestRedisRotationState:
    def test_cursor_uses_incr(self) -> None:
        redis_client = MagicMock()
        redis_client.incr.return_value = 1
        state = RedisRotationState(redis_client)

        assert state.next_cursor("geral") == 0
        redis_client.incr.assert_called_once_with("olx_relay:cursor:geral")

    def test_counts_use_hmget(self) -> None:
        redis_client = MagicMock()
        redis_client.hmget.return_value = ["3", None]
        state = RedisRotationState(redis_client)

        assert state.counts("s", ["10", "20"]) == {"10": 3, "20": 0}
        redis_client.hmget.assert_called_once_with("olx_relay:fair:s", ["10", "20"])

    def test_counts_empty_ids_skip_redis(self) -> None:
        redis_client = MagicMock()
        assert RedisRotationState(redis_client).counts("s", []) == {}
        redis_client.hmget.assert_not_called()

    def test_first_increment_sets_expiry(self) -> None:
        redis_client = MagicMock()
        redis_client.hincrby.return_value = 1
        state = RedisRotationState(redis_client, counter_ttl_seconds=172800)

        assert state.increment("s", "10") == 1
        redis_client.expire.assert_called_once_with("olx_relay:fair:s", 172800)

        redis_client.hincrby.return_value = 2
        state.increment("s", "10")
        assert redis_client.expire.call_count == 1

    def test_errors_raise_store_error(self) -> None:
        redis_client = MagicMock()
        redis_client.incr.side_effect = ConnectionError("down")
        with pytest.raises(StoreError):
            RedisRotationState(redis_client).next_cursor("geral")


def test_factory_follows_store_backend() -> None:
    assert isinstance(create_rotation_state(Settings()), InMemoryRotationState)
    redis_state = create_rotation_state(Settings(store_backend="redis"), redis_client=MagicMock())
    assert isinstance(redis_state, RedisRotationState)
