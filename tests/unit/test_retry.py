"""Testes do retry com agenda fixa de backoff."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from olx_relay.infra.retry import backoff_delay, with_retry


class Transient(Exception):
    pass


class Permanent(Exception):
    pass


def _is_transient(exc: Exception) -> bool:
    return isinstance(exc, Transient)


class TestBackoffDelay:
    def test_follows_schedule(self) -> None:
        schedule = (0.25, 1.0, 4.0)
        assert [backoff_delay(schedule, attempt) for attempt in (1, 2, 3)] == [0.25, 1.0, 4.0]

    def test_repeats_last_delay(self) -> None:
        assert backoff_delay((0.25, 1.0), 5) == 1.0

    def test_empty_schedule(self) -> None:
        assert backoff_delay((), 1) == 0.0


class TestWithRetry:
    @pytest.mark.asyncio
    async def test_returns_first_success(self) -> None:
        operation = AsyncMock(return_value="ok")
        sleep = AsyncMock()

        result = await with_retry(operation, is_retryable=_is_transient, sleep=sleep)

        assert result == "ok"
        operation.assert_awaited_once()
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_retries_transient_until_success(self) -> None:
        operation = AsyncMock(side_effect=[Transient(), Transient(), "ok"])
        sleep = AsyncMock()

        result = await with_retry(
            operation,
            is_retryable=_is_transient,
            backoff_schedule=(0.25, 1.0, 4.0),
            max_attempts=3,
            sleep=sleep,
        )

        assert result == "ok"
        assert [call.args[0] for call in sleep.await_args_list] == [0.25, 1.0]

    @pytest.mark.asyncio
    async def test_exhaustion_reraises_last_error(self) -> None:
        operation = AsyncMock(side_effect=Transient("still down"))
        sleep = AsyncMock()

        with pytest.raises(Transient, match="still down"):
            await with_retry(operation, is_retryable=_is_transient, max_attempts=3, sleep=sleep)

        assert operation.await_count == 3
        assert sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_permanent_error_fails_immediately(self) -> None:
        operation = AsyncMock(side_effect=Permanent())
        sleep = AsyncMock()

        with pytest.raises(Permanent):
            await with_retry(operation, is_retryable=_is_transient, sleep=sleep)

        operation.assert_awaited_once()
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_single_attempt(self) -> None:
        operation = AsyncMock(side_effect=Transient())

        with pytest.raises(Transient):
            await with_retry(operation, is_retryable=_is_transient, max_attempts=1)

        operation.assert_awaited_once()
