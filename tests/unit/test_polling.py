"""Tests for the cancellation token and poll combinator."""

import asyncio
import time

import pytest

from deskflow.exceptions import FlowCancelledError
from deskflow.polling import CancelToken, poll_until, sleep


class TestSleep:
    async def test_sleeps_without_token(self) -> None:
        start = time.monotonic()
        await sleep(20)
        assert time.monotonic() - start >= 0.015

    async def test_raises_when_already_cancelled(self) -> None:
        token = CancelToken()
        token.cancel()
        with pytest.raises(FlowCancelledError):
            await sleep(1000, token)

    async def test_wakes_early_on_cancel(self) -> None:
        token = CancelToken()
        asyncio.get_running_loop().call_later(0.02, token.cancel)
        start = time.monotonic()
        with pytest.raises(FlowCancelledError):
            await sleep(5000, token)
        assert time.monotonic() - start < 1.0

    async def test_zero_delay_still_checks_cancel(self) -> None:
        token = CancelToken()
        token.cancel("stop")
        with pytest.raises(FlowCancelledError, match="stop"):
            await sleep(0, token)


class TestPollUntil:
    async def test_first_attempt_success(self) -> None:
        outcome = await poll_until(lambda: "ok", interval_ms=10, timeout_ms=100)
        assert outcome.value == "ok"
        assert outcome.attempts == 1
        assert outcome.retry_count == 0

    async def test_retry_count_is_index_of_successful_attempt(self) -> None:
        calls = []

        def probe():
            calls.append(1)
            return "found" if len(calls) == 3 else None

        outcome = await poll_until(probe, interval_ms=5, timeout_ms=1000)
        assert outcome.found
        assert outcome.retry_count == 2

    async def test_async_probe(self) -> None:
        async def probe():
            return 7

        outcome = await poll_until(probe, interval_ms=5, timeout_ms=50)
        assert outcome.value == 7

    async def test_timeout_returns_none(self) -> None:
        start = time.monotonic()
        outcome = await poll_until(lambda: None, interval_ms=10, timeout_ms=50)
        elapsed = (time.monotonic() - start) * 1000
        assert outcome.value is None
        assert not outcome.found
        assert outcome.attempts >= 2
        # never sleeps past the deadline by more than one interval
        assert elapsed < 50 + 10 + 50

    async def test_zero_timeout_probes_once(self) -> None:
        outcome = await poll_until(lambda: None, interval_ms=10, timeout_ms=0)
        assert outcome.attempts == 1

    async def test_cancellation_wins(self) -> None:
        token = CancelToken()
        asyncio.get_running_loop().call_later(0.02, token.cancel)
        with pytest.raises(FlowCancelledError):
            await poll_until(lambda: None, interval_ms=5, timeout_ms=5000, cancel=token)

    async def test_cancelled_before_start(self) -> None:
        token = CancelToken()
        token.cancel()
        called = []
        with pytest.raises(FlowCancelledError):
            await poll_until(lambda: called.append(1), interval_ms=5, timeout_ms=100, cancel=token)
        assert called == []
