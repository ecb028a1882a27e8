"""Cooperative waiting: cancellation token and the shared poll combinator.

Every wait in the engine (selector retry, assertion retry, window lookup,
launch and navigate readiness) goes through :func:`poll_until`, so timing,
cancellation and attempt counting behave the same everywhere.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from deskflow.exceptions import FlowCancelledError

T = TypeVar("T")


class CancelToken:
    """Caller-owned cancellation signal."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    def cancel(self, reason: str = "Execution cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise FlowCancelledError(self.reason or "Execution cancelled")

    async def wait(self) -> None:
        await self._event.wait()


def check_cancelled(cancel: CancelToken | None) -> None:
    if cancel is not None:
        cancel.raise_if_cancelled()


async def sleep(ms: float, cancel: CancelToken | None = None) -> None:
    """Sleep ``ms`` milliseconds, waking early if ``cancel`` fires.

    Raises:
        FlowCancelledError: If the token is or becomes cancelled.
    """
    check_cancelled(cancel)
    if ms <= 0:
        await asyncio.sleep(0)
        return
    if cancel is None:
        await asyncio.sleep(ms / 1000)
        return
    try:
        await asyncio.wait_for(cancel.wait(), timeout=ms / 1000)
    except asyncio.TimeoutError:
        return
    cancel.raise_if_cancelled()


@dataclass(frozen=True)
class PollOutcome(Generic[T]):
    """Result of a poll loop. ``value`` is None on timeout."""

    value: T | None
    attempts: int
    elapsed_ms: int

    @property
    def found(self) -> bool:
        return self.value is not None

    @property
    def retry_count(self) -> int:
        """Zero-based index of the successful attempt, or retries spent."""
        return self.attempts - 1 if self.found else self.attempts


Probe = Callable[[], "Awaitable[T | None] | T | None"]


async def poll_until(
    probe: Probe,
    *,
    interval_ms: int,
    timeout_ms: int,
    cancel: CancelToken | None = None,
) -> PollOutcome[T]:
    """Call ``probe`` until it returns a non-None value or time runs out.

    The probe always runs at least once. Cancellation is checked at the start
    of every iteration and wins over completing the wait. Sleeps are clipped
    to the deadline, so the loop overruns ``timeout_ms`` by at most one probe.
    """
    start = time.monotonic()
    deadline = start + max(timeout_ms, 0) / 1000
    attempts = 0

    while True:
        check_cancelled(cancel)
        attempts += 1
        value = probe()
        if inspect.isawaitable(value):
            value = await value
        elapsed_ms = int((time.monotonic() - start) * 1000)
        if value is not None:
            return PollOutcome(value=value, attempts=attempts, elapsed_ms=elapsed_ms)

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return PollOutcome(value=None, attempts=attempts, elapsed_ms=elapsed_ms)
        await sleep(min(interval_ms, remaining * 1000), cancel)
