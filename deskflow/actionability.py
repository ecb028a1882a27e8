"""Pre-action readiness checks on a resolved element."""

from __future__ import annotations

from enum import Enum

from deskflow.config import TimingSettings
from deskflow.driver import AccessibilityDriver
from deskflow.exceptions import ElementUnavailableError
from deskflow.logger import get_logger
from deskflow.models import ActionResult, Bounds, SelectorMatch, StepAction
from deskflow.polling import CancelToken, sleep

log = get_logger(__name__)


class Check(str, Enum):
    VISIBLE = "visible"
    ENABLED = "enabled"
    STABLE = "stable"
    RECEIVES_EVENTS = "receives_events"
    EDITABLE = "editable"


REQUIRED_CHECKS: dict[StepAction, tuple[Check, ...]] = {
    StepAction.CLICK: (Check.VISIBLE, Check.ENABLED, Check.STABLE, Check.RECEIVES_EVENTS),
    StepAction.TYPE: (Check.VISIBLE, Check.ENABLED, Check.EDITABLE),
    StepAction.SCROLL: (Check.VISIBLE,),
    StepAction.HOVER: (Check.VISIBLE,),
}


class ActionabilityChecker:
    """Verifies an element can take an action before the action runs.

    Checks run in a fixed order and stop at the first failure. Only the
    stability check waits.
    """

    def __init__(self, driver: AccessibilityDriver, timing: TimingSettings | None = None) -> None:
        self.driver = driver
        self.timing = timing or TimingSettings()

    async def check(
        self,
        action: StepAction,
        match: SelectorMatch,
        cancel: CancelToken | None = None,
    ) -> ActionResult | None:
        """Return a failed result when a required check fails, else None."""
        checks = REQUIRED_CHECKS.get(action, ())
        if not checks:
            return None
        try:
            snapshot = await self.driver.snapshot(match.element)
            if Check.VISIBLE in checks and (snapshot.bounds is None or snapshot.bounds.is_empty):
                return self._fail(action, "Element is not visible (bounding box is empty)")
            if Check.ENABLED in checks and not snapshot.enabled:
                return self._fail(action, "Element is disabled")
            if Check.STABLE in checks:
                moved = await self._unstable(match, snapshot.bounds, cancel)
                if moved is not None:
                    return self._fail(action, moved)
            if Check.RECEIVES_EVENTS in checks and snapshot.offscreen:
                return self._fail(action, "Element is off-screen and cannot receive events")
            if Check.EDITABLE in checks:
                read_only = await self.driver.is_read_only(match.element)
                editable = (not read_only) if read_only is not None else (
                    snapshot.enabled and not snapshot.offscreen
                )
                if not editable:
                    return self._fail(action, "Element is read-only and cannot accept text input")
        except ElementUnavailableError:
            return ActionResult.fail(
                "Element became unavailable during actionability checks", "transient"
            )
        return None

    async def _unstable(
        self, match: SelectorMatch, first: Bounds | None, cancel: CancelToken | None
    ) -> str | None:
        """Compare bounds across two frames, with one second chance."""
        await sleep(self.timing.stability_frame_delay_ms, cancel)
        second = (await self.driver.snapshot(match.element)).bounds
        if second == first:
            return None
        await sleep(self.timing.stability_retry_delay_ms, cancel)
        third = (await self.driver.snapshot(match.element)).bounds
        if third == second:
            return None
        return f"Element is not stable (bounds moving: {_xy(first)} -> {_xy(third)})"

    @staticmethod
    def _fail(action: StepAction, reason: str) -> ActionResult:
        log.warning("actionability_failed", action=action.value, reason=reason)
        return ActionResult.fail(f"Actionability check failed: {reason}", "transient")


def _xy(bounds: Bounds | None) -> str:
    return f"[{bounds.x},{bounds.y}]" if bounds else "[none]"
