"""Scroll action."""

from __future__ import annotations

from deskflow.actions import ActionContext, BaseAction, _missing
from deskflow.logger import get_logger
from deskflow.models import ActionResult, FlowStep, SelectorMatch, WindowInfo

log = get_logger(__name__)

SCROLL_DIRECTIONS = ("up", "down", "left", "right")
WHEEL_DELTA = 120


class ScrollAction(BaseAction):
    """Scroll an element, falling back to the mouse wheel.

    The element's own scroll capability is preferred. Without one, vertical
    scrolls inject wheel notches and horizontal scrolls are a no-op.
    """

    async def execute(
        self,
        step: FlowStep,
        match: SelectorMatch | None,
        window: WindowInfo | None,
        ctx: ActionContext,
    ) -> ActionResult:
        if not step.direction:
            return _missing(step, "direction")
        direction = step.direction.strip().lower()
        if direction not in SCROLL_DIRECTIONS:
            return ActionResult.fail(
                f"Scroll direction must be one of {'/'.join(SCROLL_DIRECTIONS)}, got '{step.direction}'.",
                "caller_error",
            )
        amount = max(step.scroll_amount, 1)

        if match is not None and await ctx.driver.scroll(match.element, direction, amount):
            log.debug("scrolled_with_pattern", direction=direction, amount=amount)
            return ActionResult.ok(f"Scrolled {direction} x{amount}")

        if direction in ("up", "down"):
            delta = WHEEL_DELTA * amount if direction == "up" else -WHEEL_DELTA * amount
            await ctx.driver.wheel(delta)
            log.debug("scrolled_with_wheel", direction=direction, delta=delta)
            return ActionResult.ok(f"Scrolled {direction} x{amount} via mouse wheel")

        return ActionResult.ok(f"Scroll {direction} skipped: no scroll capability for horizontal input")
