"""Hover action."""

from __future__ import annotations

from deskflow.actions import ActionContext, BaseAction, _no_element
from deskflow.models import ActionResult, FlowStep, SelectorMatch, WindowInfo


class HoverAction(BaseAction):
    """Move the pointer over the resolved element."""

    async def execute(
        self,
        step: FlowStep,
        match: SelectorMatch | None,
        window: WindowInfo | None,
        ctx: ActionContext,
    ) -> ActionResult:
        if match is None:
            return _no_element(step)
        await ctx.driver.hover(match.element)
        return ActionResult.ok(f"Hovered {match.snapshot.describe()}")
