"""Focus-window action."""

from __future__ import annotations

from deskflow.actions import ActionContext, BaseAction
from deskflow.models import ActionResult, FlowStep, SelectorMatch, WindowInfo


class FocusWindowAction(BaseAction):
    """Bring the step's target window to the foreground."""

    async def execute(
        self,
        step: FlowStep,
        match: SelectorMatch | None,
        window: WindowInfo | None,
        ctx: ActionContext,
    ) -> ActionResult:
        if window is None:
            return ActionResult.fail("'focus_window' requires a target window.", "caller_error")
        await ctx.driver.focus_window(window)
        return ActionResult.ok(f"Focused window '{window.title}'")
