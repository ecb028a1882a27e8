"""Send-keys action."""

from __future__ import annotations

from deskflow.actions import ActionContext, BaseAction, _missing
from deskflow.models import ActionResult, FlowStep, SelectorMatch, WindowInfo


class SendKeysAction(BaseAction):
    """Send a key sequence such as ``Ctrl+S`` to the focused window."""

    async def execute(
        self,
        step: FlowStep,
        match: SelectorMatch | None,
        window: WindowInfo | None,
        ctx: ActionContext,
    ) -> ActionResult:
        if not step.keys:
            return _missing(step, "keys")
        await ctx.driver.send_keys(step.keys)
        return ActionResult.ok(f"Sent keys '{step.keys}'")
