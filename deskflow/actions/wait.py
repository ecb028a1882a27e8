"""Wait action."""

from __future__ import annotations

from deskflow.actions import ActionContext, BaseAction
from deskflow.models import ActionResult, FlowStep, SelectorMatch, WindowInfo
from deskflow.polling import sleep

DEFAULT_WAIT_MS = 1000


class WaitAction(BaseAction):
    """Wait for an element or a fixed delay.

    With a selector the orchestrator has already waited for the element, so
    the step succeeds when it arrived. Without one it sleeps ``timeout_ms``.
    """

    async def execute(
        self,
        step: FlowStep,
        match: SelectorMatch | None,
        window: WindowInfo | None,
        ctx: ActionContext,
    ) -> ActionResult:
        if step.selector:
            if match is None:
                return ActionResult.fail(
                    f"Element '{step.selector}' did not appear within {step.timeout_ms}ms",
                    "timeout",
                )
            return ActionResult.ok(f"Element appeared: {match.snapshot.describe()}")

        delay_ms = step.timeout_ms if step.timeout_ms > 0 else DEFAULT_WAIT_MS
        await sleep(delay_ms, ctx.cancel)
        return ActionResult.ok(f"Waited {delay_ms}ms")
