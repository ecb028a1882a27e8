"""Click action."""

from __future__ import annotations

from deskflow.actions import ActionContext, BaseAction, _no_element
from deskflow.logger import get_logger
from deskflow.models import ActionResult, FlowStep, SelectorMatch, WindowInfo

log = get_logger(__name__)


class ClickAction(BaseAction):
    """Invoke the resolved element."""

    async def execute(
        self,
        step: FlowStep,
        match: SelectorMatch | None,
        window: WindowInfo | None,
        ctx: ActionContext,
    ) -> ActionResult:
        if match is None:
            return _no_element(step)
        await ctx.driver.click(match.element)
        log.debug("element_clicked", step=step.order, element=match.snapshot.describe())
        return ActionResult.ok(f"Clicked {match.snapshot.describe()}")
