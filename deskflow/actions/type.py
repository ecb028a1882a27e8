"""Type action: simulates individual key presses."""

from __future__ import annotations

from deskflow.actions import ActionContext, BaseAction, _missing
from deskflow.models import ActionResult, FlowStep, SelectorMatch, WindowInfo
from deskflow.polling import sleep


class TypeAction(BaseAction):
    """Type text one character at a time.

    When an element is given it is clicked first to take focus. Characters go
    through low-level input, so existing content is kept and the text is
    appended at the caret.
    """

    async def execute(
        self,
        step: FlowStep,
        match: SelectorMatch | None,
        window: WindowInfo | None,
        ctx: ActionContext,
    ) -> ActionResult:
        if not step.text:
            return _missing(step, "text")

        if match is not None:
            await ctx.driver.click(match.element)
            await sleep(ctx.timing.post_click_focus_delay_ms, ctx.cancel)

        for i, char in enumerate(step.text):
            if i:
                await sleep(ctx.timing.type_char_delay_ms, ctx.cancel)
            await ctx.driver.send_char(char)

        return ActionResult.ok(f"Typed {len(step.text)} character(s)")
