"""Assertion step actions, delegated to the assertion evaluator."""

from __future__ import annotations

from deskflow.actions import ActionContext, BaseAction
from deskflow.models import ActionResult, FlowStep, SelectorMatch, WindowInfo


class AssertAction(BaseAction):
    """Shared handler for assert_exists, assert_not_exists, assert_text and
    assert_window. The step is rewritten as an Assertion and evaluated with
    the same rules as post-step assertions.
    """

    async def execute(
        self,
        step: FlowStep,
        match: SelectorMatch | None,
        window: WindowInfo | None,
        ctx: ActionContext,
    ) -> ActionResult:
        assertion = step.to_assertion()
        if assertion is None:
            return ActionResult.fail(
                f"'{step.action.value}' is not an assertion action.", "caller_error"
            )
        result = await ctx.evaluator.evaluate(assertion, window, ctx.resolver, ctx.cancel)
        if result.passed:
            return ActionResult.ok(
                f"Assertion {assertion.type.value} passed",
                expected=result.expected,
                actual=result.actual,
                retry_count=result.retry_count,
            )
        return ActionResult.fail(
            result.error or f"Assertion {assertion.type.value} failed",
            result.error_kind,
            expected=result.expected,
            actual=result.actual,
            retry_count=result.retry_count,
        )
