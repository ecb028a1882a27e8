"""Action executor: performs the physical effect of one step."""

from __future__ import annotations

import time
from dataclasses import replace

from deskflow.actions import ActionContext
from deskflow.actions.registry import get_action
from deskflow.exceptions import CallerError, DriverError, ElementUnavailableError, FlowCancelledError
from deskflow.logger import get_logger
from deskflow.models import ActionResult, FlowStep, SelectorMatch, WindowInfo
from deskflow.polling import CancelToken

log = get_logger(__name__)


class ActionExecutor:
    """Dispatches a step to its registered action.

    Missing fields come back as ``caller_error`` results and an element that
    vanishes mid-action as a ``transient`` failure. Cancellation propagates.
    """

    def __init__(self, context: ActionContext) -> None:
        self.context = context

    async def execute(
        self,
        step: FlowStep,
        element: SelectorMatch | None = None,
        window: WindowInfo | None = None,
        cancel: CancelToken | None = None,
    ) -> ActionResult:
        start = time.monotonic()
        ctx = self.context
        if cancel is not None and cancel is not ctx.cancel:
            ctx = replace(ctx, cancel=cancel)

        try:
            action = get_action(step.action)
            result = await action.execute(step, element, window, ctx)
        except FlowCancelledError:
            raise
        except CallerError as exc:
            result = ActionResult.fail(str(exc), "caller_error")
        except ElementUnavailableError as exc:
            log.warning("element_unavailable", step=step.order, action=step.action.value)
            result = ActionResult.fail(f"Element became unavailable: {exc}", "transient")
        except DriverError as exc:
            result = ActionResult.fail(f"Driver error: {exc}", "platform")

        log.debug(
            "action_executed",
            step=step.order,
            action=step.action.value,
            success=result.success,
            elapsed_ms=int((time.monotonic() - start) * 1000),
        )
        return result
