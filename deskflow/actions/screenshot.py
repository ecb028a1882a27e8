"""Screenshot action."""

from __future__ import annotations

from datetime import datetime, timezone

from deskflow.actions import ActionContext, BaseAction
from deskflow.logger import get_logger
from deskflow.models import ActionResult, FlowStep, SelectorMatch, WindowInfo

log = get_logger(__name__)


class ScreenshotAction(BaseAction):
    """Capture the screen. A failed capture never fails the step."""

    async def execute(
        self,
        step: FlowStep,
        match: SelectorMatch | None,
        window: WindowInfo | None,
        ctx: ActionContext,
    ) -> ActionResult:
        timestamp = datetime.now(tz=timezone.utc).strftime("%Y%m%d_%H%M%S_%f")
        target = ctx.screenshots_dir / f"step{step.order}_{timestamp}.png"
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            path = await ctx.driver.capture_screen(str(target))
        except OSError as exc:
            log.warning("screenshot_failed", step=step.order, error=str(exc))
            return ActionResult.ok(f"Screenshot failed: {exc}")

        if path is None:
            return ActionResult.ok("Screenshot capture returned nothing")
        log.debug("screenshot_saved", step=step.order, path=path)
        return ActionResult.ok(f"Screenshot saved: {path}", artifact_path=path)
