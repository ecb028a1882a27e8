"""Action registry mapping step actions to implementations."""

from deskflow.actions import BaseAction
from deskflow.actions.asserts import AssertAction
from deskflow.actions.click import ClickAction
from deskflow.actions.focus_window import FocusWindowAction
from deskflow.actions.hover import HoverAction
from deskflow.actions.launch import LaunchAction
from deskflow.actions.navigate import NavigateAction
from deskflow.actions.screenshot import ScreenshotAction
from deskflow.actions.scroll import ScrollAction
from deskflow.actions.send_keys import SendKeysAction
from deskflow.actions.type import TypeAction
from deskflow.actions.wait import WaitAction
from deskflow.exceptions import CallerError
from deskflow.models import StepAction

ACTION_REGISTRY: dict[StepAction, type[BaseAction]] = {
    StepAction.CLICK: ClickAction,
    StepAction.TYPE: TypeAction,
    StepAction.SEND_KEYS: SendKeysAction,
    StepAction.WAIT: WaitAction,
    StepAction.ASSERT_EXISTS: AssertAction,
    StepAction.ASSERT_NOT_EXISTS: AssertAction,
    StepAction.ASSERT_TEXT: AssertAction,
    StepAction.ASSERT_WINDOW: AssertAction,
    StepAction.NAVIGATE: NavigateAction,
    StepAction.SCREENSHOT: ScreenshotAction,
    StepAction.SCROLL: ScrollAction,
    StepAction.FOCUS_WINDOW: FocusWindowAction,
    StepAction.LAUNCH: LaunchAction,
    StepAction.HOVER: HoverAction,
}

_unregistered = set(StepAction) - set(ACTION_REGISTRY)
if _unregistered:
    raise RuntimeError(
        "No action registered for: " + ", ".join(sorted(a.value for a in _unregistered))
    )


def get_action(action: StepAction) -> BaseAction:
    """Get an action instance for the given step action type."""
    action_cls = ACTION_REGISTRY.get(action)
    if action_cls is None:
        raise CallerError(f"No action registered for: {action}")
    return action_cls()
