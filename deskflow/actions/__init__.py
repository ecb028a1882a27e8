"""Step action interface and shared execution context."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from deskflow.config import TimingSettings
from deskflow.driver import AccessibilityDriver
from deskflow.models import ActionResult, FlowStep, SelectorMatch, WindowInfo
from deskflow.polling import CancelToken
from deskflow.resolver import SelectorResolver

if TYPE_CHECKING:
    from deskflow.assertions import AssertionEvaluator
    from deskflow.hints import DomainHintStore


@dataclass
class ActionContext:
    """Collaborators an action may call while performing one step."""

    driver: AccessibilityDriver
    resolver: SelectorResolver
    evaluator: AssertionEvaluator
    timing: TimingSettings = field(default_factory=TimingSettings)
    hints: DomainHintStore | None = None
    screenshots_dir: Path = Path("screenshots")
    cancel: CancelToken | None = None


class BaseAction(ABC):
    """Base class for step actions.

    An action performs exactly one physical effect. It reports failure
    through the returned :class:`ActionResult`; only cancellation escapes as
    an exception.
    """

    @abstractmethod
    async def execute(
        self,
        step: FlowStep,
        match: SelectorMatch | None,
        window: WindowInfo | None,
        ctx: ActionContext,
    ) -> ActionResult:
        """Execute the step action."""


def _missing(step: FlowStep, what: str) -> ActionResult:
    """Caller-error result for a step that lacks a required field."""
    return ActionResult.fail(
        f"'{step.action.value}' requires {what}.", "caller_error"
    )


def _no_element(step: FlowStep) -> ActionResult:
    return ActionResult.fail(
        f"'{step.action.value}' requires a resolved element (selector: {step.selector or 'none'}).",
        "caller_error",
    )
