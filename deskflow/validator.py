"""Static flow validation, run before any step touches the UI."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

from deskflow.exceptions import SelectorSyntaxError
from deskflow.logger import get_logger
from deskflow.models import Assertion, AssertionType, Flow, FlowStep, StepAction
from deskflow.resolver import ROLE_ALIASES, parse_selector

log = get_logger(__name__)

SCROLL_DIRECTIONS = {"up", "down", "left", "right"}

_SELECTOR_REQUIRED = {
    StepAction.CLICK,
    StepAction.HOVER,
    StepAction.ASSERT_EXISTS,
    StepAction.ASSERT_NOT_EXISTS,
    StepAction.ASSERT_TEXT,
}


@dataclass
class ValidationResult:
    """Errors block a run; warnings are advisory."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


class FlowValidator:
    """Detects caller errors in a flow definition."""

    def validate(self, flow: Flow) -> ValidationResult:
        result = ValidationResult()

        if not flow.test_name.strip() or flow.test_name == "Untitled Flow":
            result.warnings.append("testName should be descriptive (not 'Untitled Flow').")
        if not flow.steps:
            result.errors.append("Flow must have at least one step.")
        if flow.timeout_seconds < 0:
            result.errors.append("timeoutSeconds must be non-negative.")
        if flow.schema_version != 1:
            result.warnings.append(
                f"schemaVersion {flow.schema_version}: only version 1 is supported."
            )

        for i, step in enumerate(flow.steps):
            self._validate_step(step, f"Step {step.order or i + 1}", result)

        orders = Counter(step.order for step in flow.steps if step.order > 0)
        for order, count in sorted(orders.items()):
            if count > 1:
                result.warnings.append(f"Duplicate order {order} found on {count} steps.")

        if result.is_valid:
            log.debug(
                "flow_validated",
                test_name=flow.test_name,
                steps=len(flow.steps),
                warnings=len(result.warnings),
            )
        else:
            log.warning("flow_invalid", test_name=flow.test_name, errors=result.errors)
        return result

    def _validate_step(self, step: FlowStep, prefix: str, result: ValidationResult) -> None:
        action = step.action
        name = action.value

        if action in _SELECTOR_REQUIRED and not (step.selector or "").strip():
            result.errors.append(f"{prefix}: '{name}' requires a selector.")
        if action == StepAction.TYPE and not step.text:
            result.errors.append(f"{prefix}: 'type' requires text.")
        if action == StepAction.SEND_KEYS and not (step.keys or "").strip():
            result.errors.append(f"{prefix}: 'send_keys' requires keys.")
        if action == StepAction.ASSERT_TEXT and step.contains is None:
            result.errors.append(f"{prefix}: 'assert_text' requires a 'contains' value.")
        if action == StepAction.ASSERT_WINDOW and not (step.window_title or step.contains):
            result.errors.append(f"{prefix}: 'assert_window' requires windowTitle or contains.")
        if action == StepAction.NAVIGATE and not (step.url or "").strip():
            result.errors.append(f"{prefix}: 'navigate' requires a URL.")
        if action == StepAction.LAUNCH and not (step.process_path or "").strip():
            result.errors.append(f"{prefix}: 'launch' requires processPath.")
        if action == StepAction.SCROLL:
            if not step.direction:
                result.errors.append(f"{prefix}: 'scroll' requires direction.")
            elif step.direction.strip().lower() not in SCROLL_DIRECTIONS:
                result.errors.append(f"{prefix}: 'scroll' direction must be up/down/left/right.")

        if step.selector and step.selector.strip():
            self._validate_selector(step.selector, prefix, result)

        for i, assertion in enumerate(step.assertions, start=1):
            self._validate_assertion(assertion, f"{prefix}, assertion {i}", result)

        if step.timeout_ms < 0:
            result.errors.append(f"{prefix}: timeoutMs must be non-negative.")
        if step.delay_after_ms < 0:
            result.errors.append(f"{prefix}: delayAfterMs must be non-negative.")
        if not (step.description or "").strip():
            result.warnings.append(f"{prefix}: missing step description.")

    @staticmethod
    def _validate_selector(selector: str, prefix: str, result: ValidationResult) -> None:
        try:
            parsed = parse_selector(selector)
        except SelectorSyntaxError as exc:
            result.errors.append(f"{prefix}: {exc}")
            return
        if "#" not in selector:
            result.warnings.append(
                f"{prefix}: selector '{selector}' should use 'Role#Identifier' format."
            )
        role = selector.partition("#")[0].strip()
        if role and role.lower() not in ROLE_ALIASES:
            result.warnings.append(f"{prefix}: role '{role}' is not a commonly known type.")

    @staticmethod
    def _validate_assertion(assertion: Assertion, prefix: str, result: ValidationResult) -> None:
        kind = assertion.type
        if kind in (AssertionType.EXISTS, AssertionType.NOT_EXISTS) and not assertion.selector:
            result.errors.append(f"{prefix}: '{kind.value}' assertion requires a selector.")
        if kind in (AssertionType.TEXT_CONTAINS, AssertionType.TEXT_EQUALS):
            if not assertion.selector:
                result.errors.append(f"{prefix}: '{kind.value}' assertion requires a selector.")
            if assertion.expected is None:
                result.errors.append(f"{prefix}: '{kind.value}' assertion requires an expected value.")
        if kind in (AssertionType.WINDOW_TITLE, AssertionType.PROCESS_RUNNING) and not assertion.expected:
            result.errors.append(f"{prefix}: '{kind.value}' assertion requires an expected value.")
        if assertion.timeout_ms < 0:
            result.errors.append(f"{prefix}: timeoutMs must be non-negative.")
        if assertion.selector:
            try:
                parse_selector(assertion.selector)
            except SelectorSyntaxError as exc:
                result.errors.append(f"{prefix}: {exc}")
