"""All Pydantic models for DeskFlow."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel


class _WireModel(BaseModel):
    """Base for models exchanged as camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class _FrozenWireModel(_WireModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )


# --- Flow definition ---


class StepAction(str, Enum):
    """Available step actions. The set is closed."""

    CLICK = "click"
    TYPE = "type"
    SEND_KEYS = "send_keys"
    WAIT = "wait"
    ASSERT_EXISTS = "assert_exists"
    ASSERT_NOT_EXISTS = "assert_not_exists"
    ASSERT_TEXT = "assert_text"
    ASSERT_WINDOW = "assert_window"
    NAVIGATE = "navigate"
    SCREENSHOT = "screenshot"
    SCROLL = "scroll"
    FOCUS_WINDOW = "focus_window"
    LAUNCH = "launch"
    HOVER = "hover"


ASSERTION_ACTIONS = frozenset(
    {
        StepAction.ASSERT_EXISTS,
        StepAction.ASSERT_NOT_EXISTS,
        StepAction.ASSERT_TEXT,
        StepAction.ASSERT_WINDOW,
    }
)


class AssertionType(str, Enum):
    """Post-condition kinds."""

    EXISTS = "exists"
    NOT_EXISTS = "not_exists"
    TEXT_CONTAINS = "text_contains"
    TEXT_EQUALS = "text_equals"
    WINDOW_TITLE = "window_title"
    PROCESS_RUNNING = "process_running"


class Assertion(_FrozenWireModel):
    """A post-condition evaluated against live UI state."""

    type: AssertionType
    selector: str | None = None
    expected: str | None = None
    exact: bool = False
    timeout_ms: int = 5000
    description: str | None = None


class FlowStep(_FrozenWireModel):
    """A single step in a flow."""

    order: int = 0
    action: StepAction
    selector: str | None = None
    text: str | None = None
    keys: str | None = None
    url: str | None = None
    app: str | None = None
    process_path: str | None = None
    window_title: str | None = None
    contains: str | None = None
    exact: bool = False
    direction: str | None = None
    scroll_amount: int = 3
    timeout_ms: int = 5000
    delay_after_ms: int = 0
    description: str | None = None
    required: bool = False
    assertions: tuple[Assertion, ...] = ()

    @property
    def is_assertion(self) -> bool:
        return self.action in ASSERTION_ACTIONS

    def to_assertion(self) -> Assertion | None:
        """Express an assert_* step as the equivalent Assertion."""
        if self.action == StepAction.ASSERT_EXISTS:
            return Assertion(
                type=AssertionType.EXISTS,
                selector=self.selector,
                timeout_ms=self.timeout_ms,
                description=self.description,
            )
        if self.action == StepAction.ASSERT_NOT_EXISTS:
            return Assertion(
                type=AssertionType.NOT_EXISTS,
                selector=self.selector,
                timeout_ms=self.timeout_ms,
                description=self.description,
            )
        if self.action == StepAction.ASSERT_TEXT:
            return Assertion(
                type=AssertionType.TEXT_EQUALS if self.exact else AssertionType.TEXT_CONTAINS,
                selector=self.selector,
                expected=self.contains,
                exact=self.exact,
                timeout_ms=self.timeout_ms,
                description=self.description,
            )
        if self.action == StepAction.ASSERT_WINDOW:
            return Assertion(
                type=AssertionType.WINDOW_TITLE,
                expected=self.window_title or self.contains,
                exact=self.exact,
                timeout_ms=self.timeout_ms,
                description=self.description,
            )
        return None


class Flow(_FrozenWireModel):
    """A complete automation flow definition."""

    schema_version: int = 1
    test_name: str = "Untitled Flow"
    description: str | None = None
    target_app: str | None = None
    window_title: str | None = None
    timeout_seconds: int = 120
    target_lock: bool = False
    steps: tuple[FlowStep, ...] = ()

    def ordered_steps(self) -> list[FlowStep]:
        """Steps sorted by ``order``; unset orders keep their position."""
        numbered = [
            step if step.order > 0 else step.model_copy(update={"order": i + 1})
            for i, step in enumerate(self.steps)
        ]
        return sorted(numbered, key=lambda s: s.order)


# --- Platform snapshots ---


class Bounds(_FrozenWireModel):
    """Screen rectangle of an element or window."""

    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0

    @property
    def area(self) -> int:
        return max(self.width, 0) * max(self.height, 0)

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0


class ElementSnapshot(_FrozenWireModel):
    """Owned, point-in-time copy of an element's properties."""

    role: str = "Unknown"
    name: str | None = None
    automation_id: str | None = None
    enabled: bool = False
    offscreen: bool = False
    bounds: Bounds | None = None

    @property
    def visible(self) -> bool:
        return not self.offscreen and self.bounds is not None and not self.bounds.is_empty

    def describe(self) -> str:
        return f"{self.role} '{self.name or ''}' (id={self.automation_id or ''})"


class WindowInfo(_FrozenWireModel):
    """A top-level window; ``handle`` is its identity."""

    handle: int
    title: str = ""
    process_name: str | None = None
    pid: int | None = None
    bounds: Bounds | None = None


class ProcessInfo(_FrozenWireModel):
    """A process started by the driver."""

    pid: int
    name: str = ""
    exited: bool = False


class SelectorMatch(BaseModel):
    """A resolved element: snapshot plus the live handle for this call only."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    snapshot: ElementSnapshot
    element: Any = Field(default=None, exclude=True, repr=False)
    retry_count: int = 0
    score: int = 0
    candidates: int = 1
    from_cache: bool = False


# --- Results ---


ErrorKind = Literal["caller_error", "timeout", "transient", "cancelled", "platform"]


class ActionResult(_WireModel):
    """Result of executing one step's physical effect."""

    success: bool
    error: str | None = None
    error_kind: ErrorKind | None = None
    expected: str | None = None
    actual: str | None = None
    diagnostics: str | None = None
    artifact_path: str | None = None
    retry_count: int = 0

    @classmethod
    def ok(cls, diagnostics: str | None = None, **kwargs: Any) -> ActionResult:
        return cls(success=True, diagnostics=diagnostics, **kwargs)

    @classmethod
    def fail(
        cls, error: str, kind: ErrorKind | None = None, **kwargs: Any
    ) -> ActionResult:
        return cls(success=False, error=error, error_kind=kind, **kwargs)


class AssertionResult(_WireModel):
    """Result of evaluating one assertion."""

    type: AssertionType
    passed: bool
    expected: str | None = None
    actual: str | None = None
    error: str | None = None
    error_kind: ErrorKind | None = None
    description: str | None = None
    retry_count: int = 0


StepStatus = Literal["passed", "failed", "error", "skipped", "cancelled"]


class StepReport(_WireModel):
    """Report entry for one step."""

    step: int
    action: StepAction
    selector: str | None = None
    description: str | None = None
    status: StepStatus = "skipped"
    required: bool = False
    error: str | None = None
    expected: str | None = None
    actual: str | None = None
    elapsed_ms: int = 0
    retry_count: int = 0
    diagnostics: str | None = None
    screenshot: str | None = None
    element: ElementSnapshot | None = None
    resolved_to: str | None = None
    assertion_results: list[AssertionResult] = Field(default_factory=list)


class ExecutionReport(_WireModel):
    """Structured outcome of running a flow."""

    schema_version: int = 1
    test_name: str
    result: Literal["passed", "failed", "error"] = "error"
    degraded: bool = False
    failed_step: int | None = None
    total_time_ms: int = 0
    started_at: datetime
    finished_at: datetime | None = None
    steps: list[StepReport] = Field(default_factory=list)
    summary: str = ""

    # Where the run happened
    backend_used: str | None = None
    backend_version: str | None = None
    machine_name: str | None = None
    os_version: str | None = None

    def _count(self, status: str) -> int:
        return sum(1 for s in self.steps if s.status == status)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def passed_count(self) -> int:
        return self._count("passed")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def failed_count(self) -> int:
        return self._count("failed") + self._count("error")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def skipped_count(self) -> int:
        return self._count("skipped")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def cancelled_count(self) -> int:
        return self._count("cancelled")


# --- Learned state ---


class DomainHintState(BaseModel):
    """Persisted host -> window-title hint mapping."""

    version: int = 1
    hints: dict[str, str] = Field(default_factory=dict)
