"""DeskFlow exception hierarchy."""


class DeskFlowError(Exception):
    """Base exception for all DeskFlow errors."""


class FlowNotFoundError(DeskFlowError):
    """Raised when a flow file cannot be found."""

    def __init__(self, flow_id: str) -> None:
        self.flow_id = flow_id
        super().__init__(f"Flow not found: {flow_id}")


class FlowValidationError(DeskFlowError):
    """Raised when a flow file fails schema validation."""

    def __init__(self, flow_id: str, detail: str) -> None:
        self.flow_id = flow_id
        self.detail = detail
        super().__init__(f"Flow validation error in '{flow_id}': {detail}")


class CallerError(DeskFlowError):
    """Raised when a step or assertion is missing a required field."""


class SelectorSyntaxError(CallerError):
    """Raised when a selector string cannot be parsed."""

    def __init__(self, selector: str, detail: str) -> None:
        self.selector = selector
        self.detail = detail
        super().__init__(f"Invalid selector '{selector}': {detail}")


class DriverError(DeskFlowError):
    """Raised by an accessibility driver on platform failures."""


class ElementUnavailableError(DriverError):
    """Raised when a live element disappears between resolution and use."""


class FlowCancelledError(DeskFlowError):
    """Raised from a wait when the caller's cancellation signal fires."""

    def __init__(self, detail: str = "Execution cancelled") -> None:
        super().__init__(detail)


class ConfigError(CallerError):
    """Raised when a DESKFLOW_* environment variable holds an unusable value."""

    def __init__(self, name: str, value: str, detail: str) -> None:
        self.name = name
        self.value = value
        super().__init__(f"Invalid value for {name}: '{value}' ({detail})")
