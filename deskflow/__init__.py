"""DeskFlow: declarative flow engine for desktop UI automation."""

from deskflow.config import EngineConfig, TimingSettings
from deskflow.driver import AccessibilityDriver
from deskflow.engine import DeskFlowEngine
from deskflow.exceptions import (
    CallerError,
    ConfigError,
    DeskFlowError,
    DriverError,
    ElementUnavailableError,
    FlowCancelledError,
    FlowNotFoundError,
    FlowValidationError,
    SelectorSyntaxError,
)
from deskflow.flow import FlowLoader
from deskflow.logger import configure_logging
from deskflow.models import (
    Assertion,
    AssertionType,
    ExecutionReport,
    Flow,
    FlowStep,
    StepAction,
    StepReport,
)
from deskflow.polling import CancelToken

__version__ = "0.1.0"

__all__ = [
    "AccessibilityDriver",
    "Assertion",
    "AssertionType",
    "CallerError",
    "ConfigError",
    "CancelToken",
    "DeskFlowEngine",
    "DeskFlowError",
    "DriverError",
    "ElementUnavailableError",
    "EngineConfig",
    "ExecutionReport",
    "Flow",
    "FlowCancelledError",
    "FlowLoader",
    "FlowNotFoundError",
    "FlowStep",
    "FlowValidationError",
    "SelectorSyntaxError",
    "StepAction",
    "StepReport",
    "TimingSettings",
    "__version__",
    "configure_logging",
]
