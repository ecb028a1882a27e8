"""structlog configuration for DeskFlow."""

from __future__ import annotations

import logging
import os
import sys

import structlog

_CONFIGURED = False

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "console"


def _resolve_level(level: str | None) -> int:
    candidate = level or os.environ.get("DESKFLOW_LOG_LEVEL") or DEFAULT_LOG_LEVEL
    value = logging.getLevelName(candidate.upper())
    if isinstance(value, int):
        return value
    return logging.INFO


def _resolve_format(fmt: str | None) -> str:
    candidate = (fmt or os.environ.get("DESKFLOW_LOG_FORMAT") or DEFAULT_LOG_FORMAT)
    candidate = candidate.strip().lower()
    if candidate in ("console", "json"):
        return candidate
    return DEFAULT_LOG_FORMAT


def configure_logging(
    level: str | None = None, fmt: str | None = None, force: bool = False
) -> None:
    """Configure structlog over stdlib logging. Safe to call more than once."""
    global _CONFIGURED
    if _CONFIGURED and not force:
        return

    resolved_level = _resolve_level(level)
    renderer: structlog.types.Processor
    if _resolve_format(fmt) == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root = logging.getLogger("deskflow")
    root.handlers = [handler]
    root.setLevel(resolved_level)
    root.propagate = False

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(resolved_level),
        cache_logger_on_first_use=True,
    )
    _CONFIGURED = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger bound to ``name``."""
    return structlog.get_logger(name)
