"""Engine configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from deskflow.exceptions import ConfigError


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(name, raw, "expected an integer") from exc


def _env_list(name: str) -> list[str]:
    raw = os.environ.get(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class TimingSettings:
    """Poll intervals and readiness budgets, all in milliseconds."""

    # Selector resolution
    selector_poll_interval_ms: int = 150
    default_element_timeout_ms: int = 3000
    selector_cache_ttl_ms: int = 5000

    # Window lookup
    window_find_timeout_ms: int = 5000
    window_find_poll_interval_ms: int = 150

    # Launch
    input_idle_timeout_ms: int = 5000
    launch_window_timeout_ms: int = 10000
    launch_poll_interval_ms: int = 150
    launch_tree_ready_ms: int = 2000
    launch_exit_grace_ms: int = 1500

    # Typing
    post_click_focus_delay_ms: int = 100
    type_char_delay_ms: int = 20

    # Navigate
    navigate_max_wait_ms: int = 8000
    navigate_poll_interval_ms: int = 200
    navigate_post_render_delay_ms: int = 300

    # Actionability
    stability_frame_delay_ms: int = 50
    stability_retry_delay_ms: int = 100

    # Orchestrator
    inter_step_delay_ms: int = 100

    @classmethod
    def from_env(cls) -> TimingSettings:
        """Load timing overrides from ``DESKFLOW_<FIELD>`` variables."""
        defaults = cls()
        values = {
            name: _env_int(f"DESKFLOW_{name.upper()}", getattr(defaults, name))
            for name in defaults.__dataclass_fields__
        }
        return cls(**values)

    @classmethod
    def immediate(cls) -> TimingSettings:
        """Settings with every delay collapsed, for fakes and tests."""
        return cls(
            selector_poll_interval_ms=10,
            window_find_timeout_ms=50,
            window_find_poll_interval_ms=10,
            input_idle_timeout_ms=0,
            launch_window_timeout_ms=50,
            launch_poll_interval_ms=10,
            launch_tree_ready_ms=50,
            launch_exit_grace_ms=0,
            post_click_focus_delay_ms=0,
            type_char_delay_ms=0,
            navigate_max_wait_ms=50,
            navigate_poll_interval_ms=10,
            navigate_post_render_delay_ms=0,
            stability_frame_delay_ms=0,
            stability_retry_delay_ms=0,
            inter_step_delay_ms=0,
        )


@dataclass
class EngineConfig:
    """Engine configuration loaded from environment variables."""

    timing: TimingSettings = field(default_factory=TimingSettings)
    hints_path: Path | None = None
    screenshots_dir: Path = Path("screenshots")
    reports_dir: Path = Path("reports")
    strict_selectors: bool = False
    not_exists_grace_ms: int = 0
    allowed_processes: list[str] = field(default_factory=list)
    log_level: str = "INFO"
    log_format: str = "console"

    @classmethod
    def from_env(cls) -> EngineConfig:
        """Load config from environment variables."""
        hints_path = os.environ.get("DESKFLOW_HINTS_PATH")
        return cls(
            timing=TimingSettings.from_env(),
            hints_path=Path(hints_path) if hints_path else None,
            screenshots_dir=Path(os.environ.get("DESKFLOW_SCREENSHOTS_DIR", "screenshots")),
            reports_dir=Path(os.environ.get("DESKFLOW_REPORTS_DIR", "reports")),
            strict_selectors=os.environ.get("DESKFLOW_STRICT_SELECTORS", "false").lower() == "true",
            not_exists_grace_ms=_env_int("DESKFLOW_NOT_EXISTS_GRACE_MS", 0),
            allowed_processes=_env_list("DESKFLOW_ALLOWED_PROCESSES"),
            log_level=os.environ.get("DESKFLOW_LOG_LEVEL", "INFO"),
            log_format=os.environ.get("DESKFLOW_LOG_FORMAT", "console"),
        )
