"""Configuration dataclasses and loading helpers for life-script playback."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

from life_diagnostics import ConfigError

ENV_PREFIX = "LIFESCRIPT_"
LEVELS: dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def _parse_bool(value: Any, default: bool) -> bool:
    """Parse truthy/falsy values from multiple input types."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    if isinstance(value, (int, float)):
        return value != 0
    return default


def _parse_positive_int(value: Any, default: int) -> int:
    """Parse a positive integer with fallback to default."""
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


def _parse_float(value: Any, default: float) -> float:
    """Parse a positive floating point number with fallback to default."""
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


def _parse_level(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip().upper() in LEVELS:
        return value.strip().upper()
    return default


@dataclass(frozen=True)
class ViewerSettings:
    """Host-side playback settings."""

    refresh_rate: int = 60
    max_grid_power: int = 12
    frame_budget_ms: float = 12.0
    viewport_width: int = 480
    viewport_height: int = 480
    max_steps_per_tick: int = 64
    grid_size: int = 512
    stop_on_errors: bool = True

    @property
    def max_grid_size(self) -> int:
        return 1 << self.max_grid_power


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"
    log_file: Optional[Path] = None

    @property
    def numeric_level(self) -> int:
        return LEVELS.get(self.level, logging.INFO)


@dataclass(frozen=True)
class Config:
    """Root configuration object."""

    viewer: ViewerSettings = field(default_factory=ViewerSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)


def _parse_viewer(raw: Mapping[str, Any]) -> ViewerSettings:
    default = ViewerSettings()
    if not isinstance(raw, Mapping):
        return default
    power = _parse_positive_int(raw.get("max_grid_power"), default.max_grid_power)
    if not 9 <= power <= 14:
        power = default.max_grid_power
    return ViewerSettings(
        refresh_rate=_parse_positive_int(raw.get("refresh_rate"), default.refresh_rate),
        max_grid_power=power,
        frame_budget_ms=_parse_float(raw.get("frame_budget_ms"), default.frame_budget_ms),
        viewport_width=_parse_positive_int(raw.get("viewport_width"), default.viewport_width),
        viewport_height=_parse_positive_int(raw.get("viewport_height"), default.viewport_height),
        max_steps_per_tick=_parse_positive_int(
            raw.get("max_steps_per_tick"), default.max_steps_per_tick
        ),
        grid_size=_parse_positive_int(raw.get("grid_size"), default.grid_size),
        stop_on_errors=_parse_bool(raw.get("stop_on_errors"), default.stop_on_errors),
    )


def _parse_logging(raw: Mapping[str, Any]) -> LoggingSettings:
    default = LoggingSettings()
    if not isinstance(raw, Mapping):
        return default
    log_file = raw.get("log_file")
    return LoggingSettings(
        level=_parse_level(raw.get("level"), default.level),
        log_file=Path(log_file) if log_file else None,
    )


def _load_env_config(env: Mapping[str, str]) -> Config:
    """Configuration derived from ``LIFESCRIPT_*`` environment variables."""
    viewer = _parse_viewer({
        "refresh_rate": env.get(f"{ENV_PREFIX}REFRESH_RATE"),
        "max_grid_power": env.get(f"{ENV_PREFIX}MAX_GRID_POWER"),
        "frame_budget_ms": env.get(f"{ENV_PREFIX}FRAME_BUDGET_MS"),
        "viewport_width": env.get(f"{ENV_PREFIX}VIEWPORT_WIDTH"),
        "viewport_height": env.get(f"{ENV_PREFIX}VIEWPORT_HEIGHT"),
        "max_steps_per_tick": env.get(f"{ENV_PREFIX}MAX_STEPS_PER_TICK"),
        "grid_size": env.get(f"{ENV_PREFIX}GRID_SIZE"),
        "stop_on_errors": env.get(f"{ENV_PREFIX}STOP_ON_ERRORS"),
    })
    logging_settings = _parse_logging({
        "level": env.get(f"{ENV_PREFIX}LOG_LEVEL"),
        "log_file": env.get(f"{ENV_PREFIX}LOG_FILE"),
    })
    return Config(viewer=viewer, logging=logging_settings)


def load_config(config_path: Path | str | None = None, env: Mapping[str, str] | None = None) -> Config:
    """Load configuration from a JSON file, or from the environment when no file is given."""
    source_env = os.environ if env is None else env
    if config_path is None:
        return _load_env_config(source_env)

    path = Path(config_path)
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"cannot read configuration {path}: {exc}") from exc
    if not isinstance(data, Mapping):
        raise ConfigError(f"configuration {path} must be a JSON object")

    return Config(
        viewer=_parse_viewer(data.get("viewer", {})),
        logging=_parse_logging(data.get("logging", {})),
    )


__all__ = ["Config", "LoggingSettings", "ViewerSettings", "load_config"]
