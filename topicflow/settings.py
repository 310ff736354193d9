"""Load topicflow settings from config/settings.yaml.

Defaults live on the pydantic models below. The YAML file only needs the keys
it overrides; nested sections are merged key by key over the defaults.
"""

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

_cached: "FlowSettings | None" = None


class StreamSettings(BaseModel):
    # items the stream sink accepts before the bridge starts buffering
    high_water_mark: int = Field(default=16, ge=1)


class TimeoutSettings(BaseModel):
    default_ms: int = Field(default=30000, ge=0)


class LoggingSettings(BaseModel):
    level: str = "INFO"
    log_to_console: bool = True
    file: str | None = None
    max_bytes: int = Field(default=10 * 1024 * 1024, ge=0)
    backup_count: int = Field(default=3, ge=0)

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        name = value.upper()
        if not isinstance(logging.getLevelName(name), int):
            raise ValueError(f"unknown log level {value!r}")
        return name


class FlowSettings(BaseModel):
    """Validated settings for streams, timeouts and logging."""

    stream: StreamSettings = Field(default_factory=StreamSettings)
    timeout: TimeoutSettings = Field(default_factory=TimeoutSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def _overlay(base: Mapping[str, Any], extra: Mapping[str, Any]) -> dict[str, Any]:
    """Return base with extra merged in; nested mappings merge, None keeps the base value."""
    merged = dict(base)
    for key, value in extra.items():
        if value is None:
            continue
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = _overlay(current, value)
        else:
            merged[key] = value
    return merged


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (yaml.YAMLError, OSError) as e:
        logger.warning("Ignoring unreadable settings file %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def reload_settings() -> None:
    """Clear the settings cache. Call after the config file changes."""
    global _cached
    _cached = None


def get_flow_settings(overrides: Mapping[str, Any] | None = None) -> FlowSettings:
    """Validate overrides merged over the defaults. Raises pydantic.ValidationError.

    Without overrides the cached settings from load_settings() are returned.
    """
    if overrides is None:
        return load_settings()
    return FlowSettings.model_validate(_overlay(FlowSettings().model_dump(), overrides))


def load_settings(config_dir: Path | None = None) -> FlowSettings:
    """Load <config_dir>/settings.yaml over the defaults and cache the result.

    config_dir defaults to ./config relative to the working directory. A missing
    or unreadable file leaves the defaults in place.
    """
    global _cached
    if _cached is not None:
        return _cached
    if config_dir is None:
        config_dir = Path.cwd() / "config"
    _cached = get_flow_settings(_read_yaml(config_dir / "settings.yaml"))
    return _cached
