"""
Settings loading from YAML files and environment variables.

A settings file is a mapping of sections, each overriding fields of one
config dataclass:

```yaml
segmentation:
  min_viable_length: 50
pipeline:
  summary_delay: 1.0
  label_delay: 0.6
announcer:
  expire_delay: 10
claude:
  model: claude-haiku-4-5-20251001
log_level: INFO
```
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

from .accessibility.announcer import AnnouncerConfig
from .accessibility.sections import SegmentationConfig
from .backends.claude import ClaudeConfig
from .enrichment.tasks import PipelineConfig
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "COGNITIVE_LAYER_"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class Settings:
    """All configurable behavior of the package."""

    segmentation: SegmentationConfig = field(default_factory=SegmentationConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    announcer: AnnouncerConfig = field(default_factory=AnnouncerConfig)
    claude: ClaudeConfig = field(default_factory=ClaudeConfig)
    log_level: str = "INFO"


_SECTIONS = ("segmentation", "pipeline", "announcer", "claude")


def _coerce(section: str, key: str, default: Any, value: Any) -> Any:
    """Check a value against the type of the field's default."""
    expected = type(default)
    if expected is float and isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    if isinstance(value, bool) != isinstance(default, bool) or not isinstance(value, expected):
        raise ConfigurationError(
            f"{section}.{key} must be {expected.__name__}, got {type(value).__name__}"
        )
    return value


def settings_from_dict(data: Mapping[str, Any]) -> Settings:
    """Build settings from a parsed mapping.

    Args:
        data: Mapping of section name to field overrides

    Returns:
        Settings with the overrides applied

    Raises:
        ConfigurationError: If a section, key or value is invalid
    """
    settings = Settings()
    errors: list[str] = []

    for name, overrides in data.items():
        if name == "log_level":
            continue
        if name not in _SECTIONS:
            errors.append(f"Unknown settings section: {name!r}")
            continue
        if not isinstance(overrides, Mapping):
            errors.append(f"Section {name!r} must be a mapping")
            continue

        current = getattr(settings, name)
        defaults = {f.name: getattr(current, f.name) for f in fields(current)}
        changes: dict[str, Any] = {}
        for key, value in overrides.items():
            if key not in defaults:
                errors.append(f"Unknown key {name}.{key}")
                continue
            try:
                changes[key] = _coerce(name, key, defaults[key], value)
            except ConfigurationError as e:
                errors.append(str(e))
        setattr(settings, name, replace(current, **changes))

    if "log_level" in data:
        level = str(data["log_level"]).upper()
        if level not in LOG_LEVELS:
            errors.append(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        else:
            settings.log_level = level

    if errors:
        raise ConfigurationError("Invalid settings:\n  " + "\n  ".join(errors), errors)
    return settings


def apply_environment(settings: Settings, environ: Mapping[str, str] | None = None) -> Settings:
    """Apply ``COGNITIVE_LAYER_*`` environment overrides.

    Supported variables: ``COGNITIVE_LAYER_MODEL``, ``COGNITIVE_LAYER_LOG_LEVEL``.
    """
    env = os.environ if environ is None else environ

    model = env.get(f"{ENV_PREFIX}MODEL")
    if model:
        settings.claude = replace(settings.claude, model=model)

    level = env.get(f"{ENV_PREFIX}LOG_LEVEL")
    if level:
        if level.upper() not in LOG_LEVELS:
            raise ConfigurationError(f"{ENV_PREFIX}LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}")
        settings.log_level = level.upper()

    return settings


def load_settings(
    path: str | Path | None = None, environ: Mapping[str, str] | None = None
) -> Settings:
    """Load settings from an optional YAML file plus the environment.

    Args:
        path: Settings file; defaults are used when omitted
        environ: Environment mapping; ``os.environ`` when omitted

    Returns:
        Loaded settings

    Raises:
        FileNotFoundError: If ``path`` does not exist
        ConfigurationError: If the file cannot be parsed or holds invalid values
    """
    if path is None:
        return apply_environment(Settings(), environ)

    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"Settings file not found: {path}")

    try:
        with open(file_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse YAML file: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError("Settings file must contain a mapping")

    logger.debug("Loaded settings from %s", file_path)
    return apply_environment(settings_from_dict(data), environ)
