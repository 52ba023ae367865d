"""Configuration loader for the YAML config file.

Parses YAML files with the following top-level sections::

    source:       # where sensors come from (dbus, snapshot, …)
    display:      # table layout and output format
    watch:        # default watch list and polling interval
    log_level:    # DEBUG, INFO, WARNING, ERROR

Example:

.. code-block:: yaml

    source:
      type: dbus
      bus: system

    display:
      layout: full
      format: text

    watch:
      interval_s: 2
      sensors: [temp1, fan0]
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, PositiveInt, ValidationError

__all__ = [
    "ConfigError",
    "SensorsYAMLConfig",
    "load_yaml_config",
    "validate_interval",
    "validate_sensor_type",
]

logger = logging.getLogger("bmc_sensors.config")

_SENSOR_TYPE_RE = re.compile(r"[A-Za-z0-9_]+")


class ConfigError(ValueError):
    """Invalid user configuration (bad flag value, unknown watch name, bad file)."""


class SensorsYAMLConfig(BaseModel):
    """Parsed representation of the full YAML configuration.

    Attributes:
        source: Raw dict passed to the source factory (must carry ``type``).
        layout: Table layout name (``full`` or ``compact``).
        format: Output format (``text`` or ``json``).
        watch_interval_s: Seconds between watch cycles.
        watch_sensors: Default sensor names for ``watch``.
        log_level: Logging level string.
    """

    source: dict[str, Any] = Field(default_factory=lambda: {"type": "dbus"})
    layout: Literal["full", "compact"] = "full"
    format: Literal["text", "json"] = "text"
    watch_interval_s: PositiveInt = 1
    watch_sensors: list[str] = Field(default_factory=list)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"


def load_yaml_config(path: str | Path) -> SensorsYAMLConfig:
    """Load and validate a YAML configuration file.

    Raises:
        FileNotFoundError: *path* does not exist.
        ConfigError: the file is not valid YAML or fails validation.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        with path.open("r", encoding="utf-8") as fh:
            raw: dict[str, Any] = yaml.safe_load(fh) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Cannot parse {path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"{path}: top level must be a mapping")

    # --- source section ---
    source = raw.get("source") or {"type": "dbus"}

    # --- display section (only keys the file sets) ---
    display = raw.get("display") or {}
    if not isinstance(display, dict):
        raise ConfigError(f"{path}: display must be a mapping")

    # --- watch section ---
    watch = raw.get("watch") or {}

    try:
        config = SensorsYAMLConfig(
            source=source,
            **{key: display[key] for key in ("layout", "format") if key in display},
            watch_interval_s=watch.get("interval_s", 1),
            watch_sensors=[str(name) for name in watch.get("sensors") or []],
            log_level=str(raw.get("log_level", "WARNING")).upper(),
        )
    except (ValidationError, AttributeError, TypeError) as exc:
        raise ConfigError(f"Invalid config {path}: {exc}") from exc

    logger.info(
        "Loaded config: source=%s, layout=%s, %d watch sensors",
        config.source.get("type"),
        config.layout,
        len(config.watch_sensors),
    )
    return config


def validate_sensor_type(sensor_type: str) -> str:
    """Accept only ``[A-Za-z0-9_]+`` so the type can be appended to an object path."""
    if not _SENSOR_TYPE_RE.fullmatch(sensor_type):
        raise ConfigError(f"Invalid sensor type '{sensor_type}': only letters, digits and '_' are allowed")
    return sensor_type


def validate_interval(value: str | int) -> int:
    """Parse a polling interval; whole seconds, at least 1."""
    try:
        interval = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Interval must be a positive integer, got '{value}'") from exc
    if interval < 1 or str(value).strip() != str(interval):
        raise ConfigError(f"Interval must be a positive integer, got '{value}'")
    return interval
