"""Build a :class:`SensorSource` from the ``source:`` section of the config.

``type`` picks the implementation; the remaining keys become constructor
arguments.  The D-Bus module is imported only when asked for, so snapshot
use works without ``dbus-next`` installed.
"""

from __future__ import annotations

import importlib
import logging
from collections.abc import Mapping
from typing import Any

from bmc_sensors.sources.base import SensorSource

__all__ = ["SOURCE_TYPES", "create_source"]

logger = logging.getLogger("bmc_sensors.sources.factory")

SOURCE_TYPES: dict[str, tuple[str, str]] = {
    "dbus": ("bmc_sensors.sources.dbus", "DBusSource"),
    "snapshot": ("bmc_sensors.sources.snapshot", "SnapshotSource"),
}


def create_source(config: Mapping[str, Any]) -> SensorSource:
    """Return an unconnected source for *config*.

    Raises:
        ValueError: ``type`` is missing or not one of :data:`SOURCE_TYPES`.
        ImportError: ``dbus`` was requested without ``dbus-next``.
    """
    kwargs = {key: value for key, value in config.items() if key != "type"}
    source_type = str(config.get("type") or "").strip().lower()
    if not source_type:
        raise ValueError("Source config must include a 'type' key")
    if source_type not in SOURCE_TYPES:
        raise ValueError(
            f"Unknown source type '{source_type}', expected one of {sorted(SOURCE_TYPES)}"
        )

    module_name, class_name = SOURCE_TYPES[source_type]
    source_cls = getattr(importlib.import_module(module_name), class_name)
    logger.debug("Creating %s source with %s", source_type, kwargs)
    return source_cls(**kwargs)
