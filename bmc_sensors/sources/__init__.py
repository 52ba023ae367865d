"""Pluggable sensor sources.

Import any source you need directly from this package::

    from bmc_sensors.sources import SnapshotSource, DBusSource
"""

from __future__ import annotations

import importlib
from typing import Any

from bmc_sensors.sources.base import (
    SENSORS_ROOT,
    SensorSource,
    SensorsNotFoundError,
    SourceError,
    TransportError,
)
from bmc_sensors.sources.snapshot import SnapshotSource

# DBusSource needs the optional ``dbus`` extra; it is loaded on first access.

__all__ = [
    "SENSORS_ROOT",
    "SensorSource",
    "SensorsNotFoundError",
    "SnapshotSource",
    "SourceError",
    "TransportError",
]


def __getattr__(name: str) -> Any:
    """Lazy-import sources that require optional dependencies."""
    if name == "DBusSource":
        mod = importlib.import_module("bmc_sensors.sources.dbus")
        return mod.DBusSource
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
