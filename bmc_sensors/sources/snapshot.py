"""Snapshot source - serves sensors from a YAML (or JSON) dump of the bus.

Useful for offline inspection, demos and tests.  Expected layout::

    sensors:
      /xyz/openbmc_project/sensors/temperature/temp1:
        providers: [xyz.openbmc_project.HwmonTempSensor]
        properties:
          Value: 4500
          Scale: -2
          Unit: xyz.openbmc_project.Sensor.Value.Unit.DegreesC
          CriticalHigh: 9000
      /xyz/openbmc_project/sensors/fan_tach/fan0:
        error: "Get properties failed"      # simulate a failed read

``providers`` defaults to ``["snapshot"]``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from bmc_sensors.models import PropertyBag
from bmc_sensors.sources.base import (
    SENSORS_ROOT,
    SensorMap,
    SensorSource,
    SensorsNotFoundError,
    TransportError,
    in_scope,
)

__all__ = ["SnapshotEntry", "SnapshotSource"]

logger = logging.getLogger("bmc_sensors.sources.snapshot")


class SnapshotEntry(BaseModel):
    """One sensor object in a snapshot file."""

    providers: list[str] = Field(default_factory=lambda: ["snapshot"])
    properties: dict[str, Any] = Field(default_factory=dict)
    error: str | None = None


class SnapshotSource(SensorSource):
    """Reads sensors from a snapshot file or an in-memory mapping.

    Parameters:
        path: YAML/JSON snapshot file (loaded on ``connect``).
        sensors: Already-parsed ``{path: entry}`` mapping; used instead of
                 *path* when given.
    """

    def __init__(
        self,
        *,
        path: str | Path | None = None,
        sensors: Mapping[str, Any] | None = None,
    ) -> None:
        if path is None and sensors is None:
            raise ValueError("SnapshotSource needs either 'path' or 'sensors'")
        self._path = Path(path) if path is not None else None
        self._raw = sensors
        self._entries: dict[str, SnapshotEntry] = {}

    async def connect(self) -> None:
        raw = self._raw if self._raw is not None else self._load_file()
        try:
            self._entries = {
                str(obj_path): SnapshotEntry.model_validate(entry or {})
                for obj_path, entry in raw.items()
            }
        except ValidationError as exc:
            raise TransportError(f"Invalid snapshot: {exc}") from exc
        logger.info("Snapshot loaded: %d sensor objects", len(self._entries))

    def _load_file(self) -> Mapping[str, Any]:
        assert self._path is not None
        try:
            with self._path.open("r", encoding="utf-8") as fh:
                data = yaml.safe_load(fh) or {}
        except OSError as exc:
            raise TransportError(f"Cannot read snapshot {self._path}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise TransportError(f"Cannot parse snapshot {self._path}: {exc}") from exc

        sensors = data.get("sensors") if isinstance(data, dict) else None
        if not isinstance(sensors, dict):
            raise TransportError(f"Snapshot {self._path} has no 'sensors' mapping")
        return sensors

    async def enumerate(self, root_scope: str = SENSORS_ROOT) -> SensorMap:
        found = {
            obj_path: frozenset(entry.providers)
            for obj_path, entry in self._entries.items()
            if in_scope(obj_path, root_scope)
        }
        if not found:
            raise SensorsNotFoundError(f"No sensors found under {root_scope}")
        logger.debug("Enumerated %d sensors under %s", len(found), root_scope)
        return MappingProxyType(found)

    async def fetch_properties(self, provider: str, path: str) -> PropertyBag:
        entry = self._entries.get(path)
        if entry is None or provider not in entry.providers:
            raise TransportError(f"Unknown object {path} on {provider}")
        if entry.error is not None:
            raise TransportError(entry.error)
        return PropertyBag.from_mapping(entry.properties)

    async def close(self) -> None:
        self._entries = {}
