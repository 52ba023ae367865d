"""Common data models for the BMC sensor lister.

Defines the ``PropertyBag`` (raw, loosely-typed properties of one sensor as
read from the platform management service) and the ``SensorView`` - the
display-ready record every writer receives.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from typing import Any, Union

from pydantic import BaseModel, Field, StrictBool, StrictFloat, StrictInt, StrictStr

__all__ = [
    "PropertyBag",
    "PropertyValue",
    "SensorStatus",
    "SensorView",
    "sensor_name",
    "sensor_type",
]

#: A single property value.  Strict types keep ``True`` from validating as
#: ``1`` and ``1`` from validating as ``"1"``.
PropertyValue = Union[StrictBool, StrictInt, StrictFloat, StrictStr]


class SensorStatus(StrEnum):
    """Health label shown in the status column."""

    OK = "OK"
    WARNING = "Warning"
    CRITICAL = "Critical"
    FATAL = "Fatal"
    FAIL = "FAIL"
    NOT_AVAILABLE = "N/A"


# -----------------------------------------------------------------------
# Sensor path helpers
# -----------------------------------------------------------------------


def sensor_name(path: str) -> str:
    """Return the final ``/``-delimited segment of *path*."""
    return path.rsplit("/", 1)[-1]


def sensor_type(path: str) -> str:
    """Return the segment preceding the sensor name, e.g. ``"temperature"``
    for ``/xyz/openbmc_project/sensors/temperature/temp1``.

    Paths without a parent segment have an empty type.
    """
    parts = path.rsplit("/", 2)
    if len(parts) < 3:
        return ""
    return parts[1]


# -----------------------------------------------------------------------
# Property bag
# -----------------------------------------------------------------------


class PropertyBag(BaseModel):
    """Properties of one sensor, keyed by D-Bus property name.

    Absence of a key is a valid state and is always distinguishable from a
    present ``False`` / ``0``.  The typed accessors return ``None`` both when
    the key is missing and when the stored value has another type, so callers
    never have to probe types themselves.
    """

    model_config = {"frozen": True}

    properties: dict[str, PropertyValue] = Field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> PropertyBag:
        """Build a bag from an arbitrary mapping, dropping values that are
        not a bool, int, float or str (arrays, structs, object paths lists).
        """
        kept: dict[str, PropertyValue] = {}
        for key, value in data.items():
            if isinstance(value, (bool, int, float, str)):
                kept[str(key)] = value
        return cls(properties=kept)

    def __contains__(self, key: object) -> bool:
        return key in self.properties

    def __len__(self) -> int:
        return len(self.properties)

    def get_bool(self, key: str) -> bool | None:
        value = self.properties.get(key)
        return value if isinstance(value, bool) else None

    def get_int(self, key: str) -> int | None:
        value = self.properties.get(key)
        if isinstance(value, bool) or not isinstance(value, int):
            return None
        return value

    def get_float(self, key: str) -> float | None:
        value = self.properties.get(key)
        return value if isinstance(value, float) else None

    def get_str(self, key: str) -> str | None:
        value = self.properties.get(key)
        return value if isinstance(value, str) else None

    def is_false(self, key: str) -> bool:
        """``True`` only when *key* is present and holds boolean ``False``."""
        return self.get_bool(key) is False


# -----------------------------------------------------------------------
# Derived view
# -----------------------------------------------------------------------


class SensorView(BaseModel):
    """Display-ready view of a single sensor reading.

    Derived from exactly one :class:`PropertyBag`; never cached or updated
    after construction.

    Attributes:
        path: Full object path of the sensor.
        type: Sensor-type segment of the path (group key).
        name: Short sensor name (last path segment).
        provider: Service that owns the sensor object.
        status: Health label.
        value: Formatted reading or ``"N/A"``.
        unit: Display unit symbol, e.g. ``"°C"``.
        thresholds: Formatted threshold per threshold property name.
    """

    model_config = {"frozen": True}

    path: str
    type: str
    name: str
    provider: str = ""
    status: SensorStatus
    value: str
    unit: str
    thresholds: dict[str, str] = Field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Return a plain ``dict`` representation (JSON-safe types)."""
        return self.model_dump(mode="json")

    def to_json(self) -> str:
        """Return a compact JSON string."""
        return self.model_dump_json()
