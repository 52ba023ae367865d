"""Source abstraction - where sensor paths and properties come from.

Provides:
- ``SensorSource``         - abstract base class every concrete source implements.
- ``SourceError``          - base of all source failures.
- ``SensorsNotFoundError`` - enumeration found nothing under the requested scope.
- ``TransportError``       - the bus / file / connection failed.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from types import TracebackType

from bmc_sensors.models import PropertyBag

__all__ = [
    "SENSORS_ROOT",
    "SensorMap",
    "SensorSource",
    "SensorsNotFoundError",
    "SourceError",
    "TransportError",
]

#: Object path under which every sensor lives.
SENSORS_ROOT = "/xyz/openbmc_project/sensors"

#: Sensor path -> services that provide it.  Treated as an immutable snapshot.
SensorMap = Mapping[str, frozenset[str]]


class SourceError(Exception):
    """Base class for enumeration and fetch failures."""


class SensorsNotFoundError(SourceError):
    """No sensors exist under the requested scope."""


class TransportError(SourceError):
    """Communication with the property store failed."""


def in_scope(path: str, root_scope: str) -> bool:
    """``True`` when *path* is *root_scope* itself or lies below it."""
    root = root_scope.rstrip("/")
    return path == root or path.startswith(root + "/")


class SensorSource(ABC):
    """Abstract base class for all sensor sources.

    Concrete sources implement ``connect``, ``enumerate``,
    ``fetch_properties`` and ``close``.  A source is also an async context
    manager that connects on entry and closes on exit.
    """

    @abstractmethod
    async def connect(self) -> None:
        """Establish connection / open resources."""

    @abstractmethod
    async def enumerate(self, root_scope: str = SENSORS_ROOT) -> SensorMap:
        """Return every sensor path under *root_scope* with its providers.

        Raises:
            SensorsNotFoundError: nothing matched.
            TransportError: discovery failed.
        """

    @abstractmethod
    async def fetch_properties(self, provider: str, path: str) -> PropertyBag:
        """Read all properties of the sensor object *path* owned by *provider*.

        Raises:
            TransportError: the read failed; the caller skips this sensor.
        """

    @abstractmethod
    async def close(self) -> None:
        """Release resources / close connections."""

    async def __aenter__(self) -> SensorSource:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
