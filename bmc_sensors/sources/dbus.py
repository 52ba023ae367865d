"""D-Bus source - talks to the OpenBMC object mapper and sensor daemons.

Requires the ``dbus`` extra::

    pip install bmc-sensors[dbus]

Discovery calls ``xyz.openbmc_project.ObjectMapper.GetSubTree`` restricted
to objects implementing ``xyz.openbmc_project.Sensor.Value``; properties are
read with ``org.freedesktop.DBus.Properties.GetAll`` on every interface of
the object, which merges value, threshold and availability properties into
one bag.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any

from bmc_sensors.models import PropertyBag
from bmc_sensors.sources.base import (
    SENSORS_ROOT,
    SensorMap,
    SensorSource,
    SensorsNotFoundError,
    TransportError,
)

__all__ = ["DBusSource"]

logger = logging.getLogger("bmc_sensors.sources.dbus")

try:
    from dbus_next import BusType, Message, MessageType
    from dbus_next.aio import MessageBus
    from dbus_next.errors import DBusError

    DBUS_AVAILABLE = True
except ImportError:
    DBUS_AVAILABLE = False

MAPPER_BUS = "xyz.openbmc_project.ObjectMapper"
MAPPER_PATH = "/xyz/openbmc_project/object_mapper"
MAPPER_IFACE = "xyz.openbmc_project.ObjectMapper"
PROPERTIES_IFACE = "org.freedesktop.DBus.Properties"
SENSOR_VALUE_IFACE = "xyz.openbmc_project.Sensor.Value"
RESOURCE_NOT_FOUND = "xyz.openbmc_project.Common.Error.ResourceNotFound"


class DBusSource(SensorSource):
    """Reads sensors from a live D-Bus.

    Parameters:
        bus: ``"system"`` (default) or ``"session"``.
        address: Explicit bus address (e.g. a TCP or unix socket address of a
                 remote BMC).  Overrides *bus* when set.
    """

    def __init__(self, *, bus: str = "system", address: str | None = None) -> None:
        if not DBUS_AVAILABLE:
            raise ImportError(
                "dbus-next is required for DBusSource.  Install with: pip install bmc-sensors[dbus]"
            )
        bus = bus.lower().strip()
        if bus not in ("system", "session"):
            raise ValueError(f"Unknown bus '{bus}', expected 'system' or 'session'")
        self._bus_type = BusType.SYSTEM if bus == "system" else BusType.SESSION
        self._address = address
        self._bus: Any = None

    async def connect(self) -> None:
        try:
            self._bus = await MessageBus(bus_address=self._address, bus_type=self._bus_type).connect()
        except (DBusError, OSError, ValueError) as exc:
            raise TransportError(f"Cannot connect to D-Bus: {exc}") from exc
        logger.info("Connected to D-Bus (%s)", self._address or self._bus_type.name.lower())

    async def _call(self, message: Any) -> Any:
        if self._bus is None:
            raise TransportError("DBusSource is not connected")
        try:
            return await self._bus.call(message)
        except (DBusError, OSError, EOFError) as exc:
            raise TransportError(f"{message.member} on {message.path} failed: {exc}") from exc

    async def enumerate(self, root_scope: str = SENSORS_ROOT) -> SensorMap:
        message = Message(
            destination=MAPPER_BUS,
            path=MAPPER_PATH,
            interface=MAPPER_IFACE,
            member="GetSubTree",
            signature="sias",
            body=[root_scope, 0, [SENSOR_VALUE_IFACE]],
        )
        reply = await self._call(message)

        if reply.message_type == MessageType.ERROR:
            if reply.error_name == RESOURCE_NOT_FOUND:
                raise SensorsNotFoundError(f"No sensors found under {root_scope}")
            raise TransportError(f"Call GetSubTree() failed: {reply.error_name}")

        subtree: dict[str, dict[str, list[str]]] = reply.body[0] if reply.body else {}
        if not subtree:
            raise SensorsNotFoundError(f"No sensors found under {root_scope}")

        logger.debug("GetSubTree(%s) returned %d objects", root_scope, len(subtree))
        return MappingProxyType({path: frozenset(services) for path, services in subtree.items()})

    async def fetch_properties(self, provider: str, path: str) -> PropertyBag:
        message = Message(
            destination=provider,
            path=path,
            interface=PROPERTIES_IFACE,
            member="GetAll",
            signature="s",
            body=[""],
        )
        reply = await self._call(message)

        if reply.message_type == MessageType.ERROR:
            raise TransportError(f"Get properties for {path} failed: {reply.error_name}")

        variants = reply.body[0] if reply.body else {}
        return PropertyBag.from_mapping({name: variant.value for name, variant in variants.items()})

    async def close(self) -> None:
        if self._bus is not None:
            self._bus.disconnect()
            self._bus = None
