"""Presenter - wires a :class:`SensorSource` to a :class:`TableWriter`.

One cycle enumerates sensor paths, sorts them in natural order, fetches
each sensor's properties, interprets them and writes one row per sensor.
Rows are grouped by the sensor-type path segment; a group header is printed
whenever the type changes.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
import sys
import threading
from collections.abc import Coroutine, Iterable, Sequence
from typing import IO, Any, TypeVar

from pydantic import BaseModel

from bmc_sensors.config import ConfigError
from bmc_sensors.interpreter import interpret
from bmc_sensors.models import SensorView, sensor_name, sensor_type
from bmc_sensors.sorting import path_sort_key, sort_paths
from bmc_sensors.sources.base import SENSORS_ROOT, SensorMap, SensorSource, TransportError

__all__ = [
    "LAYOUTS",
    "SensorPresenter",
    "TableLayout",
    "TableWriter",
    "fit",
    "resolve_names",
    "run_blocking",
    "sort_grouped",
]

logger = logging.getLogger("bmc_sensors")

T = TypeVar("T")


# -----------------------------------------------------------------------
# Table layout
# -----------------------------------------------------------------------


class TableLayout(BaseModel):
    """Column set and widths of the text table.

    Attributes:
        name: Layout name used on the command line.
        thresholds: Threshold properties shown, in column order.
        value_width: Width of the value and threshold columns.
        name_width: Minimum width of the sensor name column (names are never cut).
        status_width: Width of the status column.
        unit_width: Minimum width of the unit column (units are never cut).
    """

    model_config = {"frozen": True}

    name: str
    thresholds: tuple[str, ...]
    value_width: int
    name_width: int = 16
    status_width: int = 8
    unit_width: int = 4


LAYOUTS: dict[str, TableLayout] = {
    "full": TableLayout(
        name="full",
        thresholds=("CriticalLow", "WarningLow", "WarningHigh", "CriticalHigh", "FatalHigh"),
        value_width=9,
    ),
    "compact": TableLayout(
        name="compact",
        thresholds=("CriticalLow", "CriticalHigh"),
        value_width=7,
    ),
}

_COLUMN_TITLES = {
    "CriticalLow": "CritLow",
    "CriticalHigh": "CritHigh",
    "WarningLow": "WarnLow",
    "WarningHigh": "WarnHigh",
    "FatalHigh": "Fatal",
}


def fit(text: str, width: int) -> str:
    """Right-pad or truncate *text* to exactly *width* characters."""
    return text[:width].ljust(width)


def sort_grouped(paths: Iterable[str]) -> list[str]:
    """Natural order with each sensor type kept contiguous.

    Types such as ``a01`` and ``a1`` compare equal under the natural order,
    so the raw type string breaks the tie before the full path is compared.
    """

    def key(path: str) -> tuple[Any, str, Any]:
        kind = sensor_type(path)
        return path_sort_key(kind), kind, path_sort_key(path)

    return sorted(paths, key=key)


# -----------------------------------------------------------------------
# Writer
# -----------------------------------------------------------------------


class TableWriter:
    """Writes sensor views as grouped table rows (or JSON lines).

    The writer owns the "last group printed" marker, so consecutive cycles
    of a watch run only repeat the header when the sensor type changes.

    Parameters:
        layout: Table layout for text output.
        fmt: ``"text"`` (grouped table) or ``"json"`` (one object per line).
        stream: Writable file-like object (defaults to ``sys.stdout``).
    """

    def __init__(
        self,
        layout: TableLayout | None = None,
        *,
        fmt: str = "text",
        stream: IO[str] | None = None,
    ) -> None:
        if fmt not in ("text", "json"):
            raise ValueError(f"Unknown output format '{fmt}'")
        self.layout = layout or LAYOUTS["full"]
        self._fmt = fmt
        self._stream = stream or sys.stdout
        self._last_group: str | None = None

    @property
    def last_group(self) -> str | None:
        return self._last_group

    def header(self, group: str) -> str:
        lay = self.layout
        columns = [
            fit("Name", lay.name_width),
            fit("Status", lay.status_width),
            fit("Value", lay.value_width),
            fit("Unit", lay.unit_width),
        ]
        columns += [fit(_COLUMN_TITLES.get(key, key), lay.value_width) for key in lay.thresholds]
        title_line = " ".join(columns).rstrip()
        return f"\n{group or '(untyped)'}\n{title_line}\n{'-' * len(title_line)}\n"

    def row(self, view: SensorView) -> str:
        lay = self.layout
        columns = [
            view.name.ljust(lay.name_width),
            fit(view.status.value, lay.status_width),
            fit(view.value, lay.value_width),
            view.unit.ljust(lay.unit_width),
        ]
        columns += [fit(view.thresholds.get(key, "N/A"), lay.value_width) for key in lay.thresholds]
        return " ".join(columns).rstrip() + "\n"

    def write(self, view: SensorView) -> None:
        if self._fmt == "json":
            self._stream.write(view.to_json() + "\n")
        else:
            if view.type != self._last_group:
                self._stream.write(self.header(view.type))
                self._last_group = view.type
            self._stream.write(self.row(view))
        self._stream.flush()


# -----------------------------------------------------------------------
# Watch-list resolution
# -----------------------------------------------------------------------


def resolve_names(names: Sequence[str], sensors: SensorMap) -> list[str]:
    """Map watch-list *names* to enumerated paths, in natural order.

    A name matches a path equal to it or whose last segment equals it.

    Raises:
        ConfigError: some name matched nothing.
    """
    ordered = sort_paths(sensors)
    selected: list[str] = []
    missing: list[str] = []
    for name in names:
        matches = [p for p in ordered if p == name or sensor_name(p) == name]
        if not matches:
            missing.append(name)
        selected.extend(m for m in matches if m not in selected)
    if missing:
        raise ConfigError(f"Sensor(s) not found: {', '.join(missing)}")
    return sort_grouped(selected)


# -----------------------------------------------------------------------
# Presenter
# -----------------------------------------------------------------------


class SensorPresenter:
    """High-level API for listing and watching sensors.

    Example::

        from bmc_sensors.presenter import SensorPresenter, TableWriter, run_blocking
        from bmc_sensors.sources import SnapshotSource

        presenter = SensorPresenter(SnapshotSource(path="dump.yaml"), TableWriter())
        run_blocking(presenter.list_sensors("temperature"))

    Parameters:
        source: Where sensors are enumerated and read from.
        writer: Receives one :class:`SensorView` per sensor.
        root_scope: Object path enumeration starts from.
    """

    def __init__(
        self,
        source: SensorSource,
        writer: TableWriter,
        *,
        root_scope: str = SENSORS_ROOT,
    ) -> None:
        self._source = source
        self._writer = writer
        self._root_scope = root_scope.rstrip("/")

    def scope_for(self, sensor_type: str | None) -> str:
        if sensor_type:
            return f"{self._root_scope}/{sensor_type}"
        return self._root_scope

    async def show(self, path: str, providers: frozenset[str]) -> int:
        """Fetch, interpret and write *path* once per provider.

        Fetch failures are logged and skipped.  Returns rows written.
        """
        written = 0
        for provider in sorted(providers):
            try:
                bag = await self._source.fetch_properties(provider, path)
            except TransportError as exc:
                logger.error("Get properties for %s failed: %s", path, exc)
                continue
            self._writer.write(interpret(path, bag, provider=provider))
            written += 1
        return written

    async def show_paths(self, paths: Sequence[str], sensors: SensorMap) -> int:
        written = 0
        for path in paths:
            written += await self.show(path, sensors[path])
        return written

    async def list_sensors(self, sensor_type: str | None = None) -> int:
        """One-shot listing of every sensor (optionally of one type).

        Raises:
            SensorsNotFoundError / TransportError: enumeration failed.
        """
        async with self._source:
            sensors = await self._source.enumerate(self.scope_for(sensor_type))
            written = await self.show_paths(sort_grouped(sensors), sensors)
        logger.info("Listed %d sensor rows", written)
        return written

    async def watch(
        self,
        names: Sequence[str],
        interval_s: int = 1,
        *,
        sensor_type: str | None = None,
        cycles: int | None = None,
    ) -> int:
        """Repeatedly show the sensors in *names* every *interval_s* seconds.

        Every name must resolve to at least one sensor before anything is
        printed.  Runs until SIGINT/SIGTERM or, when given, *cycles* cycles.

        Raises:
            ConfigError: a name did not resolve, or *interval_s* < 1.
            SensorsNotFoundError / TransportError: enumeration failed.
        """
        if interval_s < 1:
            raise ConfigError(f"Interval must be a positive integer, got {interval_s}")

        async with self._source:
            sensors = await self._source.enumerate(self.scope_for(sensor_type))
            paths = resolve_names(names, sensors) if names else sort_grouped(sensors)

            loop = asyncio.get_running_loop()
            stop_event = asyncio.Event()
            # NotImplementedError: Windows; RuntimeError: not the main thread.
            for sig in (signal.SIGINT, signal.SIGTERM):
                with contextlib.suppress(NotImplementedError, RuntimeError):
                    loop.add_signal_handler(sig, stop_event.set)

            logger.info("Watching %d sensors every %ds", len(paths), interval_s)
            count = 0
            try:
                while not stop_event.is_set():
                    await self.show_paths(paths, sensors)
                    count += 1
                    if cycles is not None and count >= cycles:
                        break
                    with contextlib.suppress(asyncio.TimeoutError):
                        await asyncio.wait_for(stop_event.wait(), timeout=interval_s)
            except asyncio.CancelledError:
                logger.info("Watch cancelled")
            finally:
                for sig in (signal.SIGINT, signal.SIGTERM):
                    with contextlib.suppress(NotImplementedError, RuntimeError):
                        loop.remove_signal_handler(sig)
        return count


# -----------------------------------------------------------------------
# Blocking runner
# -----------------------------------------------------------------------


def run_blocking(coro: Coroutine[Any, Any, T]) -> T | None:
    """Run *coro* to completion from synchronous code.

    Works inside environments that already have a running event loop
    (Jupyter, IPython) by spawning a dedicated thread with its own loop.
    Returns ``None`` when interrupted with Ctrl-C.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None

    if loop is None or not loop.is_running():
        try:
            return asyncio.run(coro)
        except KeyboardInterrupt:
            logger.info("Interrupted by user")
            return None

    result: list[T | None] = [None]
    exc: list[BaseException | None] = [None]

    def _target() -> None:
        try:
            result[0] = asyncio.run(coro)
        except KeyboardInterrupt:
            logger.info("Interrupted by user")
        except BaseException as e:
            exc[0] = e

    t = threading.Thread(target=_target, daemon=True)
    t.start()
    t.join()
    if exc[0] is not None:
        raise exc[0]
    return result[0]
