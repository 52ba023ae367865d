"""Tests for bmc_sensors.presenter – table writer, grouping, list and watch."""

from __future__ import annotations

import io
import json
import logging
from typing import Any

import pytest

from bmc_sensors.config import ConfigError
from bmc_sensors.interpreter import interpret
from bmc_sensors.models import PropertyBag, SensorStatus
from bmc_sensors.presenter import (
    LAYOUTS,
    SensorPresenter,
    TableWriter,
    fit,
    resolve_names,
    run_blocking,
    sort_grouped,
)
from bmc_sensors.sorting import sort_paths
from bmc_sensors.sources import SnapshotSource
from bmc_sensors.sources.base import SensorsNotFoundError

# -----------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------

_ROOT = "/xyz/openbmc_project/sensors"
_DEG_C = "xyz.openbmc_project.Sensor.Value.Unit.DegreesC"


def _sensors() -> dict[str, Any]:
    """A small BMC: three temperatures, one fan, one broken voltage rail."""
    return {
        f"{_ROOT}/temperature/temp10": {"properties": {"Value": 5100, "Scale": -2, "Unit": _DEG_C}},
        f"{_ROOT}/temperature/temp2": {"properties": {"Value": 4200, "Scale": -2, "Unit": _DEG_C}},
        f"{_ROOT}/temperature/temp1": {
            "properties": {"Value": 4000, "Scale": -2, "Unit": _DEG_C, "CriticalHigh": 9000}
        },
        f"{_ROOT}/fan_tach/fan0": {
            "properties": {
                "Value": 7200.0,
                "Unit": "xyz.openbmc_project.Sensor.Value.Unit.RPMS",
                "WarningAlarmLow": True,
            }
        },
        f"{_ROOT}/voltage/p12v": {"error": "Get properties for p12v failed"},
    }


def _presenter(fmt: str = "text", layout: str = "full") -> tuple[SensorPresenter, io.StringIO]:
    buf = io.StringIO()
    writer = TableWriter(LAYOUTS[layout], fmt=fmt, stream=buf)
    return SensorPresenter(SnapshotSource(sensors=_sensors()), writer), buf


def _names_in_order(output: str, names: list[str]) -> list[int]:
    return [output.index(f"\n{name} ") for name in names]


# -----------------------------------------------------------------------
# Grouped ordering
# -----------------------------------------------------------------------


class TestSortGrouped:
    def test_types_stay_contiguous(self) -> None:
        paths = ["/s/a01/z", "/s/a1/m", "/s/a01/b"]
        assert sort_paths(paths) == ["/s/a01/b", "/s/a1/m", "/s/a01/z"]
        assert sort_grouped(paths) == ["/s/a01/b", "/s/a01/z", "/s/a1/m"]

    def test_natural_within_and_across_groups(self) -> None:
        paths = [
            f"{_ROOT}/temperature/temp10",
            f"{_ROOT}/fan_tach/fan1",
            f"{_ROOT}/temperature/temp2",
            f"{_ROOT}/fan_tach/fan0",
        ]
        assert sort_grouped(paths) == [
            f"{_ROOT}/fan_tach/fan0",
            f"{_ROOT}/fan_tach/fan1",
            f"{_ROOT}/temperature/temp2",
            f"{_ROOT}/temperature/temp10",
        ]

    def test_one_header_per_type(self) -> None:
        buf = io.StringIO()
        writer = TableWriter(stream=buf)
        for path in sort_grouped(["/s/a01/z", "/s/a1/m", "/s/a01/b"]):
            writer.write(interpret(path, PropertyBag(properties={"Value": 1.0})))
        out = buf.getvalue()
        assert out.count("\na01\n") == 1
        assert out.count("\na1\n") == 1


# -----------------------------------------------------------------------
# fit / layouts
# -----------------------------------------------------------------------


class TestFit:
    def test_pads(self) -> None:
        assert fit("1.000", 7) == "1.000  "

    def test_truncates(self) -> None:
        assert fit("123456789", 7) == "1234567"

    def test_degree_glyph_is_one_cell(self) -> None:
        assert fit("°C", 4) == "°C  "

    def test_layouts(self) -> None:
        assert LAYOUTS["full"].value_width == 9
        assert LAYOUTS["compact"].value_width == 7
        assert "FatalHigh" in LAYOUTS["full"].thresholds
        assert LAYOUTS["compact"].thresholds == ("CriticalLow", "CriticalHigh")


# -----------------------------------------------------------------------
# TableWriter
# -----------------------------------------------------------------------


class TestTableWriter:
    """Row format and group headers."""

    def _view(self, path: str, **props: Any):
        return interpret(path, PropertyBag(properties=props))

    def test_unknown_format(self) -> None:
        with pytest.raises(ValueError):
            TableWriter(fmt="xml")

    def test_header_once_per_group(self) -> None:
        buf = io.StringIO()
        writer = TableWriter(stream=buf)
        writer.write(self._view(f"{_ROOT}/temperature/temp1", Value=1.0))
        writer.write(self._view(f"{_ROOT}/temperature/temp2", Value=2.0))
        writer.write(self._view(f"{_ROOT}/voltage/p3v3", Value=3.3))
        out = buf.getvalue()
        assert out.count("\ntemperature\n") == 1
        assert out.count("\nvoltage\n") == 1
        assert writer.last_group == "voltage"

    def test_header_repeats_when_group_returns(self) -> None:
        buf = io.StringIO()
        writer = TableWriter(stream=buf)
        writer.write(self._view(f"{_ROOT}/temperature/temp1"))
        writer.write(self._view(f"{_ROOT}/voltage/p3v3"))
        writer.write(self._view(f"{_ROOT}/temperature/temp2"))
        assert buf.getvalue().count("\ntemperature\n") == 2

    def test_row_columns(self) -> None:
        writer = TableWriter(LAYOUTS["compact"], stream=io.StringIO())
        view = self._view(
            f"{_ROOT}/temperature/temp1",
            Value=4500,
            Scale=-2,
            Unit=_DEG_C,
            CriticalLow=500,
            CriticalHigh=9000,
            WarningHigh=8000,
        )
        row = writer.row(view)
        assert row == f"{'temp1':<16} {'OK':<8} {'45.000':<7} {'°C':<4} {'5.000':<7} 90.000\n"

    def test_unknown_unit_is_not_cut(self) -> None:
        writer = TableWriter(LAYOUTS["full"], stream=io.StringIO())
        row = writer.row(
            self._view(
                f"{_ROOT}/pressure/baro0",
                Value=101.3,
                Unit="xyz.openbmc_project.Sensor.Value.Unit.Pascals",
            )
        )
        assert " Pascals " in row
        assert row.startswith(f"{'baro0':<16} {'OK':<8} {'101.300':<9} Pascals N/A")

    def test_missing_unit_is_not_cut(self) -> None:
        writer = TableWriter(LAYOUTS["compact"], stream=io.StringIO())
        row = writer.row(self._view(f"{_ROOT}/temperature/temp1", Value=1.0))
        assert " Unknown " in row

    def test_long_name_is_not_cut(self) -> None:
        writer = TableWriter(LAYOUTS["full"], stream=io.StringIO())
        row = writer.row(self._view(f"{_ROOT}/temperature/CPU0_VR_VCCIN_Temp", Value=40.0))
        assert row.startswith("CPU0_VR_VCCIN_Temp OK ")

    def test_full_layout_has_all_threshold_titles(self) -> None:
        header = TableWriter(LAYOUTS["full"], stream=io.StringIO()).header("temperature")
        for title in ("Name", "Status", "Value", "Unit", "CritLow", "WarnLow", "WarnHigh", "CritHigh", "Fatal"):
            assert title in header

    def test_json_lines(self) -> None:
        buf = io.StringIO()
        writer = TableWriter(fmt="json", stream=buf)
        writer.write(self._view(f"{_ROOT}/temperature/temp1", Value=1.0))
        data = json.loads(buf.getvalue())
        assert data["name"] == "temp1"
        assert data["value"] == "1.000"
        assert writer.last_group is None


# -----------------------------------------------------------------------
# resolve_names
# -----------------------------------------------------------------------


class TestResolveNames:
    _MAP = {
        f"{_ROOT}/temperature/temp10": frozenset({"a"}),
        f"{_ROOT}/temperature/temp2": frozenset({"a"}),
        f"{_ROOT}/fan_tach/fan0": frozenset({"b"}),
    }

    def test_sorted_naturally(self) -> None:
        assert resolve_names(["temp10", "fan0", "temp2"], self._MAP) == [
            f"{_ROOT}/fan_tach/fan0",
            f"{_ROOT}/temperature/temp2",
            f"{_ROOT}/temperature/temp10",
        ]

    def test_full_path(self) -> None:
        assert resolve_names([f"{_ROOT}/fan_tach/fan0"], self._MAP) == [f"{_ROOT}/fan_tach/fan0"]

    def test_duplicates_collapsed(self) -> None:
        assert resolve_names(["fan0", "fan0"], self._MAP) == [f"{_ROOT}/fan_tach/fan0"]

    def test_unresolved_name(self) -> None:
        with pytest.raises(ConfigError, match="temp3"):
            resolve_names(["temp2", "temp3"], self._MAP)


# -----------------------------------------------------------------------
# SensorPresenter.list_sensors
# -----------------------------------------------------------------------


class TestListSensors:
    """One-shot listing."""

    @pytest.mark.asyncio
    async def test_grouped_and_sorted(self) -> None:
        presenter, buf = _presenter()
        written = await presenter.list_sensors()
        out = buf.getvalue()

        assert written == 4
        assert out.index("\nfan_tach\n") < out.index("\ntemperature\n")
        positions = _names_in_order(out, ["fan0", "temp1", "temp2", "temp10"])
        assert positions == sorted(positions)
        assert "voltage" not in out

    @pytest.mark.asyncio
    async def test_fetch_failure_logged_and_skipped(self, caplog: pytest.LogCaptureFixture) -> None:
        presenter, _ = _presenter()
        with caplog.at_level(logging.ERROR, logger="bmc_sensors"):
            await presenter.list_sensors()
        assert any("p12v" in rec.getMessage() for rec in caplog.records)

    @pytest.mark.asyncio
    async def test_values_and_status(self) -> None:
        presenter, buf = _presenter()
        await presenter.list_sensors()
        out = buf.getvalue()
        fan_row = next(line for line in out.splitlines() if line.startswith("fan0 "))
        assert SensorStatus.WARNING.value in fan_row
        assert "7200" in fan_row
        assert "RPM" in fan_row
        temp_row = next(line for line in out.splitlines() if line.startswith("temp1 "))
        assert "40.000" in temp_row
        assert "90.000" in temp_row

    @pytest.mark.asyncio
    async def test_type_filter(self) -> None:
        presenter, buf = _presenter()
        written = await presenter.list_sensors("temperature")
        assert written == 3
        assert "fan_tach" not in buf.getvalue()

    @pytest.mark.asyncio
    async def test_nothing_found(self) -> None:
        presenter, buf = _presenter()
        with pytest.raises(SensorsNotFoundError):
            await presenter.list_sensors("current")
        assert buf.getvalue() == ""

    @pytest.mark.asyncio
    async def test_one_row_per_provider(self) -> None:
        sensors = {
            f"{_ROOT}/power/psu0": {"providers": ["svc.B", "svc.A"], "properties": {"Value": 250.0}},
        }
        buf = io.StringIO()
        presenter = SensorPresenter(SnapshotSource(sensors=sensors), TableWriter(fmt="json", stream=buf))
        assert await presenter.list_sensors() == 2
        providers = [json.loads(line)["provider"] for line in buf.getvalue().splitlines()]
        assert providers == ["svc.A", "svc.B"]


# -----------------------------------------------------------------------
# SensorPresenter.watch
# -----------------------------------------------------------------------


class TestWatch:
    """Periodic refresh of a fixed subset."""

    @pytest.mark.asyncio
    async def test_single_cycle(self) -> None:
        presenter, buf = _presenter(layout="compact")
        cycles = await presenter.watch(["temp10", "temp2"], 1, cycles=1)
        out = buf.getvalue()
        assert cycles == 1
        assert out.index("\ntemp2 ") < out.index("\ntemp10 ")
        assert "temp1 " not in out

    @pytest.mark.asyncio
    async def test_header_not_repeated_across_cycles(self) -> None:
        presenter, buf = _presenter(layout="compact")
        cycles = await presenter.watch(["temp1"], 1, cycles=2)
        out = buf.getvalue()
        assert cycles == 2
        assert out.count("\ntemperature\n") == 1
        assert out.count("\ntemp1 ") == 2

    @pytest.mark.asyncio
    async def test_unresolved_name_fails_before_output(self) -> None:
        presenter, buf = _presenter()
        with pytest.raises(ConfigError):
            await presenter.watch(["temp1", "nope"], 1, cycles=1)
        assert buf.getvalue() == ""

    @pytest.mark.asyncio
    async def test_invalid_interval(self) -> None:
        presenter, _ = _presenter()
        with pytest.raises(ConfigError):
            await presenter.watch(["temp1"], 0, cycles=1)

    @pytest.mark.asyncio
    async def test_no_names_watches_scope(self) -> None:
        presenter, buf = _presenter()
        await presenter.watch([], 1, sensor_type="fan_tach", cycles=1)
        assert "fan0" in buf.getvalue()
        assert "temp1" not in buf.getvalue()


# -----------------------------------------------------------------------
# run_blocking
# -----------------------------------------------------------------------


class TestRunBlocking:
    def test_returns_result(self) -> None:
        presenter, buf = _presenter()
        assert run_blocking(presenter.list_sensors("fan_tach")) == 1
        assert "fan0" in buf.getvalue()

    @pytest.mark.asyncio
    async def test_inside_running_loop(self) -> None:
        presenter, _ = _presenter()
        assert run_blocking(presenter.list_sensors("temperature")) == 3

    def test_propagates_errors(self) -> None:
        presenter, _ = _presenter()
        with pytest.raises(SensorsNotFoundError):
            run_blocking(presenter.list_sensors("current"))
