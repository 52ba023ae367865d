"""Property interpreter - turns a raw :class:`PropertyBag` into a
display-ready :class:`SensorView`.

Partial and heterogeneous bags are the normal case (fans have no
``FatalHigh``, power supplies often lack thresholds entirely), so nothing
here raises: every missing or mistyped property degrades to ``"N/A"``,
``"Unknown"`` or a pass-through value.
"""

from __future__ import annotations

import math

from bmc_sensors.models import PropertyBag, SensorStatus, SensorView, sensor_name, sensor_type

__all__ = [
    "NOT_AVAILABLE",
    "THRESHOLD_KEYS",
    "UNIT_SYMBOLS",
    "UNKNOWN",
    "alarm_status",
    "availability",
    "format_reading",
    "interpret",
    "scale_factor",
    "sensor_status",
    "unit_symbol",
]

NOT_AVAILABLE = "N/A"
UNKNOWN = "Unknown"

THRESHOLD_KEYS: tuple[str, ...] = (
    "CriticalLow",
    "CriticalHigh",
    "WarningLow",
    "WarningHigh",
    "FatalHigh",
)

# Last segment of xyz.openbmc_project.Sensor.Value.Unit.* -> display symbol
UNIT_SYMBOLS: dict[str, str] = {
    "Volts": "V",
    "DegreesC": "°C",
    "Amperes": "A",
    "RPMS": "RPM",
    "Watts": "W",
    "Joules": "J",
    "Meters": "m",
    "Percent": "%",
}

# Values at or above this magnitude are shown without decimals
_DECIMAL_LIMIT = 1000

# Integer factors keep int64 readings exact; larger exponents go through float
_MAX_EXACT_SCALE = 18


# -----------------------------------------------------------------------
# Status
# -----------------------------------------------------------------------


def availability(bag: PropertyBag) -> SensorStatus:
    """Functional / availability gate.

    ``Functional=False`` wins over ``Available=False``; a missing flag counts
    as satisfied.
    """
    if bag.is_false("Functional"):
        return SensorStatus.FAIL
    if bag.is_false("Available"):
        return SensorStatus.NOT_AVAILABLE
    return SensorStatus.OK


def alarm_status(bag: PropertyBag) -> SensorStatus:
    """Highest-priority asserted alarm.  Missing alarms are not asserted."""
    if bag.get_bool("FatalAlarmHigh"):
        return SensorStatus.FATAL
    if bag.get_bool("CriticalAlarmLow") or bag.get_bool("CriticalAlarmHigh"):
        return SensorStatus.CRITICAL
    if bag.get_bool("WarningAlarmLow") or bag.get_bool("WarningAlarmHigh"):
        return SensorStatus.WARNING
    return SensorStatus.OK


def sensor_status(bag: PropertyBag) -> SensorStatus:
    gate = availability(bag)
    if gate is not SensorStatus.OK:
        return gate
    return alarm_status(bag)


# -----------------------------------------------------------------------
# Numbers
# -----------------------------------------------------------------------


def scale_factor(bag: PropertyBag) -> int | float:
    """``10 ** Scale``, or ``1`` when ``Scale`` is absent or not an integer."""
    scale = bag.get_int("Scale")
    if scale is None:
        return 1
    if 0 <= scale <= _MAX_EXACT_SCALE:
        return 10**scale
    try:
        return 10.0**scale
    except OverflowError:
        return math.inf


def _format_number(number: int | float) -> str:
    if isinstance(number, float) and not math.isfinite(number):
        return NOT_AVAILABLE
    if abs(number) >= _DECIMAL_LIMIT:
        return str(int(number))
    # Boundary applies after rounding: 999.9996 prints as 1000
    rounded = round(number, 3)
    if abs(rounded) >= _DECIMAL_LIMIT:
        return str(int(rounded))
    # -0.0 + 0 == 0.0
    return f"{rounded + 0:.3f}"


def format_reading(bag: PropertyBag, key: str, factor: int | float = 1) -> str:
    """Format the numeric property *key*.

    Floats are already scaled and are used as-is; integers are raw readings
    and get multiplied by *factor*.  Anything else, or NaN, gives ``"N/A"``.
    """
    as_float = bag.get_float(key)
    if as_float is not None:
        return _format_number(as_float)

    as_int = bag.get_int(key)
    if as_int is not None:
        return _format_number(as_int * factor)

    return NOT_AVAILABLE


# -----------------------------------------------------------------------
# Units
# -----------------------------------------------------------------------


def unit_symbol(unit: str | None) -> str:
    """Map a unit enumerant such as
    ``xyz.openbmc_project.Sensor.Value.Unit.DegreesC`` to ``"°C"``.

    Unrecognised enumerants pass through as their last dotted segment.
    """
    if not unit:
        return UNKNOWN
    short = unit.rsplit(".", 1)[-1]
    if not short:
        return UNKNOWN
    return UNIT_SYMBOLS.get(short, short)


# -----------------------------------------------------------------------
# Entry point
# -----------------------------------------------------------------------


def interpret(path: str, bag: PropertyBag, provider: str = "") -> SensorView:
    """Derive the display view for the sensor at *path* from *bag*."""
    status = sensor_status(bag)
    factor = scale_factor(bag)

    if availability(bag) is SensorStatus.OK:
        value = format_reading(bag, "Value", factor)
    else:
        value = NOT_AVAILABLE

    return SensorView(
        path=path,
        type=sensor_type(path),
        name=sensor_name(path),
        provider=provider,
        status=status,
        value=value,
        unit=unit_symbol(bag.get_str("Unit")),
        thresholds={key: format_reading(bag, key, factor) for key in THRESHOLD_KEYS},
    )
