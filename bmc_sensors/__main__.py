"""CLI entry point for the BMC sensor lister.

Usage::

    bmc-sensors list
    bmc-sensors list temperature
    bmc-sensors list --snapshot bmc-dump.yaml --layout compact
    bmc-sensors watch temp1 fan0 -n 2
    bmc-sensors list-units
    bmc-sensors init-config --output bmc-sensors.yaml
"""

from __future__ import annotations

import argparse
import logging
import sys
import textwrap
from typing import TYPE_CHECKING, Any

from bmc_sensors.config import (
    ConfigError,
    SensorsYAMLConfig,
    load_yaml_config,
    validate_interval,
    validate_sensor_type,
)

if TYPE_CHECKING:
    from bmc_sensors.presenter import SensorPresenter

# ---------------------------------------------------------------------------
# Sample YAML config template for init-config
# ---------------------------------------------------------------------------
_SAMPLE_CONFIG = """\
# bmc-sensors configuration

source:
  type: dbus                          # dbus or snapshot
  bus: system                         # system or session
  # address: tcp:host=bmc.local,port=55556   # optional: explicit bus address
  # type: snapshot
  # path: ./bmc-dump.yaml             # offline dump of sensor properties

display:
  layout: full                        # full or compact
  format: text                        # text or json

watch:
  interval_s: 1                       # whole seconds between refreshes
  # sensors: [temp1, fan0]            # default watch list

log_level: WARNING                    # DEBUG, INFO, WARNING, ERROR
"""

_KNOWN_COMMANDS = {"list", "watch", "list-units", "init-config"}


def _positive_int(text: str) -> int:
    try:
        return validate_interval(text)
    except ConfigError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _sensor_type_arg(text: str) -> str:
    try:
        return validate_sensor_type(text)
    except ConfigError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


# ======================================================================
# Main entry point
# ======================================================================


def main(argv: list[str] | None = None) -> None:
    epilog = textwrap.dedent("""\
        examples:
          bmc-sensors list
          bmc-sensors list voltage --layout compact
          bmc-sensors list --snapshot bmc-dump.yaml --format json
          bmc-sensors watch temp1 fan0 -n 2
          bmc-sensors list-units
          bmc-sensors init-config --output bmc-sensors.yaml
    """)

    parser = argparse.ArgumentParser(
        prog="bmc-sensors",
        description="Show BMC sensors grouped by type, in natural order.",
        epilog=epilog,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    # Options shared by list and watch
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Path to YAML config file. Command-line flags override its values.",
    )
    common.add_argument(
        "--source",
        type=str,
        default=None,
        choices=["dbus", "snapshot"],
        help="Where sensors are read from (default: dbus).",
    )
    common.add_argument(
        "--snapshot",
        type=str,
        default=None,
        help="Read sensors from this YAML/JSON dump instead of D-Bus.",
    )
    common.add_argument(
        "--bus",
        type=str,
        default=None,
        choices=["system", "session"],
        help="D-Bus to connect to (default: system).",
    )
    common.add_argument(
        "--bus-address",
        type=str,
        default=None,
        help="Explicit D-Bus address, e.g. of a remote BMC.",
    )
    common.add_argument(
        "--layout",
        type=str,
        default=None,
        choices=["full", "compact"],
        help="Table layout (default: full for list, compact for watch).",
    )
    common.add_argument(
        "--format",
        type=str,
        default=None,
        choices=["text", "json"],
        help="Output format (default: text).",
    )
    common.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING).",
    )

    subparsers = parser.add_subparsers(dest="command", title="commands")

    # -- list --------------------------------------------------------------
    list_parser = subparsers.add_parser(
        "list",
        parents=[common],
        help="Show all sensors, optionally of one type.",
    )
    list_parser.add_argument(
        "sensor_type",
        nargs="?",
        type=_sensor_type_arg,
        default=None,
        help="Sensor type, e.g. temperature, voltage, fan_tach. Default: all.",
    )

    # -- watch -------------------------------------------------------------
    watch_parser = subparsers.add_parser(
        "watch",
        parents=[common],
        help="Refresh selected sensors periodically until interrupted.",
    )
    watch_parser.add_argument(
        "sensors",
        nargs="*",
        help="Sensor names (last path segment) or full paths. Default: all.",
    )
    watch_parser.add_argument(
        "--interval",
        "-n",
        type=_positive_int,
        default=None,
        help="Seconds between refreshes, a positive integer (default: 1).",
    )
    watch_parser.add_argument(
        "--type",
        "-t",
        dest="sensor_type",
        type=_sensor_type_arg,
        default=None,
        help="Restrict the watch to one sensor type.",
    )
    watch_parser.add_argument(
        "--cycles",
        type=_positive_int,
        default=None,
        help=argparse.SUPPRESS,
    )

    # -- list-units --------------------------------------------------------
    subparsers.add_parser(
        "list-units",
        help="List the unit symbols used in the unit column.",
    )

    # -- init-config -------------------------------------------------------
    init_parser = subparsers.add_parser(
        "init-config",
        help="Generate a sample YAML configuration file.",
    )
    init_parser.add_argument(
        "--output",
        "-o",
        type=str,
        default=None,
        help="Write config to this file instead of stdout.",
    )

    # `bmc-sensors temperature` and `bmc-sensors --snapshot x` mean `list`
    raw_args = argv if argv is not None else sys.argv[1:]
    if raw_args and raw_args[0] not in _KNOWN_COMMANDS and raw_args[0] not in ("-h", "--help"):
        raw_args = ["list", *list(raw_args)]

    args = parser.parse_args(raw_args)

    if args.command is None:
        parser.print_help()
        return

    # -- Dispatch ----------------------------------------------------------
    try:
        if args.command == "list":
            _cmd_list(args)
        elif args.command == "watch":
            _cmd_watch(args)
        elif args.command == "list-units":
            _cmd_list_units()
        elif args.command == "init-config":
            _cmd_init_config(args.output)
        else:
            parser.print_help()
    except ConfigError as exc:
        parser.error(str(exc))


# ======================================================================
# Command implementations
# ======================================================================


def _load_settings(args: argparse.Namespace, *, default_layout: str) -> SensorsYAMLConfig:
    """Merge the optional config file with command-line overrides."""
    if args.config:
        try:
            settings = load_yaml_config(args.config)
        except FileNotFoundError as exc:
            raise ConfigError(str(exc)) from exc
    else:
        settings = SensorsYAMLConfig()

    layout = args.layout
    if layout is None:
        layout = settings.layout if "layout" in settings.model_fields_set else default_layout

    updates: dict[str, Any] = {"layout": layout}
    if args.format:
        updates["format"] = args.format
    if args.log_level:
        updates["log_level"] = args.log_level

    if args.snapshot or args.source == "snapshot":
        if not args.snapshot:
            raise ConfigError("--source snapshot requires --snapshot FILE")
        updates["source"] = {"type": "snapshot", "path": args.snapshot}
    elif args.source == "dbus" or args.bus or args.bus_address:
        source: dict[str, Any] = {"type": "dbus", "bus": args.bus or "system"}
        if args.bus_address:
            source["address"] = args.bus_address
        updates["source"] = source

    return settings.model_copy(update=updates)


def _setup(
    args: argparse.Namespace, *, default_layout: str
) -> tuple[SensorsYAMLConfig, SensorPresenter]:
    """Configure logging and build the presenter for list / watch."""
    from bmc_sensors.presenter import LAYOUTS, SensorPresenter, TableWriter
    from bmc_sensors.sources.factory import create_source

    settings = _load_settings(args, default_layout=default_layout)

    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s %(name)-30s %(levelname)-7s %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        source = create_source(settings.source)
    except ImportError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid source configuration: {exc}") from exc

    writer = TableWriter(LAYOUTS[settings.layout], fmt=settings.format)
    return settings, SensorPresenter(source, writer)


def _cmd_list(args: argparse.Namespace) -> None:
    """One-shot listing."""
    from bmc_sensors.presenter import run_blocking
    from bmc_sensors.sources.base import SourceError

    _settings, presenter = _setup(args, default_layout="full")
    try:
        run_blocking(presenter.list_sensors(args.sensor_type))
    except SourceError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


def _cmd_watch(args: argparse.Namespace) -> None:
    """Periodic refresh of the selected sensors."""
    from bmc_sensors.presenter import run_blocking
    from bmc_sensors.sources.base import SourceError

    settings, presenter = _setup(args, default_layout="compact")
    names = args.sensors or settings.watch_sensors
    interval = args.interval or settings.watch_interval_s
    try:
        run_blocking(
            presenter.watch(names, interval, sensor_type=args.sensor_type, cycles=args.cycles)
        )
    except SourceError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


# -- list-units -------------------------------------------------------------


def _cmd_list_units() -> None:
    from bmc_sensors.interpreter import UNIT_SYMBOLS

    print(f"\n{'D-Bus Unit':<12} {'Symbol'}")
    print("-" * 20)
    for unit, symbol in UNIT_SYMBOLS.items():
        print(f"{unit:<12} {symbol}")
    print()


# -- init-config ------------------------------------------------------------


def _cmd_init_config(output_path: str | None) -> None:
    if output_path:
        from pathlib import Path

        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        Path(output_path).write_text(_SAMPLE_CONFIG, encoding="utf-8")
        print(f"Sample config written to {output_path}")
    else:
        print(_SAMPLE_CONFIG)


# ======================================================================
if __name__ == "__main__":
    main()
