#!/usr/bin/env python3
"""Snapshot example -- list and watch sensors from an offline BMC dump.

Directly runnable (no D-Bus needed).

Usage::

    python examples/snapshot_example.py

Equivalent CLI::

    bmc-sensors list --snapshot examples/bmc-dump.yaml
    bmc-sensors watch temp1 temp2 --snapshot examples/bmc-dump.yaml -n 1
"""

from __future__ import annotations

import logging
from pathlib import Path


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)-30s %(levelname)-7s %(message)s",
        datefmt="%H:%M:%S",
    )

    dump = Path(__file__).parent / "bmc-dump.yaml"

    from bmc_sensors.presenter import LAYOUTS, SensorPresenter, TableWriter, run_blocking
    from bmc_sensors.sources import SnapshotSource

    print("=== All sensors ===")
    presenter = SensorPresenter(SnapshotSource(path=dump), TableWriter(LAYOUTS["full"]))
    run_blocking(presenter.list_sensors())

    print("\n=== Watching temp1 and temp2 (3 refreshes) ===")
    presenter = SensorPresenter(SnapshotSource(path=dump), TableWriter(LAYOUTS["compact"]))
    run_blocking(presenter.watch(["temp2", "temp1"], interval_s=1, cycles=3))


if __name__ == "__main__":
    main()
