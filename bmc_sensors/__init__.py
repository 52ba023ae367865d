"""BMC sensors - list platform sensors grouped by type, in natural order.

Quick start::

    from bmc_sensors import SensorPresenter, TableWriter, run_blocking
    from bmc_sensors.sources import SnapshotSource

    presenter = SensorPresenter(SnapshotSource(path="bmc-dump.yaml"), TableWriter())
    run_blocking(presenter.list_sensors("temperature"))
"""

from __future__ import annotations

from bmc_sensors.interpreter import interpret
from bmc_sensors.models import PropertyBag, SensorStatus, SensorView
from bmc_sensors.presenter import SensorPresenter, TableWriter, run_blocking
from bmc_sensors.sorting import compare_paths, sort_paths

__all__ = [
    "PropertyBag",
    "SensorPresenter",
    "SensorStatus",
    "SensorView",
    "TableWriter",
    "compare_paths",
    "interpret",
    "run_blocking",
    "sort_paths",
]

__version__ = "0.1.0"
