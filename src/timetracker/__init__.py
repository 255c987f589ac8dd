"""Time Tracker - user records, task timers and workload reports over HTTP."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("timetracker")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

from timetracker.tracking import TaskTimeTracker, WorkloadAggregator

__all__ = ["TaskTimeTracker", "WorkloadAggregator"]
