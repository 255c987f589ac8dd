"""Task time tracking and workload aggregation."""

from timetracker.tracking.tracker import TaskTimeTracker, utc_now
from timetracker.tracking.workload import (
    WorkloadAggregator,
    day_window,
    format_duration,
    parse_day,
    split_duration,
)

__all__ = [
    "TaskTimeTracker",
    "WorkloadAggregator",
    "day_window",
    "format_duration",
    "parse_day",
    "split_duration",
    "utc_now",
]
