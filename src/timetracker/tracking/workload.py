"""Workload reports: closed time per task over a range of calendar days."""

import logging
from datetime import date, datetime, time, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal

from timetracker.errors import ValidationError, store_errors
from timetracker.models import WorkloadRow
from timetracker.storage.base import TimeTrackingStore

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d"


def split_duration(total_seconds: float) -> tuple[int, int]:
    """Convert seconds into whole hours and remaining minutes (nearest-minute split).

    Hours are not rounded on their own as in SQL ``ROUND(s / 3600)``. The
    total is rounded to the nearest minute, halves away from zero, before it
    is split, so 3599.5 seconds is one hour and 8h29m30s is 8 hours 30
    minutes. 9h30m stays 9 hours 30 minutes rather than becoming 10 hours.

    Args:
        total_seconds: Duration in seconds.

    Returns:
        (hours, minutes) with minutes in 0..59. Both carry the sign of a
        negative input.
    """
    total_minutes = int(
        (Decimal(total_seconds) / 60).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    )
    sign = -1 if total_minutes < 0 else 1
    hours, minutes = divmod(abs(total_minutes), 60)
    return sign * hours, sign * minutes


def format_duration(seconds: float) -> str:
    """Format seconds into a human-readable duration string.

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted string like "8h 30m" or "45m"
    """
    hours, minutes = split_duration(seconds)
    if hours <= 0 and minutes <= 0:
        return "0m"

    parts = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    return " ".join(parts)


def parse_day(value: str, field: str) -> date:
    """Parse a YYYY-MM-DD value.

    Raises:
        ValidationError: If the value is not a valid date in that format.
    """
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except ValueError as e:
        raise ValidationError(f"invalid {field} date: {value!r}", {field: value}) from e


def day_window(start: date, end: date) -> tuple[datetime, datetime]:
    """UTC bounds covering the days start..end inclusive.

    Returns:
        (first instant of start, first instant after end)
    """
    lower = datetime.combine(start, time.min, tzinfo=timezone.utc)
    upper = datetime.combine(end + timedelta(days=1), time.min, tzinfo=timezone.utc)
    return lower, upper


class WorkloadAggregator:
    """Sums closed time entries per task for a user.

    An entry counts only when it lies entirely inside the window; running
    entries and entries crossing either edge are left out, not truncated.
    """

    def __init__(self, store: TimeTrackingStore) -> None:
        self._store = store

    def get_workload(self, user_id: int, start: date, end: date) -> list[WorkloadRow]:
        """Per-task workload of a user between two calendar days.

        Args:
            user_id: User whose tasks are reported.
            start: First day of the window.
            end: Last day of the window (inclusive).

        Returns:
            Rows ordered by total duration, longest first. Empty when nothing
            matches, including when start is after end.

        Raises:
            InternalError: On store failure.
        """
        if start > end:
            return []

        lower, upper = day_window(start, end)
        with store_errors("get workload", user_id=user_id, start=start, end=end):
            with self._store.transaction(readonly=True) as session:
                durations = session.sum_durations_by_task(user_id, lower, upper)

        durations = sorted(durations, key=lambda row: (-row.total_seconds, row.task_id))
        rows = []
        for duration in durations:
            hours, minutes = split_duration(duration.total_seconds)
            rows.append(
                WorkloadRow(
                    task_id=duration.task_id,
                    description=duration.description,
                    hours=hours,
                    minutes=minutes,
                )
            )

        logger.debug(f"Workload for user {user_id} {start}..{end}: {len(rows)} tasks")
        return rows
