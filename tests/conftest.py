"""Shared fixtures for the time tracker tests."""

import sqlite3
from datetime import datetime, timezone

import pytest

from timetracker.models import People
from timetracker.storage import MemoryStore, SQLiteStore
from timetracker.tracking import TaskTimeTracker


class FakeClock:
    """Clock returning whatever time the test set last."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2023, 7, 3, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def count_entries(store) -> int:
    """Number of time entries in either store implementation."""
    if isinstance(store, SQLiteStore):
        conn = sqlite3.connect(store.db_path)
        try:
            return conn.execute("SELECT COUNT(*) FROM time_entries").fetchone()[0]
        finally:
            conn.close()
    return len(store._state.entries)


def track(tracker: TaskTimeTracker, clock: FakeClock, user_id: int, task_id: int,
          start: datetime, end: datetime) -> None:
    """Record one closed time entry through the tracker."""
    clock.now = start
    tracker.start_task(user_id, task_id)
    clock.now = end
    tracker.stop_task(user_id, task_id)


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    """Both store implementations, so every behaviour is checked on each."""
    if request.param == "memory":
        return MemoryStore()
    return SQLiteStore(tmp_path / "tracker.db")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def tracker(store, clock) -> TaskTimeTracker:
    return TaskTimeTracker(store, clock=clock)


@pytest.fixture
def user(store):
    return store.add_user("1234 567890", People(surname="Smith", name="John"))


@pytest.fixture
def other_user(store):
    return store.add_user("4321 098765", People(surname="Doe", name="Jane"))


@pytest.fixture
def task(tracker, user):
    return tracker.create_task(user.id, "Project planning")
