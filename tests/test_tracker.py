"""Tests for the task start/stop state machine."""

import threading
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from conftest import count_entries, utc
from timetracker.errors import ConflictError, InternalError, NotFoundError
from timetracker.tracking import TaskTimeTracker


class TestStartTask:
    """Tests for TaskTimeTracker.start_task."""

    def test_start_idle_task(self, tracker, user, task, clock):
        """Starting an idle task opens an entry at the current time."""
        started = tracker.start_task(user.id, task.id)

        assert started.id == task.id
        assert started.user_id == user.id
        assert started.description == "Project planning"
        assert started.start_time == clock.now
        assert started.end_time is None

    def test_start_active_task_conflicts(self, tracker, store, user, task):
        """A second start is rejected and writes nothing."""
        tracker.start_task(user.id, task.id)
        before = count_entries(store)

        with pytest.raises(ConflictError) as exc_info:
            tracker.start_task(user.id, task.id)

        assert exc_info.value.message == "task is already active"
        assert count_entries(store) == before

    def test_start_task_of_other_user(self, tracker, store, other_user, task):
        """A task owned by someone else is reported as not found."""
        with pytest.raises(NotFoundError) as exc_info:
            tracker.start_task(other_user.id, task.id)

        assert exc_info.value.message == "task not found or doesn't belong to the user"
        assert count_entries(store) == 0

    def test_start_missing_task(self, tracker, store, user):
        with pytest.raises(NotFoundError):
            tracker.start_task(user.id, 9999)
        assert count_entries(store) == 0

    def test_restart_after_stop(self, tracker, store, user, task, clock):
        """A stopped task can be started again, creating a new entry."""
        tracker.start_task(user.id, task.id)
        clock.now += timedelta(minutes=5)
        tracker.stop_task(user.id, task.id)
        clock.now += timedelta(minutes=5)

        restarted = tracker.start_task(user.id, task.id)

        assert restarted.start_time == clock.now
        assert count_entries(store) == 2

    def test_concurrent_starts_only_one_wins(self, store, user):
        """Of N simultaneous starts on an idle task exactly one succeeds."""
        tracker = TaskTimeTracker(store)
        task = tracker.create_task(user.id, "Contended")
        workers = 8
        barrier = threading.Barrier(workers)
        successes = []
        conflicts = []
        others = []

        def attempt():
            barrier.wait()
            try:
                successes.append(tracker.start_task(user.id, task.id))
            except ConflictError as e:
                conflicts.append(e)
            except Exception as e:
                others.append(e)

        threads = [threading.Thread(target=attempt) for _ in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert others == []
        assert len(successes) == 1
        assert len(conflicts) == workers - 1
        assert count_entries(store) == 1


class TestStopTask:
    """Tests for TaskTimeTracker.stop_task."""

    def test_round_trip_duration(self, tracker, user, task, clock):
        """09:00 to 17:30 gives an 8h30m entry."""
        clock.now = utc(2023, 7, 3, 9, 0)
        tracker.start_task(user.id, task.id)
        clock.now = utc(2023, 7, 3, 17, 30)

        stopped = tracker.stop_task(user.id, task.id)

        assert stopped.start_time == utc(2023, 7, 3, 9, 0)
        assert stopped.end_time == utc(2023, 7, 3, 17, 30)
        assert stopped.end_time - stopped.start_time == timedelta(hours=8, minutes=30)
        assert stopped.description == "Project planning"
        assert stopped.created_at is not None

    def test_duration_keeps_microseconds(self, tracker, store, user, task, clock):
        clock.now = utc(2023, 7, 3, 9, 0)
        tracker.start_task(user.id, task.id)
        clock.now = utc(2023, 7, 3, 9, 0, 1, 250000)
        tracker.stop_task(user.id, task.id)

        with store.transaction(readonly=True) as session:
            rows = session.sum_durations_by_task(user.id, utc(2023, 7, 3), utc(2023, 7, 4))

        assert rows[0].total_seconds == pytest.approx(1.25)

    def test_stop_idle_task(self, tracker, store, user, task):
        """Stopping a task that is not running is rejected and writes nothing."""
        with pytest.raises(NotFoundError) as exc_info:
            tracker.stop_task(user.id, task.id)

        assert exc_info.value.message == "no running time entry for task"
        assert count_entries(store) == 0

    def test_stop_twice(self, tracker, user, task):
        tracker.start_task(user.id, task.id)
        tracker.stop_task(user.id, task.id)

        with pytest.raises(NotFoundError):
            tracker.stop_task(user.id, task.id)

    def test_stop_task_of_other_user(self, tracker, store, user, other_user, task):
        """Another user cannot stop the task, and the entry stays open."""
        tracker.start_task(user.id, task.id)

        with pytest.raises(NotFoundError):
            tracker.stop_task(other_user.id, task.id)

        with store.transaction(readonly=True) as session:
            assert session.has_open_entry(task.id)


class TestCreateTask:
    """Tests for TaskTimeTracker.create_task."""

    def test_create_task(self, tracker, user, clock):
        task = tracker.create_task(user.id, "Code review")

        assert task.user_id == user.id
        assert task.description == "Code review"
        assert task.created_at == clock.now

    def test_create_task_for_missing_user(self, tracker):
        with pytest.raises(NotFoundError):
            tracker.create_task(4242, "Nobody's task")


class TestStoreFailures:
    """Unexpected store errors surface as InternalError."""

    def _broken_store(self) -> MagicMock:
        store = MagicMock()
        store.transaction.side_effect = RuntimeError("disk I/O error")
        return store

    def test_start_wraps_store_error(self):
        tracker = TaskTimeTracker(self._broken_store())

        with pytest.raises(InternalError) as exc_info:
            tracker.start_task(1, 2)

        assert exc_info.value.context == {"user_id": 1, "task_id": 2}
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_stop_wraps_store_error(self):
        tracker = TaskTimeTracker(self._broken_store())

        with pytest.raises(InternalError):
            tracker.stop_task(1, 2)
