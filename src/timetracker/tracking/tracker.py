"""Start/stop protocol for a task's time entries.

A task is idle when it has no open time entry and active when it has one.
Start moves idle -> active, stop moves active -> idle; any other request is
rejected. Each operation runs in a single store transaction, so two
concurrent starts on the same task cannot both see "idle".
"""

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from timetracker.errors import ConflictError, NotFoundError, store_errors
from timetracker.models import Task
from timetracker.storage.base import TimeTrackingStore

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class TaskTimeTracker:
    """Opens and closes time entries for tasks owned by a user.

    The tracker keeps no state between calls; everything lives in the store.

    Example:
        tracker = TaskTimeTracker(SQLiteStore("tracker.db"))
        tracker.start_task(user_id=1, task_id=7)
        ...
        task = tracker.stop_task(user_id=1, task_id=7)
        print(task.end_time - task.start_time)
    """

    def __init__(self, store: TimeTrackingStore, clock: Clock = utc_now) -> None:
        """Initialize the tracker.

        Args:
            store: Store holding tasks and time entries.
            clock: Returns the current time. Overridden in tests.
        """
        self._store = store
        self._clock = clock

    def create_task(self, user_id: int, description: str) -> Task:
        """Create a new idle task for a user.

        Raises:
            NotFoundError: If the user does not exist.
            InternalError: On store failure.
        """
        with store_errors("create task", user_id=user_id):
            with self._store.transaction() as session:
                task = session.create_task(user_id, description, self._clock())
        logger.debug(f"Created task {task.id} for user {user_id}")
        return task

    def start_task(self, user_id: int, task_id: int) -> Task:
        """Open a new time entry on an idle task.

        Args:
            user_id: User that must own the task.
            task_id: Task to start.

        Returns:
            The task with start_time set to the new entry's start.

        Raises:
            NotFoundError: If the task is missing or owned by someone else.
            ConflictError: If the task already has an open entry.
            InternalError: On store failure. Nothing is written.
        """
        try:
            with store_errors("start task", user_id=user_id, task_id=task_id):
                with self._store.transaction() as session:
                    task = session.get_task(task_id, user_id)
                    if session.has_open_entry(task_id):
                        raise ConflictError(
                            "task is already active",
                            {"user_id": user_id, "task_id": task_id},
                        )
                    entry = session.insert_open_entry(task_id, self._clock())
        except (NotFoundError, ConflictError) as e:
            logger.warning(f"Start rejected: {e.describe()}")
            raise

        logger.debug(f"Started task {task_id} for user {user_id} at {entry.start_time.isoformat()}")
        return task.model_copy(update={"start_time": entry.start_time})

    def stop_task(self, user_id: int, task_id: int) -> Task:
        """Close the open time entry of an active task.

        Args:
            user_id: User that must own the task.
            task_id: Task to stop.

        Returns:
            The task with start_time and end_time of the entry just closed.

        Raises:
            NotFoundError: If the task is missing, owned by someone else, or idle.
            InternalError: On store failure. Nothing is written.
        """
        try:
            with store_errors("stop task", user_id=user_id, task_id=task_id):
                with self._store.transaction() as session:
                    task = session.get_task(task_id, user_id)
                    entry = session.close_open_entry(task_id, self._clock())
        except NotFoundError as e:
            logger.warning(f"Stop rejected: {e.describe()}")
            raise

        logger.debug(f"Stopped task {task_id} for user {user_id} after {entry.duration}")
        return task.model_copy(update={"start_time": entry.start_time, "end_time": entry.end_time})
