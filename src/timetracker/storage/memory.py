"""In-memory store.

Holds everything in dicts behind one lock. A transaction keeps the lock for
its whole duration and restores a snapshot if the block raises, which gives
the same all-or-nothing behaviour as the SQLite store. Records are replaced,
never mutated in place, so shallow snapshots are enough.
"""

import itertools
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from timetracker.errors import ConflictError, NotFoundError
from timetracker.models import People, Task, TaskDuration, TimeEntry, User, UserUpdate
from timetracker.storage.base import StoreSession, TimeTrackingStore, UserRepository, iter_filters


class _State:
    def __init__(self) -> None:
        self.users: dict[int, User] = {}
        self.tasks: dict[int, Task] = {}
        self.entries: dict[int, TimeEntry] = {}
        self.ids = itertools.count(1)

    def snapshot(self) -> tuple[dict, dict, dict]:
        return dict(self.users), dict(self.tasks), dict(self.entries)

    def restore(self, snapshot: tuple[dict, dict, dict]) -> None:
        self.users, self.tasks, self.entries = snapshot


class MemorySession(StoreSession):
    """Session over the shared in-memory state. Only valid inside a transaction."""

    def __init__(self, state: _State) -> None:
        self._state = state

    def _open_entry(self, task_id: int) -> TimeEntry | None:
        for entry in self._state.entries.values():
            if entry.task_id == task_id and entry.is_open:
                return entry
        return None

    def create_task(self, user_id: int, description: str, created_at: datetime) -> Task:
        if user_id not in self._state.users:
            raise NotFoundError("user not found", {"user_id": user_id})
        task = Task(
            id=next(self._state.ids),
            user_id=user_id,
            description=description,
            created_at=created_at,
        )
        self._state.tasks[task.id] = task
        return task

    def get_task(self, task_id: int, user_id: int) -> Task:
        task = self._state.tasks.get(task_id)
        if task is None or task.user_id != user_id:
            raise NotFoundError(
                "task not found or doesn't belong to the user",
                {"user_id": user_id, "task_id": task_id},
            )
        return task

    def has_open_entry(self, task_id: int) -> bool:
        return self._open_entry(task_id) is not None

    def insert_open_entry(self, task_id: int, start_time: datetime) -> TimeEntry:
        if self._open_entry(task_id) is not None:
            raise ConflictError("task is already active", {"task_id": task_id})
        entry = TimeEntry(
            id=next(self._state.ids),
            task_id=task_id,
            start_time=start_time,
            created_at=start_time,
        )
        self._state.entries[entry.id] = entry
        return entry

    def close_open_entry(self, task_id: int, end_time: datetime) -> TimeEntry:
        entry = self._open_entry(task_id)
        if entry is None:
            raise NotFoundError("no running time entry for task", {"task_id": task_id})
        closed = entry.model_copy(
            update={"end_time": end_time, "duration": end_time - entry.start_time}
        )
        self._state.entries[closed.id] = closed
        return closed

    def sum_durations_by_task(
        self,
        user_id: int,
        start: datetime,
        end: datetime,
    ) -> list[TaskDuration]:
        totals: dict[int, float] = {}
        for entry in self._state.entries.values():
            if entry.is_open or entry.start_time < start or entry.end_time >= end:
                continue
            task = self._state.tasks.get(entry.task_id)
            if task is None or task.user_id != user_id:
                continue
            totals[task.id] = totals.get(task.id, 0.0) + entry.duration.total_seconds()

        rows = [
            TaskDuration(
                task_id=task_id,
                description=self._state.tasks[task_id].description,
                total_seconds=total,
            )
            for task_id, total in totals.items()
        ]
        rows.sort(key=lambda row: (-row.total_seconds, row.task_id))
        return rows


class MemoryStore(TimeTrackingStore, UserRepository):
    """Thread-safe in-process store."""

    def __init__(self) -> None:
        self._state = _State()
        self._lock = threading.RLock()

    @contextmanager
    def transaction(self, readonly: bool = False) -> Iterator[MemorySession]:
        with self._lock:
            snapshot = self._state.snapshot()
            try:
                yield MemorySession(self._state)
            except BaseException:
                self._state.restore(snapshot)
                raise

    # =========================================================================
    # Users
    # =========================================================================

    def add_user(self, passport_number: str, details: People) -> User:
        now = datetime.now(timezone.utc)
        with self._lock:
            user = User(
                id=next(self._state.ids),
                passport_number=passport_number,
                created_at=now,
                updated_at=now,
                **details.model_dump(),
            )
            self._state.users[user.id] = user
        return user

    def get_user(self, user_id: int) -> User:
        with self._lock:
            user = self._state.users.get(user_id)
        if user is None:
            raise NotFoundError("user not found", {"user_id": user_id})
        return user

    def list_users(self, page: int, limit: int, filters: dict[str, str]) -> list[User]:
        wanted = list(iter_filters(filters))
        with self._lock:
            users = sorted(self._state.users.values(), key=lambda user: user.id)
        matching = [
            user
            for user in users
            if all(getattr(user, field).casefold().startswith(value.casefold()) for field, value in wanted)
        ]
        offset = (page - 1) * limit
        return matching[offset:offset + limit]

    def update_user(self, user_id: int, changes: UserUpdate) -> User:
        with self._lock:
            user = self.get_user(user_id)
            fields = changes.changes()
            if fields:
                user = user.model_copy(update={**fields, "updated_at": datetime.now(timezone.utc)})
                self._state.users[user_id] = user
        return user

    def delete_user(self, user_id: int) -> None:
        with self._lock:
            if self._state.users.pop(user_id, None) is None:
                raise NotFoundError("user not found", {"user_id": user_id})
            task_ids = {task.id for task in self._state.tasks.values() if task.user_id == user_id}
            self._state.tasks = {
                key: task for key, task in self._state.tasks.items() if key not in task_ids
            }
            self._state.entries = {
                key: entry
                for key, entry in self._state.entries.items()
                if entry.task_id not in task_ids
            }
