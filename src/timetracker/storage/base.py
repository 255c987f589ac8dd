"""Storage interfaces consumed by the tracker, the aggregator and the user service."""

from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import AbstractContextManager
from datetime import datetime

from timetracker.models import People, Task, TaskDuration, TimeEntry, User, UserUpdate

# Columns users can be filtered on when listing
USER_FILTER_FIELDS = ("surname", "name", "passport_number", "patronymic", "address")


class StoreSession(ABC):
    """Operations on tasks and time entries inside one transaction.

    Everything done through a session is committed together when the
    enclosing ``transaction()`` block exits normally, and rolled back if
    it raises.
    """

    @abstractmethod
    def create_task(self, user_id: int, description: str, created_at: datetime) -> Task:
        """Create a task for a user.

        Raises:
            NotFoundError: If the user does not exist.
        """
        ...

    @abstractmethod
    def get_task(self, task_id: int, user_id: int) -> Task:
        """Load a task owned by the given user.

        Raises:
            NotFoundError: If the task is missing or owned by someone else.
        """
        ...

    @abstractmethod
    def has_open_entry(self, task_id: int) -> bool:
        """Whether the task has a time entry without an end timestamp."""
        ...

    @abstractmethod
    def insert_open_entry(self, task_id: int, start_time: datetime) -> TimeEntry:
        """Insert a new open time entry.

        Raises:
            ConflictError: If the task already has an open entry.
        """
        ...

    @abstractmethod
    def close_open_entry(self, task_id: int, end_time: datetime) -> TimeEntry:
        """Set end_time and duration on the task's open entry.

        Raises:
            NotFoundError: If the task has no open entry.
        """
        ...

    @abstractmethod
    def sum_durations_by_task(
        self,
        user_id: int,
        start: datetime,
        end: datetime,
    ) -> list[TaskDuration]:
        """Sum closed entry durations per task of a user.

        Only entries with ``start_time >= start`` and ``end_time < end`` are
        counted. Rows are ordered by total duration, longest first.
        """
        ...


class TimeTrackingStore(ABC):
    """Durable store of tasks and time entries."""

    @abstractmethod
    def transaction(self, readonly: bool = False) -> AbstractContextManager[StoreSession]:
        """Open an atomic unit of work.

        Args:
            readonly: Hint that the session will not write.

        Returns:
            Context manager yielding a StoreSession.
        """
        ...


class UserRepository(ABC):
    """Persistence of user records."""

    @abstractmethod
    def add_user(self, passport_number: str, details: People) -> User:
        """Insert a user and return it with its assigned id."""
        ...

    @abstractmethod
    def get_user(self, user_id: int) -> User:
        """Load a user.

        Raises:
            NotFoundError: If the user does not exist.
        """
        ...

    @abstractmethod
    def list_users(self, page: int, limit: int, filters: dict[str, str]) -> list[User]:
        """List users ordered by id.

        Args:
            page: 1-based page number.
            limit: Page size.
            filters: Case-insensitive prefix filters keyed by USER_FILTER_FIELDS.
                Empty values are ignored.
        """
        ...

    @abstractmethod
    def update_user(self, user_id: int, changes: UserUpdate) -> User:
        """Apply non-empty fields of ``changes`` to a user.

        Raises:
            NotFoundError: If the user does not exist.
        """
        ...

    @abstractmethod
    def delete_user(self, user_id: int) -> None:
        """Delete a user with its tasks and time entries.

        Raises:
            NotFoundError: If the user does not exist.
        """
        ...


def iter_filters(filters: dict[str, str]) -> Iterator[tuple[str, str]]:
    """Yield the usable (field, value) pairs of a user filter dict."""
    for field in USER_FILTER_FIELDS:
        value = filters.get(field)
        if value:
            yield field, value
