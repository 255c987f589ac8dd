"""User service: user records plus the task tracking operations exposed over HTTP."""

import logging
from datetime import date

from timetracker.errors import ValidationError, store_errors
from timetracker.models import Task, User, UserCreate, UserUpdate, WorkloadRow
from timetracker.people import PeopleClient, split_passport
from timetracker.storage.base import UserRepository
from timetracker.tracking import TaskTimeTracker, WorkloadAggregator

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 1000
# SQLite binds LIMIT and OFFSET as signed 64-bit integers
_MAX_OFFSET = 2**63 - 1


class UserService:
    """Coordinates user persistence, enrichment and time tracking.

    Example:
        store = SQLiteStore(settings.get_database_path())
        service = UserService(
            users=store,
            people=PeopleClient(settings.people_api_url),
            tracker=TaskTimeTracker(store),
            workload=WorkloadAggregator(store),
        )
    """

    def __init__(
        self,
        users: UserRepository,
        people: PeopleClient,
        tracker: TaskTimeTracker,
        workload: WorkloadAggregator,
    ) -> None:
        self._users = users
        self._people = people
        self._tracker = tracker
        self._workload = workload

    async def add_user(self, payload: UserCreate) -> User:
        """Create a user enriched with details from the people lookup.

        Raises:
            ValidationError: If the passport number is malformed.
            PeopleLookupError: If the lookup fails.
            InternalError: On store failure.
        """
        passport_number = payload.passport_number.strip()
        split_passport(passport_number)

        details = await self._people.get_by_passport(passport_number)

        with store_errors("add user"):
            user = self._users.add_user(passport_number, details)
        logger.debug(f"Created user {user.id}")
        return user

    def get_users(self, page: int, limit: int, filters: dict[str, str]) -> list[User]:
        """List users page by page with optional prefix filters."""
        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be positive", {"page": page, "limit": limit})
        if limit > MAX_PAGE_SIZE:
            raise ValidationError(f"limit must not exceed {MAX_PAGE_SIZE}", {"limit": limit})
        if (page - 1) * limit > _MAX_OFFSET:
            raise ValidationError("page is out of range", {"page": page, "limit": limit})
        with store_errors("list users", page=page, limit=limit):
            users = self._users.list_users(page, limit, filters)
        logger.debug(f"Returning {len(users)} users with page={page} limit={limit}")
        return users

    def update_user(self, user_id: int, changes: UserUpdate) -> User:
        """Merge non-empty fields into an existing user.

        Raises:
            ValidationError: If a new passport number is malformed.
            NotFoundError: If the user does not exist.
        """
        if changes.passport_number:
            split_passport(changes.passport_number)
        with store_errors("update user", user_id=user_id):
            user = self._users.update_user(user_id, changes)
        logger.debug(f"Updated user {user_id}")
        return user

    def delete_user(self, user_id: int) -> None:
        """Delete a user with all tasks and time entries.

        Raises:
            NotFoundError: If the user does not exist.
        """
        with store_errors("delete user", user_id=user_id):
            self._users.delete_user(user_id)
        logger.debug(f"Deleted user {user_id}")

    def create_user_task(self, user_id: int, description: str) -> Task:
        return self._tracker.create_task(user_id, description)

    def start_user_task(self, user_id: int, task_id: int) -> Task:
        return self._tracker.start_task(user_id, task_id)

    def stop_user_task(self, user_id: int, task_id: int) -> Task:
        return self._tracker.stop_task(user_id, task_id)

    def get_user_workload(self, user_id: int, start: date, end: date) -> list[WorkloadRow]:
        return self._workload.get_workload(user_id, start, end)
