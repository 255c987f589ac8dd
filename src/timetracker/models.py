"""Data models for users, tasks, time entries and workload reports.

Field names are snake_case in Python and camelCase on the wire
(``taskId``, ``passportNumber``, ``startTime``...). Models accept both
spellings on input.
"""

from datetime import datetime, timedelta

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    """Base model that serializes with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class User(_CamelModel):
    """A user record, enriched from the people lookup service."""

    id: int = Field(..., description="User ID")
    passport_number: str = Field(..., description="Passport serie and number, e.g. '1234 567890'")
    surname: str = Field(default="", description="Surname")
    name: str = Field(default="", description="Given name")
    patronymic: str = Field(default="", description="Patronymic")
    address: str = Field(default="", description="Postal address")
    created_at: datetime | None = Field(default=None, description="When the record was created")
    updated_at: datetime | None = Field(default=None, description="When the record was last changed")


class UserCreate(_CamelModel):
    """Payload for creating a user. Only the passport number is required."""

    passport_number: str = Field(..., min_length=1, description="Passport serie and number")


class UserUpdate(_CamelModel):
    """Partial update of a user. Empty or missing fields are left unchanged."""

    passport_number: str | None = None
    surname: str | None = None
    name: str | None = None
    patronymic: str | None = None
    address: str | None = None

    def changes(self) -> dict[str, str]:
        """Fields that carry a non-empty value."""
        return {key: value for key, value in self.model_dump().items() if value}


class People(BaseModel):
    """Personal details returned by the people lookup service."""

    surname: str = ""
    name: str = ""
    patronymic: str = ""
    address: str = ""


class Task(_CamelModel):
    """A unit of work owned by one user.

    start_time and end_time are not stored on the task. They are filled in
    from the time entry that a start or stop operation just touched.
    """

    id: int = Field(..., description="Task ID")
    user_id: int = Field(..., description="Owning user ID")
    description: str = Field(default="", description="What the task is about")
    start_time: datetime | None = Field(default=None, description="Start of the current/last entry")
    end_time: datetime | None = Field(default=None, description="End of the last entry")
    created_at: datetime | None = Field(default=None, description="When the task was created")


class TaskCreate(_CamelModel):
    """Payload for creating a task."""

    description: str = Field(default="", description="What the task is about")


class TimeEntry(_CamelModel):
    """One contiguous interval of work on a task.

    An entry is open while end_time is None; duration is only set once the
    entry is closed.
    """

    id: int
    task_id: int
    start_time: datetime
    end_time: datetime | None = None
    duration: timedelta | None = None
    created_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        """Whether the entry is still running."""
        return self.end_time is None


class TaskDuration(BaseModel):
    """Summed duration of closed entries for one task, as read from the store."""

    task_id: int
    description: str = ""
    total_seconds: float


class WorkloadRow(_CamelModel):
    """Per-task workload in hours and minutes."""

    task_id: int = Field(..., description="Task ID")
    description: str | None = Field(default=None, description="Task description")
    hours: int = Field(..., description="Whole hours")
    minutes: int = Field(..., description="Remaining minutes")
