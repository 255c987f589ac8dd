"""SQLite storage for users, tasks and time entries.

Start/stop run inside ``BEGIN IMMEDIATE`` transactions, which take the
database write lock up front, so the "is there an open entry" check and
the insert that follows cannot interleave with another writer. A partial
unique index on open entries backs the same rule at the schema level.
"""

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from timetracker.errors import ConflictError, NotFoundError
from timetracker.models import People, Task, TaskDuration, TimeEntry, User, UserUpdate
from timetracker.storage.base import StoreSession, TimeTrackingStore, UserRepository, iter_filters

logger = logging.getLogger(__name__)

# Bumped whenever SCHEMA changes
SCHEMA_VERSION = 1

SCHEMA = """
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        passport_number TEXT NOT NULL,
        surname TEXT NOT NULL DEFAULT '',
        name TEXT NOT NULL DEFAULT '',
        patronymic TEXT NOT NULL DEFAULT '',
        address TEXT NOT NULL DEFAULT '',
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS tasks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        description TEXT NOT NULL DEFAULT '',
        created_at TEXT NOT NULL
    );
    CREATE INDEX IF NOT EXISTS idx_tasks_user_id ON tasks(user_id);

    -- end_time and duration_us stay NULL while the entry is running
    CREATE TABLE IF NOT EXISTS time_entries (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        task_id INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
        start_time TEXT NOT NULL,
        end_time TEXT,
        duration_us INTEGER,
        created_at TEXT NOT NULL
    );
    CREATE INDEX IF NOT EXISTS idx_time_entries_task_id ON time_entries(task_id);
    CREATE INDEX IF NOT EXISTS idx_time_entries_start_time ON time_entries(start_time);

    -- At most one open entry per task
    CREATE UNIQUE INDEX IF NOT EXISTS idx_time_entries_open
        ON time_entries(task_id) WHERE end_time IS NULL;
"""

# Fixed width so timestamps compare correctly as text
_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def to_db_time(value: datetime) -> str:
    """Format a datetime as UTC text. Naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(_TIMESTAMP_FORMAT)


def from_db_time(value: str | None) -> datetime | None:
    """Parse UTC text written by to_db_time."""
    if value is None:
        return None
    return datetime.strptime(value, _TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)


def _duration_us(duration: timedelta) -> int:
    return (duration.days * 86400 + duration.seconds) * 1_000_000 + duration.microseconds


def _row_to_task(row: sqlite3.Row) -> Task:
    return Task(
        id=row["id"],
        user_id=row["user_id"],
        description=row["description"],
        created_at=from_db_time(row["created_at"]),
    )


def _row_to_entry(row: sqlite3.Row) -> TimeEntry:
    duration = row["duration_us"]
    return TimeEntry(
        id=row["id"],
        task_id=row["task_id"],
        start_time=from_db_time(row["start_time"]),
        end_time=from_db_time(row["end_time"]),
        duration=timedelta(microseconds=duration) if duration is not None else None,
        created_at=from_db_time(row["created_at"]),
    )


def _row_to_user(row: sqlite3.Row) -> User:
    return User(
        id=row["id"],
        passport_number=row["passport_number"],
        surname=row["surname"],
        name=row["name"],
        patronymic=row["patronymic"],
        address=row["address"],
        created_at=from_db_time(row["created_at"]),
        updated_at=from_db_time(row["updated_at"]),
    )


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _casefold(value: str | None) -> str | None:
    return value.casefold() if value is not None else None


class SQLiteSession(StoreSession):
    """Task and time entry operations bound to one open transaction."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def create_task(self, user_id: int, description: str, created_at: datetime) -> Task:
        exists = self._conn.execute("SELECT 1 FROM users WHERE id = ?", (user_id,)).fetchone()
        if exists is None:
            raise NotFoundError("user not found", {"user_id": user_id})

        cursor = self._conn.execute(
            "INSERT INTO tasks (user_id, description, created_at) VALUES (?, ?, ?)",
            (user_id, description, to_db_time(created_at)),
        )
        return Task(
            id=cursor.lastrowid,
            user_id=user_id,
            description=description,
            created_at=from_db_time(to_db_time(created_at)),
        )

    def get_task(self, task_id: int, user_id: int) -> Task:
        row = self._conn.execute(
            """SELECT id, user_id, description, created_at
               FROM tasks
               WHERE id = ? AND user_id = ?""",
            (task_id, user_id),
        ).fetchone()
        if row is None:
            raise NotFoundError(
                "task not found or doesn't belong to the user",
                {"user_id": user_id, "task_id": task_id},
            )
        return _row_to_task(row)

    def has_open_entry(self, task_id: int) -> bool:
        row = self._conn.execute(
            "SELECT COUNT(*) FROM time_entries WHERE task_id = ? AND end_time IS NULL",
            (task_id,),
        ).fetchone()
        return row[0] > 0

    def insert_open_entry(self, task_id: int, start_time: datetime) -> TimeEntry:
        start = to_db_time(start_time)
        try:
            cursor = self._conn.execute(
                "INSERT INTO time_entries (task_id, start_time, created_at) VALUES (?, ?, ?)",
                (task_id, start, start),
            )
        except sqlite3.IntegrityError as e:
            raise ConflictError("task is already active", {"task_id": task_id}) from e

        return TimeEntry(
            id=cursor.lastrowid,
            task_id=task_id,
            start_time=from_db_time(start),
            created_at=from_db_time(start),
        )

    def close_open_entry(self, task_id: int, end_time: datetime) -> TimeEntry:
        row = self._conn.execute(
            "SELECT * FROM time_entries WHERE task_id = ? AND end_time IS NULL",
            (task_id,),
        ).fetchone()
        if row is None:
            raise NotFoundError("no running time entry for task", {"task_id": task_id})

        entry = _row_to_entry(row)
        end = from_db_time(to_db_time(end_time))
        duration = end - entry.start_time

        cursor = self._conn.execute(
            """UPDATE time_entries
               SET end_time = ?, duration_us = ?
               WHERE id = ? AND end_time IS NULL""",
            (to_db_time(end), _duration_us(duration), entry.id),
        )
        if cursor.rowcount != 1:
            raise NotFoundError("no running time entry for task", {"task_id": task_id})

        return entry.model_copy(update={"end_time": end, "duration": duration})

    def sum_durations_by_task(
        self,
        user_id: int,
        start: datetime,
        end: datetime,
    ) -> list[TaskDuration]:
        cursor = self._conn.execute(
            """SELECT t.id AS task_id, t.description AS description,
                      SUM(te.duration_us) AS total_us
               FROM tasks t
               JOIN time_entries te ON t.id = te.task_id
               WHERE t.user_id = ?
                 AND te.end_time IS NOT NULL
                 AND te.start_time >= ?
                 AND te.end_time < ?
               GROUP BY t.id, t.description
               ORDER BY total_us DESC, t.id""",
            (user_id, to_db_time(start), to_db_time(end)),
        )
        return [
            TaskDuration(
                task_id=row["task_id"],
                description=row["description"],
                total_seconds=row["total_us"] / 1_000_000,
            )
            for row in cursor.fetchall()
        ]


class SQLiteStore(TimeTrackingStore, UserRepository):
    """SQLite-backed store for the whole service."""

    def __init__(
        self,
        db_path: Path | str | None = None,
        timeout: float = 30.0,
        migrate: bool = True,
    ) -> None:
        """Open (and by default migrate) the database.

        Args:
            db_path: Path to SQLite database file. Defaults to ~/.timetracker/timetracker.db
            timeout: Seconds to wait for the write lock held by another connection.
            migrate: Apply the schema on startup.
        """
        if db_path is None:
            db_path = Path.home() / ".timetracker" / "timetracker.db"

        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.timeout = timeout

        if migrate:
            self.migrate()

    def migrate(self) -> int:
        """Create tables and indexes if missing.

        Returns:
            The schema version now recorded in the database.
        """
        conn = self._connect()
        try:
            current = conn.execute("PRAGMA user_version").fetchone()[0]
            conn.executescript(SCHEMA)
            if current != SCHEMA_VERSION:
                conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
                logger.info(f"Migrated {self.db_path} from schema {current} to {SCHEMA_VERSION}")
        finally:
            conn.close()
        return SCHEMA_VERSION

    def _connect(self) -> sqlite3.Connection:
        # Autocommit mode; transactions are opened explicitly
        conn = sqlite3.connect(self.db_path, timeout=self.timeout, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        # Built-in LIKE only folds ASCII letters
        conn.create_function("casefold", 1, _casefold, deterministic=True)
        return conn

    @contextmanager
    def _connection(self, readonly: bool = False) -> Iterator[sqlite3.Connection]:
        conn = self._connect()
        try:
            conn.execute("BEGIN" if readonly else "BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        finally:
            conn.close()

    @contextmanager
    def transaction(self, readonly: bool = False) -> Iterator[SQLiteSession]:
        with self._connection(readonly=readonly) as conn:
            yield SQLiteSession(conn)

    # =========================================================================
    # Users
    # =========================================================================

    def add_user(self, passport_number: str, details: People) -> User:
        now = to_db_time(datetime.now(timezone.utc))
        with self._connection() as conn:
            cursor = conn.execute(
                """INSERT INTO users
                   (passport_number, surname, name, patronymic, address, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    passport_number,
                    details.surname,
                    details.name,
                    details.patronymic,
                    details.address,
                    now,
                    now,
                ),
            )
            row = conn.execute("SELECT * FROM users WHERE id = ?", (cursor.lastrowid,)).fetchone()
        return _row_to_user(row)

    def get_user(self, user_id: int) -> User:
        with self._connection(readonly=True) as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        if row is None:
            raise NotFoundError("user not found", {"user_id": user_id})
        return _row_to_user(row)

    def list_users(self, page: int, limit: int, filters: dict[str, str]) -> list[User]:
        query = "SELECT * FROM users WHERE 1=1"
        params: list[Any] = []

        for field, value in iter_filters(filters):
            query += f" AND casefold({field}) LIKE ? ESCAPE '\\'"
            params.append(_escape_like(value.casefold()) + "%")

        query += " ORDER BY id LIMIT ? OFFSET ?"
        params.extend([limit, (page - 1) * limit])

        with self._connection(readonly=True) as conn:
            rows = conn.execute(query, params).fetchall()
        return [_row_to_user(row) for row in rows]

    def update_user(self, user_id: int, changes: UserUpdate) -> User:
        fields = changes.changes()
        with self._connection() as conn:
            if fields:
                assignments = ", ".join(f"{field} = ?" for field in fields)
                conn.execute(
                    f"UPDATE users SET {assignments}, updated_at = ? WHERE id = ?",
                    [*fields.values(), to_db_time(datetime.now(timezone.utc)), user_id],
                )
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        if row is None:
            raise NotFoundError("user not found", {"user_id": user_id})
        return _row_to_user(row)

    def delete_user(self, user_id: int) -> None:
        with self._connection() as conn:
            deleted = conn.execute("DELETE FROM users WHERE id = ?", (user_id,)).rowcount
        if deleted == 0:
            raise NotFoundError("user not found", {"user_id": user_id})
