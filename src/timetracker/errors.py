"""Error types shared by the tracker, the storage layer and the HTTP API.

Every error carries a ``status_code`` so the API layer can translate it
without knowing which component raised it, and an optional ``context``
dict of identifiers (user id, task id, time window) used when logging.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

logger = logging.getLogger(__name__)


class TimeTrackerError(Exception):
    """Base error for the time tracker."""

    status_code: int = 500
    message: str = "internal server error"

    def __init__(self, message: str | None = None, context: dict[str, Any] | None = None) -> None:
        self.message = message or self.message
        self.context = context or {}
        super().__init__(self.message)

    def describe(self) -> str:
        """Message followed by the context identifiers, for log lines."""
        if not self.context:
            return self.message
        details = " ".join(f"{key}={value}" for key, value in self.context.items())
        return f"{self.message} ({details})"


class ValidationError(TimeTrackerError):
    """Malformed client input (ids, dates, passport numbers)."""

    status_code = 400
    message = "bad request"


class NotFoundError(TimeTrackerError):
    """A required record is missing or not owned by the caller."""

    status_code = 404
    message = "not found"


class ConflictError(TimeTrackerError):
    """A business rule rejected the operation, e.g. task already active."""

    status_code = 409
    message = "conflict"


class PeopleLookupError(TimeTrackerError):
    """The external people lookup service failed or answered garbage."""

    status_code = 502
    message = "people lookup failed"


class InternalError(TimeTrackerError):
    """Storage or transport failure."""

    status_code = 500
    message = "internal server error"


@contextmanager
def store_errors(operation: str, **context: Any) -> Iterator[None]:
    """Re-raise unexpected exceptions from a store call as InternalError.

    Errors that are already part of the taxonomy pass through untouched.

    Args:
        operation: Name of the operation, used in the log line.
        **context: Identifiers to attach to the error and the log line.
    """
    try:
        yield
    except TimeTrackerError:
        raise
    except Exception as e:
        error = InternalError(f"{operation} failed: {e}", context)
        logger.error(error.describe())
        raise error from e
