"""Translate service errors into HTTP responses."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from timetracker.errors import TimeTrackerError

logger = logging.getLogger(__name__)

BAD_REQUEST_MESSAGE = "bad request"
INTERNAL_SERVER_ERROR_MESSAGE = "internal server error"


def error_response(status_code: int, message: str) -> JSONResponse:
    """Build the JSON error body shared by every handler."""
    return JSONResponse(status_code=status_code, content={"detail": message})


def register_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers for the FastAPI app.

    Client errors keep their message. Server-side errors only expose the
    generic message of their class; the details go to the log.
    """

    @app.exception_handler(TimeTrackerError)
    async def tracker_error_handler(request: Request, exc: TimeTrackerError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path}: {exc.describe()}")
            return error_response(exc.status_code, type(exc).message)
        logger.info(f"{request.method} {request.url.path}: {exc.describe()}")
        return error_response(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.info(f"{request.method} {request.url.path}: invalid request: {exc.errors()}")
        return error_response(status.HTTP_400_BAD_REQUEST, BAD_REQUEST_MESSAGE)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception(f"{request.method} {request.url.path}: unexpected error: {exc}")
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_SERVER_ERROR_MESSAGE)
