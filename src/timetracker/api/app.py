"""FastAPI application factory."""

import logging

from fastapi import FastAPI

from timetracker import __version__
from timetracker.api.errors import register_exception_handlers
from timetracker.api.routes import router
from timetracker.config import Settings
from timetracker.people import PeopleClient
from timetracker.service import UserService
from timetracker.storage import SQLiteStore
from timetracker.tracking import TaskTimeTracker, WorkloadAggregator

logger = logging.getLogger(__name__)


def build_service(config: Settings) -> UserService:
    """Wire the service against the SQLite store named in the settings."""
    store = SQLiteStore(config.get_database_path())
    logger.info(f"Using database {store.db_path}")
    return UserService(
        users=store,
        people=PeopleClient(config.people_api_url, timeout=config.people_api_timeout),
        tracker=TaskTimeTracker(store),
        workload=WorkloadAggregator(store),
    )


def create_app(service: UserService | None = None, config: Settings | None = None) -> FastAPI:
    """Create the HTTP application.

    Args:
        service: Service to serve. Built from ``config`` when omitted.
        config: Settings used to build the service. Defaults to the environment.

    Returns:
        Configured FastAPI app.
    """
    if service is None:
        service = build_service(config or Settings())

    app = FastAPI(
        title="time-tracker",
        description="User records, task timers and workload reports",
        version=__version__,
    )
    app.state.service = service
    register_exception_handlers(app)
    app.include_router(router)
    return app
