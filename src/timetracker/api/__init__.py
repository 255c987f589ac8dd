"""HTTP API for the time tracker.

Example:
    from timetracker.api import create_app

    app = create_app()
    uvicorn.run(app, port=8080)
"""

from timetracker.api.app import build_service, create_app

__all__ = ["build_service", "create_app"]
