"""Command-line interface for the time tracker.

Runs the HTTP service and offers a few direct commands against the local
database, which are handy for maintenance and for trying the tracker
without an HTTP client.
"""

import argparse
import logging
import sys
from typing import NoReturn

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from timetracker import __version__
from timetracker.config import settings
from timetracker.errors import TimeTrackerError
from timetracker.storage import SQLiteStore
from timetracker.tracking import TaskTimeTracker, WorkloadAggregator, format_duration, parse_day

console = Console()


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level.upper(), logging.INFO)
    fmt = "%(name)s: %(message)s" if verbose else "%(message)s"
    logging.basicConfig(
        level=level,
        format=fmt,
        handlers=[RichHandler(rich_tracebacks=True, console=console, show_path=verbose)],
    )


def _open_store() -> SQLiteStore:
    return SQLiteStore(settings.get_database_path())


def cmd_serve(args: argparse.Namespace) -> None:
    """Run the HTTP service."""
    import uvicorn

    from timetracker.api import create_app

    host = args.host or settings.app_host
    port = args.port or settings.app_port

    app = create_app(config=settings)
    console.print(f"[bold]time-tracker[/bold] v{__version__} listening on {host}:{port}")
    # log_config=None keeps uvicorn on the handlers installed by setup_logging
    uvicorn.run(app, host=host, port=port, log_config=None)


def cmd_migrate(args: argparse.Namespace) -> None:
    """Create or upgrade the database schema."""
    store = SQLiteStore(settings.get_database_path(), migrate=False)
    version = store.migrate()
    console.print(f"[green]Database {store.db_path} is at schema version {version}.[/green]")


def cmd_add_task(args: argparse.Namespace) -> None:
    """Create a task for a user."""
    task = TaskTimeTracker(_open_store()).create_task(args.user_id, args.description)
    console.print(f"Created task [cyan]{task.id}[/cyan] for user {task.user_id}.")


def cmd_start(args: argparse.Namespace) -> None:
    """Start tracking time on a task."""
    task = TaskTimeTracker(_open_store()).start_task(args.user_id, args.task_id)
    console.print(f"Started task [cyan]{task.id}[/cyan] at {task.start_time.isoformat()}.")


def cmd_stop(args: argparse.Namespace) -> None:
    """Stop tracking time on a task."""
    task = TaskTimeTracker(_open_store()).stop_task(args.user_id, args.task_id)
    elapsed = (task.end_time - task.start_time).total_seconds()
    console.print(f"Stopped task [cyan]{task.id}[/cyan] after {format_duration(elapsed)}.")


def cmd_workload(args: argparse.Namespace) -> None:
    """Show a user's workload between two dates."""
    start = parse_day(args.start, "start")
    end = parse_day(args.end, "end")
    rows = WorkloadAggregator(_open_store()).get_workload(args.user_id, start, end)

    if not rows:
        console.print(f"[yellow]No closed time entries for user {args.user_id} between {start} and {end}.[/yellow]")
        return

    table = Table(title=f"Workload of user {args.user_id}, {start} to {end}")
    table.add_column("Task", style="cyan")
    table.add_column("Description", style="white")
    table.add_column("Time", style="green", justify="right")

    total_minutes = 0
    for row in rows:
        minutes = row.hours * 60 + row.minutes
        total_minutes += minutes
        table.add_row(str(row.task_id), row.description or "", format_duration(minutes * 60))

    console.print(table)
    console.print(f"Total: {format_duration(total_minutes * 60)}")


def cmd_version(args: argparse.Namespace) -> None:
    """Show version and configuration information."""
    console.print(f"[bold]time-tracker[/bold] v{__version__}")
    console.print(f"Database: {settings.get_database_path()}")
    console.print(f"People lookup: {settings.people_api_url}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="timetracker",
        description="Time tracker - users, task timers and workload reports",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show detailed output")
    subparsers = parser.add_subparsers(dest="command")

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP service",
        description="Apply the database schema and serve the HTTP API.",
    )
    serve_parser.add_argument("--host", default=None, help="Interface to bind (default from settings)")
    serve_parser.add_argument("--port", type=int, default=None, help="Port to listen on (default from settings)")
    serve_parser.set_defaults(func=cmd_serve)

    migrate_parser = subparsers.add_parser("migrate", help="Create or upgrade the database schema")
    migrate_parser.set_defaults(func=cmd_migrate)

    add_task_parser = subparsers.add_parser("add-task", help="Create a task for a user")
    add_task_parser.add_argument("user_id", type=int, help="Owning user ID")
    add_task_parser.add_argument("description", help="What the task is about")
    add_task_parser.set_defaults(func=cmd_add_task)

    start_parser = subparsers.add_parser("start", help="Start tracking time on a task")
    start_parser.add_argument("user_id", type=int, help="User ID")
    start_parser.add_argument("task_id", type=int, help="Task ID")
    start_parser.set_defaults(func=cmd_start)

    stop_parser = subparsers.add_parser("stop", help="Stop tracking time on a task")
    stop_parser.add_argument("user_id", type=int, help="User ID")
    stop_parser.add_argument("task_id", type=int, help="Task ID")
    stop_parser.set_defaults(func=cmd_stop)

    workload_parser = subparsers.add_parser(
        "workload",
        help="Show time spent per task",
        epilog="""Examples:
  timetracker workload 1 --start 2023-07-01 --end 2023-07-31""",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    workload_parser.add_argument("user_id", type=int, help="User ID")
    workload_parser.add_argument("--start", required=True, help="First day (YYYY-MM-DD)")
    workload_parser.add_argument("--end", required=True, help="Last day, inclusive (YYYY-MM-DD)")
    workload_parser.set_defaults(func=cmd_workload)

    version_parser = subparsers.add_parser("version", help="Show version information")
    version_parser.set_defaults(func=cmd_version)

    return parser


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point for the time tracker CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    setup_logging(args.verbose)

    try:
        args.func(args)
    except TimeTrackerError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        sys.exit(1)
    sys.exit(0)


if __name__ == "__main__":
    main()
