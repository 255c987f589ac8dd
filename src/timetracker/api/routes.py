"""HTTP endpoints for users, tasks and workload reports.

Endpoints that only touch the store are plain ``def`` functions, which
FastAPI runs in its worker thread pool; only user creation awaits the
people lookup.
"""

import logging

from fastapi import APIRouter, Depends, Query, Request, Response, status

from timetracker.models import Task, TaskCreate, User, UserCreate, UserUpdate, WorkloadRow
from timetracker.service import UserService
from timetracker.tracking import parse_day

logger = logging.getLogger(__name__)

router = APIRouter()


def get_service(request: Request) -> UserService:
    """Dependency returning the service attached to the app."""
    return request.app.state.service


@router.get("/health", response_model=dict)
def health() -> dict[str, str]:
    """Liveness check."""
    return {"status": "ok"}


@router.get("/users", response_model=list[User])
def list_users(
    page: int = Query(..., description="Page number, starting at 1"),
    limit: int = Query(..., description="Number of users per page"),
    surname: str = Query(default="", description="Filter by surname prefix"),
    name: str = Query(default="", description="Filter by name prefix"),
    passport_number: str = Query(default="", description="Filter by passport number prefix"),
    patronymic: str = Query(default="", description="Filter by patronymic prefix"),
    address: str = Query(default="", description="Filter by address prefix"),
    service: UserService = Depends(get_service),
):
    """List users with pagination and filtering."""
    filters = {
        "surname": surname,
        "name": name,
        "passport_number": passport_number,
        "patronymic": patronymic,
        "address": address,
    }
    return service.get_users(page, limit, filters)


@router.post("/users", response_model=User, status_code=status.HTTP_201_CREATED)
async def add_user(payload: UserCreate, service: UserService = Depends(get_service)):
    """Create a user, enriching it from the people lookup service."""
    return await service.add_user(payload)


@router.put("/users/{user_id}", response_model=User)
def update_user(
    user_id: int,
    payload: UserUpdate,
    service: UserService = Depends(get_service),
):
    """Update a user's information."""
    return service.update_user(user_id, payload)


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(user_id: int, service: UserService = Depends(get_service)):
    """Delete a user by ID."""
    service.delete_user(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/users/{user_id}/workload", response_model=list[WorkloadRow], response_model_exclude_none=True)
def get_user_workload(
    user_id: int,
    start: str = Query(..., description="Start date (YYYY-MM-DD)"),
    end: str = Query(..., description="End date (YYYY-MM-DD)"),
    service: UserService = Depends(get_service),
):
    """Time spent per task between two dates, longest first."""
    start_day = parse_day(start, "start")
    end_day = parse_day(end, "end")
    workload = service.get_user_workload(user_id, start_day, end_day)
    logger.debug(f"Returning workload of user {user_id}")
    return workload


@router.post(
    "/users/{user_id}/tasks",
    response_model=Task,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
def create_user_task(
    user_id: int,
    payload: TaskCreate,
    service: UserService = Depends(get_service),
):
    """Create a task for a user."""
    return service.create_user_task(user_id, payload.description)


@router.post("/users/{user_id}/tasks/{task_id}/start", response_model=Task, response_model_exclude_none=True)
def start_user_task(user_id: int, task_id: int, service: UserService = Depends(get_service)):
    """Start tracking time on a task."""
    task = service.start_user_task(user_id, task_id)
    logger.debug(f"Started task {task_id} of user {user_id}")
    return task


@router.post("/users/{user_id}/tasks/{task_id}/stop", response_model=Task, response_model_exclude_none=True)
def stop_user_task(user_id: int, task_id: int, service: UserService = Depends(get_service)):
    """Stop tracking time on a task."""
    task = service.stop_user_task(user_id, task_id)
    logger.debug(f"Stopped task {task_id} of user {user_id}")
    return task
