"""Users API endpoints (admin only, except a user's own task list)."""
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from taskhub_core import schemas
from taskhub_core.access_policy import Principal
from taskhub_core.errors import TaskHubError
from taskhub_core.services import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, ProjectService, TaskService, UserService

from ..auth import get_current_principal
from ..dependencies import get_project_service, get_task_service, get_user_service

logger = logging.getLogger("taskhub-core.users")

router = APIRouter(tags=["users"])


@router.get("", response_model=schemas.PageEnvelope[schemas.UserResponse])
def list_users(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, description="Items per page"),
    principal: Principal = Depends(get_current_principal),
    service: UserService = Depends(get_user_service),
):
    """
    List users, newest first (admin only).

    - **page**: Page number (starts at 1)
    - **limit**: Number of items per page (1-100)
    """
    return service.list_users(principal, page=page, limit=limit)


@router.post("", status_code=201, response_model=schemas.Envelope[schemas.UserResponse])
def create_user(
    user: schemas.UserCreate,
    principal: Principal = Depends(get_current_principal),
    service: UserService = Depends(get_user_service),
):
    """
    Create a new user (admin only).

    - **name**: Display name
    - **email**: Email address (must be unique)
    - **role**: admin or user (default: user)
    """
    try:
        return service.create_user(principal, user)
    except TaskHubError:
        raise
    except Exception as e:
        logger.error(f"Error creating user: {e}", exc_info=True)
        raise


@router.get("/{user_id}", response_model=schemas.Envelope[schemas.UserResponse])
def get_user(
    user_id: UUID,
    principal: Principal = Depends(get_current_principal),
    service: UserService = Depends(get_user_service),
):
    """
    Get a specific user by ID (admin only).
    """
    return service.get_user(principal, user_id)


@router.put("/{user_id}", response_model=schemas.Envelope[schemas.UserResponse])
def update_user(
    user_id: UUID,
    user_update: schemas.UserUpdate,
    principal: Principal = Depends(get_current_principal),
    service: UserService = Depends(get_user_service),
):
    """
    Update a user (admin only).

    - **name**: New name (optional)
    - **email**: New email (optional, must stay unique)
    - **role**: New role (optional)
    """
    return service.update_user(principal, user_id, user_update)


@router.delete("/{user_id}", response_model=schemas.Envelope[dict])
def delete_user(
    user_id: UUID,
    principal: Principal = Depends(get_current_principal),
    service: UserService = Depends(get_user_service),
):
    """
    Delete a user (admin only).

    Projects and tasks that reference the user keep the dangling id.
    """
    return service.delete_user(principal, user_id)


@router.get("/{user_id}/projects", response_model=schemas.ListEnvelope[schemas.ProjectResponse])
def list_user_projects(
    user_id: UUID,
    principal: Principal = Depends(get_current_principal),
    service: ProjectService = Depends(get_project_service),
):
    """
    List the projects a user is assigned to (admin only).
    """
    return service.list_user_projects(principal, user_id)


@router.get("/{user_id}/tasks", response_model=schemas.ListEnvelope[schemas.TaskResponse])
def list_user_tasks(
    user_id: UUID,
    principal: Principal = Depends(get_current_principal),
    service: TaskService = Depends(get_task_service),
):
    """
    List the tasks assigned to a user (admin, or the user themself).
    """
    return service.list_user_tasks(principal, user_id)
