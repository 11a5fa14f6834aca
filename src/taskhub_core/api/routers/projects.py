"""Projects API endpoints."""
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from taskhub_core import schemas
from taskhub_core.access_policy import Principal
from taskhub_core.errors import TaskHubError
from taskhub_core.services import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, ProjectService, TaskService

from ..auth import get_current_principal
from ..dependencies import get_project_service, get_task_service

logger = logging.getLogger("taskhub-core.projects")

router = APIRouter(tags=["projects"])


@router.get("", response_model=schemas.PageEnvelope[schemas.ProjectResponse])
def list_projects(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, description="Items per page"),
    principal: Principal = Depends(get_current_principal),
    service: ProjectService = Depends(get_project_service),
):
    """
    List projects.

    Admins see every project; other users only see projects they are assigned to.
    Members and creator are expanded.

    - **page**: Page number (starts at 1)
    - **limit**: Number of items per page (1-100)
    """
    return service.list_projects(principal, page=page, limit=limit)


@router.post("", status_code=201, response_model=schemas.Envelope[schemas.ProjectResponse])
def create_project(
    project: schemas.ProjectCreate,
    principal: Principal = Depends(get_current_principal),
    service: ProjectService = Depends(get_project_service),
):
    """
    Create a new project (admin only).

    - **name**: Project name (max 100 characters)
    - **description**: Project description (max 500 characters)
    - **assignedUsers**: Ids of existing users; duplicates are dropped
    """
    try:
        return service.create_project(principal, project)
    except TaskHubError:
        raise
    except Exception as e:
        logger.error(f"Error creating project: {e}", exc_info=True)
        raise


@router.get("/{project_id}", response_model=schemas.Envelope[schemas.ProjectResponse])
def get_project(
    project_id: UUID,
    principal: Principal = Depends(get_current_principal),
    service: ProjectService = Depends(get_project_service),
):
    """
    Get a specific project by ID (admin or assigned member).
    """
    return service.get_project(principal, project_id)


@router.put("/{project_id}", response_model=schemas.Envelope[schemas.ProjectResponse])
def update_project(
    project_id: UUID,
    project_update: schemas.ProjectUpdate,
    principal: Principal = Depends(get_current_principal),
    service: ProjectService = Depends(get_project_service),
):
    """
    Update a project (admin only).

    - **name**: New project name (optional)
    - **description**: New description (optional)
    - **assignedUsers**: Replacement member list (optional)
    """
    return service.update_project(principal, project_id, project_update)


@router.delete("/{project_id}", response_model=schemas.Envelope[dict])
def delete_project(
    project_id: UUID,
    principal: Principal = Depends(get_current_principal),
    service: ProjectService = Depends(get_project_service),
):
    """
    Delete a project and all its tasks (cascading delete, admin only).
    """
    return service.delete_project(principal, project_id)


# Project Tasks endpoints

@router.get("/{project_id}/tasks", response_model=schemas.ListEnvelope[schemas.TaskResponse])
def list_project_tasks(
    project_id: UUID,
    principal: Principal = Depends(get_current_principal),
    service: ProjectService = Depends(get_project_service),
):
    """
    List the tasks of a project (admin or assigned member).
    """
    return service.list_project_tasks(principal, project_id)


@router.post("/{project_id}/tasks", status_code=201, response_model=schemas.Envelope[schemas.TaskResponse])
def create_project_task(
    project_id: UUID,
    task: schemas.TaskCreate,
    principal: Principal = Depends(get_current_principal),
    service: TaskService = Depends(get_task_service),
):
    """
    Create a task in a project (admin or assigned member).

    - **name**: Task name (max 100 characters)
    - **description**: Task description (max 500 characters)
    - **assignedUser**: Id of a member of this project
    - **startDate** / **endDate**: Task window; start must not be after end
    - **status**: Initial status (default: pending)
    """
    try:
        return service.create_task(principal, project_id, task)
    except TaskHubError:
        raise
    except Exception as e:
        logger.error(f"Error creating task in project {project_id}: {e}", exc_info=True)
        raise
