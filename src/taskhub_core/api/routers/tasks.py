"""Tasks API endpoints."""
import logging
from uuid import UUID

from fastapi import APIRouter, Depends
from taskhub_core import schemas
from taskhub_core.access_policy import Principal
from taskhub_core.services import TaskService

from ..auth import get_current_principal
from ..dependencies import get_task_service

logger = logging.getLogger("taskhub-core.tasks")

router = APIRouter(tags=["tasks"])


@router.get("", response_model=schemas.ListEnvelope[schemas.TaskResponse])
def list_tasks(
    principal: Principal = Depends(get_current_principal),
    service: TaskService = Depends(get_task_service),
):
    """
    List tasks.

    Admins see every task; other users see tasks assigned to them or created by them.
    """
    return service.list_tasks(principal)


@router.get("/{task_id}", response_model=schemas.Envelope[schemas.TaskResponse])
def get_task(
    task_id: UUID,
    principal: Principal = Depends(get_current_principal),
    service: TaskService = Depends(get_task_service),
):
    """
    Get a specific task by ID (admin, assignee or creator).
    """
    return service.get_task(principal, task_id)


@router.put("/{task_id}", response_model=schemas.Envelope[schemas.TaskResponse])
def update_task(
    task_id: UUID,
    task_update: schemas.TaskUpdate,
    principal: Principal = Depends(get_current_principal),
    service: TaskService = Depends(get_task_service),
):
    """
    Update a task (admin or creator).

    - **name**, **description**: New values (optional)
    - **assignedUser**: New assignee; must be a member of the task's project
    - **startDate** / **endDate**: Re-checked against the stored other side
    - **status**: Also requires being admin or the assignee
    """
    return service.update_task(principal, task_id, task_update)


@router.delete("/{task_id}", response_model=schemas.Envelope[dict])
def delete_task(
    task_id: UUID,
    principal: Principal = Depends(get_current_principal),
    service: TaskService = Depends(get_task_service),
):
    """
    Delete a task (admin or creator).
    """
    return service.delete_task(principal, task_id)


@router.put("/{task_id}/status", response_model=schemas.Envelope[schemas.TaskResponse])
def update_task_status(
    task_id: UUID,
    status_update: schemas.TaskStatusUpdate,
    principal: Principal = Depends(get_current_principal),
    service: TaskService = Depends(get_task_service),
):
    """
    Set a task's status (admin or assignee).

    - **status**: pending, in-progress or completed. Any value may follow any other.
    """
    return service.update_task_status(principal, task_id, status_update.status)
