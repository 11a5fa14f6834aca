"""Access policy for projects, tasks and users.

Each rule comes in two forms:
- can_*: pure predicate returning True/False
- authorize_*: raises UnauthorizedError with a user-visible reason on denial

Admin role always overrides ownership and assignment checks. Callers must
resolve the target resource first: a missing resource is a NotFoundError and
is reported before any rule here runs.
"""
import logging
from dataclasses import dataclass
from uuid import UUID

from .errors import UnauthorizedError
from .models import Project, Task, UserRole

logger = logging.getLogger("taskhub-core.access_policy")


@dataclass(frozen=True)
class Principal:
    """The authenticated actor executing a request."""

    id: UUID
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def _authorize(principal: Principal, allowed: bool, reason: str) -> None:
    if not allowed:
        logger.warning(f"Denied principal {principal.id} ({principal.role.value}): {reason}")
        raise UnauthorizedError(reason)


# ============================================================================
# Predicates
# ============================================================================

def can_view_project(principal: Principal, project: Project) -> bool:
    """Admins and assigned members may view a project."""
    return principal.is_admin or project.has_member(principal.id)


def can_mutate_project(principal: Principal) -> bool:
    """Only admins may create, update or delete projects."""
    return principal.is_admin


def can_view_project_tasks(principal: Principal, project: Project) -> bool:
    return can_view_project(principal, project)


def can_create_task_on_project(principal: Principal, project: Project) -> bool:
    return principal.is_admin or project.has_member(principal.id)


def can_view_task(principal: Principal, task: Task) -> bool:
    """Admins, the assignee and the creator may view a task."""
    return (
        principal.is_admin
        or task.assigned_user == principal.id
        or task.created_by == principal.id
    )


def can_mutate_task(principal: Principal, task: Task) -> bool:
    """Admins and the creator may update or delete a task (status excluded)."""
    return principal.is_admin or task.created_by == principal.id


def can_update_task_status(principal: Principal, task: Task) -> bool:
    """Admins and the assignee may change a task's status."""
    return principal.is_admin or task.assigned_user == principal.id


def can_view_user_tasks(principal: Principal, target_user_id: UUID) -> bool:
    return principal.is_admin or principal.id == target_user_id


def can_manage_users(principal: Principal) -> bool:
    """All user management, including listing a user's projects, is admin-only."""
    return principal.is_admin


# ============================================================================
# Enforcement
# ============================================================================

def authorize_view_project(principal: Principal, project: Project) -> None:
    _authorize(principal, can_view_project(principal, project), "Not authorized to access this project")


def authorize_mutate_project(principal: Principal) -> None:
    _authorize(
        principal,
        can_mutate_project(principal),
        f"User role {principal.role.value} is not authorized to access this route",
    )


def authorize_view_project_tasks(principal: Principal, project: Project) -> None:
    _authorize(
        principal,
        can_view_project_tasks(principal, project),
        "Not authorized to access tasks for this project",
    )


def authorize_create_task_on_project(principal: Principal, project: Project) -> None:
    _authorize(
        principal,
        can_create_task_on_project(principal, project),
        "Not authorized to add tasks to this project",
    )


def authorize_view_task(principal: Principal, task: Task) -> None:
    _authorize(principal, can_view_task(principal, task), "Not authorized to access this task")


def authorize_update_task(principal: Principal, task: Task) -> None:
    _authorize(principal, can_mutate_task(principal, task), "Not authorized to update this task")


def authorize_delete_task(principal: Principal, task: Task) -> None:
    _authorize(principal, can_mutate_task(principal, task), "Not authorized to delete this task")


def authorize_update_task_status(principal: Principal, task: Task) -> None:
    _authorize(
        principal,
        can_update_task_status(principal, task),
        "Not authorized to update this task's status",
    )


def authorize_view_user_tasks(principal: Principal, target_user_id: UUID) -> None:
    _authorize(
        principal,
        can_view_user_tasks(principal, target_user_id),
        "Not authorized to access tasks for this user",
    )


def authorize_manage_users(principal: Principal) -> None:
    _authorize(
        principal,
        can_manage_users(principal),
        f"User role {principal.role.value} is not authorized to access this route",
    )
