"""Resource services for users, projects and tasks.

Every operation follows the same order:
1. Load the target (missing -> NotFoundError)
2. Consult the access policy (denied -> UnauthorizedError)
3. Run integrity checks on the payload (invalid -> ValidationError)
4. Persist through crud and return a response envelope

Services receive their database session at construction; nothing here reads
global connection state.
"""
import logging
from math import ceil
from typing import Iterable, Optional
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import access_policy, crud, integrity, models, schemas
from .access_policy import Principal
from .errors import DuplicateEmailError, NotFoundError

logger = logging.getLogger("taskhub-core.services")

# Relations that can be expanded on a task
TASK_PROJECT = "project"
TASK_ASSIGNED_USER = "assigned_user"
TASK_CREATED_BY = "created_by"
ALL_TASK_RELATIONS = frozenset({TASK_PROJECT, TASK_ASSIGNED_USER, TASK_CREATED_BY})

DEFAULT_PAGE_SIZE = 25
MAX_PAGE_SIZE = 100


def envelope(data, pagination: Optional[schemas.Pagination] = None) -> dict:
    """
    Wrap a result in the success envelope.

    Lists carry a count of the items returned, plus a pagination block when
    they are one page of a larger result. Single entities and deletes carry
    neither.
    """
    if isinstance(data, list):
        payload = [_dump(item) for item in data]
        result = {"success": True, "count": len(payload)}
        if pagination is not None:
            result["pagination"] = _dump(pagination)
        result["data"] = payload
        return result
    return {"success": True, "data": _dump(data)}


def paginate(page: int, limit: int, total: int) -> schemas.Pagination:
    """Build the pagination block for page number `page` (1-based) of `total` items."""
    total_pages = ceil(total / limit) if total > 0 else 0
    return schemas.Pagination(
        page=page,
        limit=limit,
        total=total,
        total_pages=total_pages,
        next=schemas.PageRef(page=page + 1, limit=limit) if page < total_pages else None,
        prev=schemas.PageRef(page=page - 1, limit=limit) if page > 1 else None,
    )


def _dump(item):
    if isinstance(item, BaseModel):
        return item.model_dump(mode="json", by_alias=True)
    return item


# ============================================================================
# Read-side joins
# ============================================================================

def _users_by_id(db: Session, user_ids: Iterable[UUID]) -> dict[UUID, models.User]:
    return {user.id: user for user in crud.get_users_by_ids(db, set(user_ids))}


def _user_ref(users: dict, user_id: UUID) -> Optional[schemas.UserRef]:
    user = users.get(user_id)
    if user is None:
        return None
    return schemas.UserRef(id=user.id, name=user.name, email=user.email)


def _member_ref(users: dict, user_id: UUID) -> Optional[schemas.MemberRef]:
    user = users.get(user_id)
    if user is None:
        return None
    return schemas.MemberRef(id=user.id, name=user.name, email=user.email, role=user.role)


def project_to_response(
    project: models.Project,
    users: Optional[dict] = None,
) -> schemas.ProjectResponse:
    """
    Convert a Project model to ProjectResponse.

    With a users map, assignedUsers and createdBy are expanded; otherwise
    they are returned as raw ids.
    """
    if users is None:
        assigned = list(project.assigned_user_ids)
        created_by = project.created_by
    else:
        assigned = [_member_ref(users, user_id) for user_id in project.assigned_user_ids]
        created_by = _user_ref(users, project.created_by)

    return schemas.ProjectResponse(
        id=project.id,
        name=project.name,
        description=project.description,
        assigned_users=assigned,
        created_by=created_by,
        created_at=project.created_at,
        updated_at=project.updated_at,
    )


def populate_projects(db: Session, projects: list[models.Project]) -> list[schemas.ProjectResponse]:
    """Expand member and creator references for a batch of projects."""
    user_ids = set()
    for project in projects:
        user_ids.update(project.assigned_user_ids)
        user_ids.add(project.created_by)
    users = _users_by_id(db, user_ids)
    return [project_to_response(project, users) for project in projects]


def task_to_response(
    task: models.Task,
    expand: frozenset = frozenset(),
    users: Optional[dict] = None,
) -> schemas.TaskResponse:
    """Convert a Task model to TaskResponse, expanding the requested relations."""
    users = users or {}

    project = task.project_id
    if TASK_PROJECT in expand:
        project = None
        if task.project is not None:
            project = schemas.ProjectRef(
                id=task.project.id,
                name=task.project.name,
                description=task.project.description,
            )

    assigned_user = task.assigned_user
    if TASK_ASSIGNED_USER in expand:
        assigned_user = _user_ref(users, task.assigned_user)

    created_by = task.created_by
    if TASK_CREATED_BY in expand:
        created_by = _user_ref(users, task.created_by)

    return schemas.TaskResponse(
        id=task.id,
        name=task.name,
        description=task.description,
        project=project,
        assigned_user=assigned_user,
        start_date=task.start_date,
        end_date=task.end_date,
        status=task.status,
        created_by=created_by,
        created_at=task.created_at,
        updated_at=task.updated_at,
    )


def populate_tasks(
    db: Session,
    tasks: list[models.Task],
    expand: frozenset = ALL_TASK_RELATIONS,
) -> list[schemas.TaskResponse]:
    """Expand the requested relations for a batch of tasks with one user lookup."""
    user_ids = set()
    for task in tasks:
        if TASK_ASSIGNED_USER in expand:
            user_ids.add(task.assigned_user)
        if TASK_CREATED_BY in expand:
            user_ids.add(task.created_by)
    users = _users_by_id(db, user_ids) if user_ids else {}
    return [task_to_response(task, expand, users) for task in tasks]


# ============================================================================
# Services
# ============================================================================

class ProjectService:
    """Project operations, including the project-scoped task listing."""

    def __init__(self, db: Session):
        self.db = db

    def _load(self, project_id: UUID) -> models.Project:
        project = crud.get_project(self.db, project_id)
        if not project:
            raise NotFoundError(f"Project not found with id of {project_id}")
        return project

    def list_projects(
        self,
        principal: Principal,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> dict:
        """Admins see every project; other users see the projects they are assigned to."""
        member_id = None if principal.is_admin else principal.id
        projects, total = crud.get_projects(
            self.db, member_id=member_id, skip=(page - 1) * limit, limit=limit
        )
        return envelope(populate_projects(self.db, projects), paginate(page, limit, total))

    def get_project(self, principal: Principal, project_id: UUID) -> dict:
        project = self._load(project_id)
        access_policy.authorize_view_project(principal, project)
        return envelope(populate_projects(self.db, [project])[0])

    def create_project(self, principal: Principal, payload: schemas.ProjectCreate) -> dict:
        access_policy.authorize_mutate_project(principal)
        assigned_users = integrity.validate_assigned_users(self.db, payload.assigned_users)

        project = crud.create_project(
            self.db,
            name=payload.name,
            description=payload.description,
            assigned_users=assigned_users,
            created_by=principal.id,
        )
        logger.info(f"Created project '{project.name}' (ID: {project.id})")
        return envelope(project_to_response(project))

    def update_project(
        self,
        principal: Principal,
        project_id: UUID,
        payload: schemas.ProjectUpdate,
    ) -> dict:
        project = self._load(project_id)
        access_policy.authorize_mutate_project(principal)

        assigned_users = None
        if payload.assigned_users is not None:
            assigned_users = integrity.validate_assigned_users(self.db, payload.assigned_users)

        project = crud.update_project(
            self.db,
            project,
            name=payload.name,
            description=payload.description,
            assigned_users=assigned_users,
        )
        logger.info(f"Updated project {project.id}")
        return envelope(project_to_response(project))

    def delete_project(self, principal: Principal, project_id: UUID) -> dict:
        """Delete a project together with every task that belongs to it."""
        project = self._load(project_id)
        access_policy.authorize_mutate_project(principal)

        removed = crud.delete_project(self.db, project)
        logger.info(f"Deleted project {project_id} (cascaded {removed} tasks)")
        return envelope({})

    def list_project_tasks(self, principal: Principal, project_id: UUID) -> dict:
        project = self._load(project_id)
        access_policy.authorize_view_project_tasks(principal, project)

        tasks = crud.get_tasks(self.db, project_id=project.id)
        return envelope(populate_tasks(self.db, tasks))

    def list_user_projects(self, principal: Principal, user_id: UUID) -> dict:
        access_policy.authorize_manage_users(principal)
        projects, _ = crud.get_projects(self.db, member_id=user_id)
        return envelope(populate_projects(self.db, projects))


class TaskService:
    """Task operations."""

    def __init__(self, db: Session):
        self.db = db

    def _load(self, task_id: UUID) -> models.Task:
        task = crud.get_task(self.db, task_id)
        if not task:
            raise NotFoundError(f"Task not found with id of {task_id}")
        return task

    def list_tasks(self, principal: Principal) -> dict:
        """Admins see every task; other users see tasks assigned to or created by them."""
        visible_to = None if principal.is_admin else principal.id
        tasks = crud.get_tasks(self.db, visible_to=visible_to)
        return envelope(populate_tasks(self.db, tasks))

    def get_task(self, principal: Principal, task_id: UUID) -> dict:
        task = self._load(task_id)
        access_policy.authorize_view_task(principal, task)
        return envelope(populate_tasks(self.db, [task])[0])

    def create_task(
        self,
        principal: Principal,
        project_id: UUID,
        payload: schemas.TaskCreate,
    ) -> dict:
        project = crud.get_project(self.db, project_id)
        if not project:
            raise NotFoundError(f"Project not found with id of {project_id}")

        access_policy.authorize_create_task_on_project(principal, project)
        integrity.validate_task_assignment(project, payload.assigned_user)
        integrity.validate_date_range(payload.start_date, payload.end_date)

        task = crud.create_task(
            self.db,
            project_id=project.id,
            name=payload.name,
            description=payload.description,
            assigned_user=payload.assigned_user,
            start_date=payload.start_date,
            end_date=payload.end_date,
            created_by=principal.id,
            status=payload.status,
        )
        logger.info(f"Created task {task.id} in project {project.id}")
        return envelope(task_to_response(task))

    def update_task(
        self,
        principal: Principal,
        task_id: UUID,
        payload: schemas.TaskUpdate,
    ) -> dict:
        """
        Update a task.

        Only admins and the creator may update. Changing the status through
        this route additionally requires the status permission (admin or
        assignee).
        """
        task = self._load(task_id)
        access_policy.authorize_update_task(principal, task)

        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        if "status" in changes:
            access_policy.authorize_update_task_status(principal, task)

        if "assigned_user" in changes:
            project = crud.get_project(self.db, task.project_id)
            if not project:
                raise NotFoundError(f"Project not found with id of {task.project_id}")
            integrity.validate_task_assignment(project, changes["assigned_user"])

        integrity.validate_date_update(task, changes.get("start_date"), changes.get("end_date"))

        task = crud.update_task(self.db, task, changes)
        logger.info(f"Updated task {task.id}: {sorted(changes)}")
        return envelope(task_to_response(task))

    def delete_task(self, principal: Principal, task_id: UUID) -> dict:
        task = self._load(task_id)
        access_policy.authorize_delete_task(principal, task)

        crud.delete_task(self.db, task)
        logger.info(f"Deleted task {task_id}")
        return envelope({})

    def update_task_status(self, principal: Principal, task_id: UUID, status) -> dict:
        """Set a task's status. Any valid value is accepted from any current status."""
        task = self._load(task_id)
        access_policy.authorize_update_task_status(principal, task)
        new_status = integrity.validate_status(status)

        old_status = task.status
        task = crud.update_task(self.db, task, {"status": new_status})
        logger.info(f"Task {task.id} status {old_status.value} -> {new_status.value}")
        return envelope(task_to_response(task))

    def list_user_tasks(self, principal: Principal, user_id: UUID) -> dict:
        access_policy.authorize_view_user_tasks(principal, user_id)
        tasks = crud.get_tasks(self.db, assigned_user=user_id)
        return envelope(populate_tasks(self.db, tasks, expand=frozenset({TASK_PROJECT, TASK_CREATED_BY})))


class UserService:
    """User management. Every operation is admin-only."""

    def __init__(self, db: Session):
        self.db = db

    def _load(self, user_id: UUID) -> models.User:
        user = crud.get_user(self.db, user_id)
        if not user:
            raise NotFoundError(f"User not found with id of {user_id}")
        return user

    def list_users(self, principal: Principal, page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> dict:
        access_policy.authorize_manage_users(principal)
        users, total = crud.list_users(self.db, skip=(page - 1) * limit, limit=limit)
        return envelope(
            [schemas.UserResponse.model_validate(user) for user in users],
            paginate(page, limit, total),
        )

    def get_user(self, principal: Principal, user_id: UUID) -> dict:
        user = self._load(user_id)
        access_policy.authorize_manage_users(principal)
        return envelope(schemas.UserResponse.model_validate(user))

    def create_user(self, principal: Principal, payload: schemas.UserCreate) -> dict:
        access_policy.authorize_manage_users(principal)
        if crud.get_user_by_email(self.db, payload.email):
            raise DuplicateEmailError(payload.email)

        try:
            user = crud.create_user(self.db, name=payload.name, email=payload.email, role=payload.role)
        except IntegrityError:
            # Lost a race with a concurrent create for the same email
            self.db.rollback()
            raise DuplicateEmailError(payload.email)

        logger.info(f"Created user {user.email} (ID: {user.id})")
        return envelope(schemas.UserResponse.model_validate(user))

    def update_user(self, principal: Principal, user_id: UUID, payload: schemas.UserUpdate) -> dict:
        user = self._load(user_id)
        access_policy.authorize_manage_users(principal)

        if payload.email is not None:
            existing = crud.get_user_by_email(self.db, payload.email)
            if existing and existing.id != user.id:
                raise DuplicateEmailError(payload.email)

        try:
            user = crud.update_user(self.db, user, name=payload.name, email=payload.email, role=payload.role)
        except IntegrityError:
            self.db.rollback()
            raise DuplicateEmailError(payload.email)

        logger.info(f"Updated user {user.id}")
        return envelope(schemas.UserResponse.model_validate(user))

    def delete_user(self, principal: Principal, user_id: UUID) -> dict:
        """Delete a user. References held by projects and tasks are not cleaned up."""
        user = self._load(user_id)
        access_policy.authorize_manage_users(principal)

        crud.delete_user(self.db, user)
        logger.info(f"Deleted user {user_id}")
        return envelope({})
