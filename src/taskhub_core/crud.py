"""CRUD operations for users, projects and tasks.

These helpers never check permissions; callers go through the services
layer, which applies the access policy and integrity checks first.
"""
import logging
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from . import models

logger = logging.getLogger("taskhub-core.crud")


# ============================================================================
# User CRUD Operations
# ============================================================================

def create_user(
    db: Session,
    name: str,
    email: str,
    role: models.UserRole = models.UserRole.USER,
) -> models.User:
    """
    Create a new user.

    Args:
        db: Database session
        name: Display name
        email: Email address (unique)
        role: admin or user

    Returns:
        Created user instance
    """
    db_user = models.User(name=name, email=email, role=role)
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    logger.debug(f"Created user {db_user.id} ({db_user.email})")
    return db_user


def get_user(db: Session, user_id: UUID) -> Optional[models.User]:
    """
    Get a user by ID.

    Args:
        db: Database session
        user_id: User UUID

    Returns:
        User if found, None otherwise
    """
    return db.query(models.User).filter(models.User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    """
    Get a user by email address.

    Args:
        db: Database session
        email: Email address (case-insensitive, matched literally)

    Returns:
        User if found, None otherwise
    """
    return db.query(models.User).filter(func.lower(models.User.email) == email.lower()).first()


def get_users_by_ids(db: Session, user_ids: Iterable[UUID]) -> list[models.User]:
    """Fetch every user whose id is in user_ids. Unknown ids are skipped."""
    user_ids = list(user_ids)
    if not user_ids:
        return []
    return db.query(models.User).filter(models.User.id.in_(user_ids)).all()


def list_users(
    db: Session,
    skip: int = 0,
    limit: Optional[int] = None,
) -> tuple[list[models.User], int]:
    """
    List users, newest first.

    Args:
        db: Database session
        skip: Number of records to skip
        limit: Maximum number of records to return (None for all)

    Returns:
        Tuple of (users, total count)
    """
    query = db.query(models.User)
    total = query.count()
    users = query.order_by(models.User.created_at.desc(), models.User.id).offset(skip).limit(limit).all()
    return users, total


def update_user(
    db: Session,
    db_user: models.User,
    name: Optional[str] = None,
    email: Optional[str] = None,
    role: Optional[models.UserRole] = None,
) -> models.User:
    """
    Update a user in place.

    Args:
        db: Database session
        db_user: Loaded user instance
        name: Optional new name
        email: Optional new email
        role: Optional new role

    Returns:
        Updated user
    """
    if name is not None:
        db_user.name = name
    if email is not None:
        db_user.email = email
    if role is not None:
        db_user.role = role

    db.commit()
    db.refresh(db_user)
    logger.debug(f"Updated user {db_user.id}")
    return db_user


def delete_user(db: Session, db_user: models.User) -> None:
    """
    Delete a user.

    Project memberships and task references to the user are left in place.
    """
    user_id = db_user.id
    db.delete(db_user)
    db.commit()
    logger.debug(f"Deleted user {user_id}")


# ============================================================================
# Project CRUD Operations
# ============================================================================

def _build_assignees(project: models.Project, user_ids: list[UUID]) -> list[models.ProjectAssignee]:
    """Reuse existing membership rows so the (project, user) unique key never collides."""
    existing = {a.user_id: a for a in project.assignees}
    assignees = []
    for position, user_id in enumerate(user_ids):
        assignee = existing.get(user_id) or models.ProjectAssignee(user_id=user_id)
        assignee.position = position
        assignees.append(assignee)
    return assignees


def create_project(
    db: Session,
    name: str,
    description: str,
    assigned_users: list[UUID],
    created_by: UUID,
) -> models.Project:
    """
    Create a new project.

    Args:
        db: Database session
        name: Project name
        description: Project description
        assigned_users: Deduplicated member ids
        created_by: Id of the creating user

    Returns:
        Created project instance
    """
    db_project = models.Project(
        name=name,
        description=description,
        created_by=created_by,
    )
    db_project.assignees = _build_assignees(db_project, assigned_users)
    db.add(db_project)
    db.commit()
    db.refresh(db_project)
    logger.debug(f"Created project {db_project.id} with {len(assigned_users)} members")
    return db_project


def get_project(db: Session, project_id: UUID) -> Optional[models.Project]:
    """
    Get a project by ID.

    Args:
        db: Database session
        project_id: Project UUID

    Returns:
        Project instance or None if not found
    """
    return db.query(models.Project).filter(models.Project.id == project_id).first()


def get_projects(
    db: Session,
    member_id: Optional[UUID] = None,
    skip: int = 0,
    limit: Optional[int] = None,
) -> tuple[list[models.Project], int]:
    """
    Get projects, newest first.

    Args:
        db: Database session
        member_id: If provided, only return projects this user is assigned to
        skip: Number of records to skip
        limit: Maximum number of records to return (None for all)

    Returns:
        Tuple of (projects, total count)
    """
    query = db.query(models.Project)

    if member_id:
        query = query.join(models.ProjectAssignee).filter(
            models.ProjectAssignee.user_id == member_id
        )

    total = query.count()
    projects = query.order_by(models.Project.created_at.desc(), models.Project.id).offset(skip).limit(limit).all()
    return projects, total


def update_project(
    db: Session,
    db_project: models.Project,
    name: Optional[str] = None,
    description: Optional[str] = None,
    assigned_users: Optional[list[UUID]] = None,
) -> models.Project:
    """
    Update a project in place.

    Args:
        db: Database session
        db_project: Loaded project instance
        name: Optional new name
        description: Optional new description
        assigned_users: Optional replacement member ids (deduplicated)

    Returns:
        Updated project
    """
    if name is not None:
        db_project.name = name
    if description is not None:
        db_project.description = description
    if assigned_users is not None:
        db_project.assignees = _build_assignees(db_project, assigned_users)

    db.commit()
    db.refresh(db_project)
    logger.debug(f"Updated project {db_project.id}")
    return db_project


def delete_project(db: Session, db_project: models.Project) -> int:
    """
    Delete a project and all of its tasks in one transaction.

    Args:
        db: Database session
        db_project: Loaded project instance

    Returns:
        Number of tasks removed with the project
    """
    project_id = db_project.id
    removed = (
        db.query(models.Task)
        .filter(models.Task.project_id == project_id)
        .delete(synchronize_session=False)
    )
    db.delete(db_project)
    db.commit()
    logger.debug(f"Deleted project {project_id} and {removed} tasks")
    return removed


# ============================================================================
# Task CRUD Operations
# ============================================================================

def create_task(
    db: Session,
    project_id: UUID,
    name: str,
    description: str,
    assigned_user: UUID,
    start_date,
    end_date,
    created_by: UUID,
    status: Optional[models.TaskStatus] = None,
) -> models.Task:
    """
    Create a new task.

    Args:
        db: Database session
        project_id: Parent project UUID
        name: Task name
        description: Task description
        assigned_user: Assignee id (must already be validated as a project member)
        start_date: Start of the task window
        end_date: End of the task window
        created_by: Id of the creating user
        status: Initial status (defaults to pending)

    Returns:
        Created Task object
    """
    task = models.Task(
        project_id=project_id,
        name=name,
        description=description,
        assigned_user=assigned_user,
        start_date=start_date,
        end_date=end_date,
        status=status or models.TaskStatus.PENDING,
        created_by=created_by,
    )
    db.add(task)
    db.commit()
    db.refresh(task)
    logger.debug(f"Created task {task.id} in project {project_id}")
    return task


def get_task(db: Session, task_id: UUID) -> Optional[models.Task]:
    """
    Get a task by ID.

    Args:
        db: Database session
        task_id: Task UUID

    Returns:
        Task or None if not found
    """
    return db.query(models.Task).filter(models.Task.id == task_id).first()


def get_tasks(
    db: Session,
    project_id: Optional[UUID] = None,
    assigned_user: Optional[UUID] = None,
    visible_to: Optional[UUID] = None,
) -> list[models.Task]:
    """
    Get tasks with optional filtering, newest first.

    Args:
        db: Database session
        project_id: Filter by project
        assigned_user: Filter by assignee
        visible_to: Only tasks this user is assigned to or created

    Returns:
        List of tasks
    """
    query = db.query(models.Task)

    if project_id:
        query = query.filter(models.Task.project_id == project_id)

    if assigned_user:
        query = query.filter(models.Task.assigned_user == assigned_user)

    if visible_to:
        query = query.filter(
            or_(
                models.Task.assigned_user == visible_to,
                models.Task.created_by == visible_to,
            )
        )

    return query.order_by(models.Task.created_at.desc()).all()


def update_task(db: Session, task: models.Task, changes: dict) -> models.Task:
    """
    Apply already-validated field changes to a task.

    Args:
        db: Database session
        task: Loaded task instance
        changes: Mapping of column name to new value

    Returns:
        Updated Task
    """
    for field_name, value in changes.items():
        setattr(task, field_name, value)

    db.commit()
    db.refresh(task)
    logger.debug(f"Updated task {task.id}: {sorted(changes)}")
    return task


def delete_task(db: Session, task: models.Task) -> None:
    """Delete a single task."""
    task_id = task.id
    db.delete(task)
    db.commit()
    logger.debug(f"Deleted task {task_id}")
