"""Referential integrity checks run before a project or task is persisted."""
import logging
from datetime import datetime
from typing import Iterable, Optional, Union
from uuid import UUID

from sqlalchemy.orm import Session

from . import crud
from .errors import ValidationError
from .models import Project, Task, TaskStatus

logger = logging.getLogger("taskhub-core.integrity")


def dedupe_ids(ids: Iterable[UUID]) -> list[UUID]:
    """Drop repeated ids, keeping the first occurrence of each."""
    return list(dict.fromkeys(ids))


def validate_assigned_users(db: Session, user_ids: Iterable[UUID]) -> list[UUID]:
    """
    Validate that every assigned user exists.

    Duplicates are removed before the lookup, so repeating an id is never an
    error on its own.

    Args:
        db: Database session
        user_ids: Candidate user ids (may contain duplicates)

    Returns:
        The deduplicated id list

    Raises:
        ValidationError: If any id does not resolve to a user
    """
    unique_ids = dedupe_ids(user_ids)
    found = crud.get_users_by_ids(db, unique_ids)

    if len(found) != len(unique_ids):
        missing = set(unique_ids) - {user.id for user in found}
        logger.debug(f"Unknown assigned users: {sorted(str(u) for u in missing)}")
        raise ValidationError("one or more users not found")

    return unique_ids


def validate_task_assignment(project: Project, assigned_user_id: UUID) -> None:
    """Raise ValidationError unless the user is a member of the project."""
    if not project.has_member(assigned_user_id):
        raise ValidationError("assigned user is not part of this project")


def validate_date_range(start_date: datetime, end_date: datetime) -> None:
    """Raise ValidationError if the range is inverted. Equal dates are valid."""
    if start_date > end_date:
        raise ValidationError("end date must be after start date")


def validate_date_update(
    task: Task,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> None:
    """
    Validate a partial date change against the task's stored dates.

    A side that is not being changed keeps its stored value for the
    comparison. Nothing is checked when neither side changes.
    """
    if start_date is None and end_date is None:
        return

    validate_date_range(
        start_date if start_date is not None else task.start_date,
        end_date if end_date is not None else task.end_date,
    )


def validate_status(status: Union[str, TaskStatus, None]) -> TaskStatus:
    """
    Validate a task status value.

    Returns:
        The matching TaskStatus member

    Raises:
        ValidationError: Unless status is pending, in-progress or completed
    """
    try:
        return TaskStatus(status)
    except ValueError:
        raise ValidationError("invalid status value")
