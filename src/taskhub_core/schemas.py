"""Pydantic schemas for request/response validation.

Field names are snake_case in Python and camelCase on the wire
(assignedUsers, startDate, ...). Requests accept either spelling.
"""
from datetime import datetime, timezone
from typing import Generic, Optional, TypeVar, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .models import UserRole, TaskStatus

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class CamelModel(BaseModel):
    """Base schema that reads and writes camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _strip(value):
    return value.strip() if isinstance(value, str) else value


def _to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Stored dates are naive UTC; convert aware input so comparisons work."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# ============================================================================
# User Schemas
# ============================================================================

class UserCreate(CamelModel):
    """Schema for creating a new user."""

    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    role: UserRole = UserRole.USER

    @field_validator("name", "email", mode="before")
    @classmethod
    def strip_whitespace(cls, v):
        return _strip(v)


class UserUpdate(CamelModel):
    """Schema for updating a user."""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[str] = Field(None, max_length=255, pattern=EMAIL_PATTERN)
    role: Optional[UserRole] = None

    @field_validator("name", "email", mode="before")
    @classmethod
    def strip_whitespace(cls, v):
        return _strip(v)


class UserResponse(CamelModel):
    """Schema for user responses."""

    id: UUID
    name: str
    email: str
    role: UserRole
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True, use_enum_values=True
    )


class UserRef(CamelModel):
    """Expanded user reference (creator, task assignee)."""

    id: UUID
    name: str
    email: str


class MemberRef(UserRef):
    """Expanded project member reference."""

    role: UserRole

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, use_enum_values=True)


# ============================================================================
# Project Schemas
# ============================================================================

class ProjectCreate(CamelModel):
    """Schema for creating a new project."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=500)
    assigned_users: list[UUID] = Field(..., min_length=1, description="Ids of the users working on the project")

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return _strip(v)


class ProjectUpdate(CamelModel):
    """Schema for updating a project.

    assigned_users, when given, replaces the whole member set.
    """

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=500)
    assigned_users: Optional[list[UUID]] = Field(None, min_length=1)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return _strip(v)


class ProjectRef(CamelModel):
    """Expanded project reference embedded in tasks."""

    id: UUID
    name: str
    description: str


class ProjectResponse(CamelModel):
    """Schema for project responses.

    References are either raw ids or expanded objects depending on the
    operation; a reference to a deleted user expands to None.
    """

    id: UUID
    name: str
    description: str
    assigned_users: list[Union[MemberRef, UUID, None]]
    created_by: Union[UserRef, UUID, None]
    created_at: datetime
    updated_at: datetime


# ============================================================================
# Task Schemas
# ============================================================================

class TaskCreate(CamelModel):
    """Schema for creating a new task inside a project."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=500)
    assigned_user: UUID
    start_date: datetime
    end_date: datetime
    status: Optional[TaskStatus] = None

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return _strip(v)

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_dates(cls, v):
        return _to_naive_utc(v)


class TaskUpdate(CamelModel):
    """Schema for updating an existing task."""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=500)
    assigned_user: Optional[UUID] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    status: Optional[TaskStatus] = None

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return _strip(v)

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_dates(cls, v):
        return _to_naive_utc(v)


class TaskStatusUpdate(CamelModel):
    """Schema for the status-only update.

    Left as a plain string so an unknown value is reported by the integrity
    check rather than by request parsing.
    """

    status: Optional[str] = None


class TaskResponse(CamelModel):
    """Schema for task responses."""

    id: UUID
    name: str
    description: str
    project: Union[ProjectRef, UUID, None]
    assigned_user: Union[UserRef, UUID, None]
    start_date: datetime
    end_date: datetime
    status: TaskStatus
    created_by: Union[UserRef, UUID, None]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, use_enum_values=True)


# ============================================================================
# Response Envelopes
# ============================================================================

T = TypeVar("T")


class PageRef(CamelModel):
    """Query parameters that select a neighbouring page."""

    page: int
    limit: int


class Pagination(CamelModel):
    """Pagination block for paged list responses."""

    page: int
    limit: int
    total: int
    total_pages: int
    next: Optional[PageRef] = None
    prev: Optional[PageRef] = None


class Envelope(CamelModel, Generic[T]):
    """Success envelope around a single entity."""

    success: bool = True
    data: T


class ListEnvelope(CamelModel, Generic[T]):
    """Success envelope around a list. count is the number of items returned."""

    success: bool = True
    count: int
    data: list[T]


class PageEnvelope(ListEnvelope[T], Generic[T]):
    """List envelope for one page of a larger result."""

    pagination: Pagination
