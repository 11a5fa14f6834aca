"""SQLAlchemy database models."""
from datetime import datetime
from uuid import uuid4
import enum

from sqlalchemy import (
    Column,
    String,
    Integer,
    DateTime,
    ForeignKey,
    Enum,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import declarative_base, relationship

# Base class for all models
Base = declarative_base()


class UserRole(str, enum.Enum):
    """User role enum."""

    ADMIN = "admin"
    USER = "user"


class TaskStatus(str, enum.Enum):
    """Task status enum.

    Any value may follow any other; no forward-only workflow is enforced.
    """

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class User(Base):
    """
    User model.

    Users are referenced by projects (assignees, creator) and tasks
    (assignee, creator). Those references carry no foreign key constraint,
    so deleting a user leaves dangling ids behind rather than cascading.
    """

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid4)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    role = Column(
        Enum(UserRole, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=UserRole.USER,
        index=True
    )

    # Audit fields
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role.value})>"


class Project(Base):
    """
    Project model.

    A project owns its tasks (deleting the project deletes them) and keeps an
    ordered, duplicate-free set of assigned users.
    """

    __tablename__ = "projects"

    id = Column(Uuid, primary_key=True, default=uuid4)

    # Core fields
    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=False)

    # Audit fields
    created_by = Column(Uuid, nullable=False, index=True)  # Weak reference to users.id
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    assignees = relationship(
        "ProjectAssignee",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="ProjectAssignee.position",
    )

    @property
    def assigned_user_ids(self) -> list:
        """Assigned user ids in the order they were given."""
        return [a.user_id for a in self.assignees]

    def has_member(self, user_id) -> bool:
        return user_id in self.assigned_user_ids

    def __repr__(self) -> str:
        return f"<Project {self.id}: {self.name}>"


class ProjectAssignee(Base):
    """
    Junction table linking users to the projects they are assigned to.
    """

    __tablename__ = "project_assignees"

    id = Column(Uuid, primary_key=True, default=uuid4)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, nullable=False, index=True)  # Weak reference to users.id
    position = Column(Integer, nullable=False, default=0)
    assigned_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    # Relationships
    project = relationship("Project", back_populates="assignees")

    # Constraints
    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="unique_project_assignee"),
    )

    def __repr__(self) -> str:
        return f"<ProjectAssignee {self.project_id} -> {self.user_id}>"


class Task(Base):
    """Task entity.

    A task belongs to exactly one project and is assigned to one user who
    must be a member of that project.
    """

    __tablename__ = "tasks"

    id = Column(Uuid, primary_key=True, default=uuid4)
    project_id = Column(
        Uuid,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Core task fields
    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=False)
    assigned_user = Column(Uuid, nullable=False, index=True)  # Weak reference to users.id
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    # Use values_callable to serialize enum values ("in-progress") instead of names (IN_PROGRESS)
    status = Column(
        Enum(TaskStatus, values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
        default=TaskStatus.PENDING,
        index=True
    )

    # Audit fields
    created_by = Column(Uuid, nullable=False, index=True)  # Weak reference to users.id
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    project = relationship("Project")

    def __repr__(self) -> str:
        return f"<Task {self.id}: {self.name} ({self.status.value})>"
