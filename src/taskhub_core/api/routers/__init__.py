"""API routers for TaskHub Core."""

from . import projects, tasks, users

__all__ = ["projects", "tasks", "users"]
