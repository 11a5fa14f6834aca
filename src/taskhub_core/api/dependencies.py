"""FastAPI dependencies wiring a request's database session into the services."""
from fastapi import Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..services import ProjectService, TaskService, UserService


def get_project_service(db: Session = Depends(get_db)) -> ProjectService:
    return ProjectService(db)


def get_task_service(db: Session = Depends(get_db)) -> TaskService:
    return TaskService(db)


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    return UserService(db)
