"""Shared fixtures: in-memory database, seeded users and an API client."""
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from taskhub_core import crud, models
from taskhub_core.access_policy import Principal
from taskhub_core.api.auth import create_access_token
from taskhub_core.api.main import app
from taskhub_core.database import get_db


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    models.Base.metadata.create_all(engine)
    yield engine
    models.Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(engine):
    """Session used to seed data; objects stay readable after later deletes."""
    session = sessionmaker(bind=engine, expire_on_commit=False)()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    """FastAPI test client with the database dependency overridden."""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def users(db):
    """An admin and three regular users."""
    return {
        "admin": crud.create_user(db, "Ada Admin", "admin@example.com", models.UserRole.ADMIN),
        "u1": crud.create_user(db, "User One", "u1@example.com"),
        "u2": crud.create_user(db, "User Two", "u2@example.com"),
        "u3": crud.create_user(db, "User Three", "u3@example.com"),
    }


@pytest.fixture
def alpha(db, users):
    """Project Alpha with u1 and u2 as members, created by the admin."""
    return crud.create_project(
        db,
        name="Alpha",
        description="d",
        assigned_users=[users["u1"].id, users["u2"].id],
        created_by=users["admin"].id,
    )


@pytest.fixture
def alpha_task(db, users, alpha):
    """A pending task in Alpha, assigned to u1 and created by u2."""
    return crud.create_task(
        db,
        project_id=alpha.id,
        name="Write docs",
        description="Document the API",
        assigned_user=users["u1"].id,
        start_date=datetime(2025, 1, 1),
        end_date=datetime(2025, 1, 31),
        created_by=users["u2"].id,
    )


def principal_for(user: models.User) -> Principal:
    return Principal(id=user.id, role=user.role)


def auth_headers(user: models.User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}
