"""
Tests for the resource services: ordering of checks, cascades and
read-side population.
"""
from datetime import datetime
from uuid import uuid4

import pytest

from taskhub_core import crud, schemas
from taskhub_core.errors import DuplicateEmailError, NotFoundError, UnauthorizedError, ValidationError
from taskhub_core.models import TaskStatus, UserRole
from taskhub_core.services import ProjectService, TaskService, UserService, envelope, paginate

from conftest import principal_for


class TestEnvelope:
    """Success envelope shape."""

    def test_list_carries_count(self):
        assert envelope([1, 2]) == {"success": True, "count": 2, "data": [1, 2]}

    def test_single_item_has_no_count(self):
        assert envelope({}) == {"success": True, "data": {}}

    def test_page_carries_pagination_block(self):
        result = envelope([1, 2], paginate(page=2, limit=2, total=5))

        assert result["count"] == 2
        assert result["pagination"] == {
            "page": 2,
            "limit": 2,
            "total": 5,
            "totalPages": 3,
            "next": {"page": 3, "limit": 2},
            "prev": {"page": 1, "limit": 2},
        }

    def test_last_page_has_no_next(self):
        pagination = paginate(page=3, limit=2, total=5)
        assert pagination.next is None
        assert pagination.prev.page == 2

    def test_empty_result_has_no_pages(self):
        pagination = paginate(page=1, limit=25, total=0)
        assert pagination.total_pages == 0
        assert pagination.next is None
        assert pagination.prev is None


class TestProjectService:
    """Project operations."""

    def test_create_dedupes_members_and_returns_raw_ids(self, db, users):
        payload = schemas.ProjectCreate(
            name="  Alpha  ",
            description="d",
            assigned_users=[users["u1"].id, users["u2"].id, users["u1"].id],
        )
        result = ProjectService(db).create_project(principal_for(users["admin"]), payload)

        data = result["data"]
        assert data["name"] == "Alpha"
        assert data["assignedUsers"] == [str(users["u1"].id), str(users["u2"].id)]
        assert data["createdBy"] == str(users["admin"].id)

    def test_non_admin_cannot_create(self, db, users):
        payload = schemas.ProjectCreate(name="Beta", description="d", assigned_users=[users["u1"].id])
        with pytest.raises(UnauthorizedError):
            ProjectService(db).create_project(principal_for(users["u1"]), payload)

    def test_missing_project_reported_before_authorization(self, db, users):
        with pytest.raises(NotFoundError, match="Project not found"):
            ProjectService(db).get_project(principal_for(users["u3"]), uuid4())

    def test_get_expands_members(self, db, users, alpha):
        data = ProjectService(db).get_project(principal_for(users["u1"]), alpha.id)["data"]

        assert [m["id"] for m in data["assignedUsers"]] == [str(users["u1"].id), str(users["u2"].id)]
        assert data["assignedUsers"][0]["role"] == "user"
        assert data["createdBy"]["email"] == "admin@example.com"

    def test_deleted_member_expands_to_none(self, db, users, alpha):
        crud.delete_user(db, users["u2"])
        data = ProjectService(db).get_project(principal_for(users["admin"]), alpha.id)["data"]

        assert data["assignedUsers"][0]["id"] == str(users["u1"].id)
        assert data["assignedUsers"][1] is None

    def test_update_replaces_member_set(self, db, users, alpha):
        payload = schemas.ProjectUpdate(assigned_users=[users["u3"].id])
        data = ProjectService(db).update_project(principal_for(users["admin"]), alpha.id, payload)["data"]

        assert data["assignedUsers"] == [str(users["u3"].id)]
        assert data["name"] == "Alpha"

    def test_update_with_unknown_member_rejected(self, db, users, alpha):
        payload = schemas.ProjectUpdate(name="Renamed", assigned_users=[users["u1"].id, uuid4()])
        with pytest.raises(ValidationError, match="one or more users not found"):
            ProjectService(db).update_project(principal_for(users["admin"]), alpha.id, payload)

        db.expire_all()
        project = crud.get_project(db, alpha.id)
        assert project.assigned_user_ids == [users["u1"].id, users["u2"].id]
        assert project.name == "Alpha"

    def test_update_can_reorder_existing_members(self, db, users, alpha):
        payload = schemas.ProjectUpdate(assigned_users=[users["u2"].id, users["u1"].id])
        data = ProjectService(db).update_project(principal_for(users["admin"]), alpha.id, payload)["data"]

        assert data["assignedUsers"] == [str(users["u2"].id), str(users["u1"].id)]

    def test_list_is_member_scoped(self, db, users, alpha):
        crud.create_project(db, "Beta", "d", [users["u3"].id], users["admin"].id)
        service = ProjectService(db)

        assert service.list_projects(principal_for(users["admin"]))["count"] == 2
        mine = service.list_projects(principal_for(users["u1"]))
        assert mine["count"] == 1
        assert mine["data"][0]["name"] == "Alpha"

    def test_list_is_paginated(self, db, users, alpha):
        for name in ("Beta", "Gamma"):
            crud.create_project(db, name, "d", [users["u1"].id], users["admin"].id)
        service = ProjectService(db)
        admin = principal_for(users["admin"])

        first = service.list_projects(admin, page=1, limit=2)
        second = service.list_projects(admin, page=2, limit=2)

        assert first["count"] == 2
        assert second["count"] == 1
        assert first["pagination"]["total"] == 3
        assert first["pagination"]["next"] == {"page": 2, "limit": 2}
        assert second["pagination"]["next"] is None
        names = {p["name"] for p in first["data"] + second["data"]}
        assert names == {"Alpha", "Beta", "Gamma"}

    def test_delete_cascades_tasks(self, db, users, alpha, alpha_task):
        task_id = alpha_task.id
        ProjectService(db).delete_project(principal_for(users["admin"]), alpha.id)

        assert crud.get_project(db, alpha.id) is None
        with pytest.raises(NotFoundError, match="Task not found"):
            TaskService(db).get_task(principal_for(users["admin"]), task_id)


class TestTaskService:
    """Task operations."""

    def make_payload(self, assigned_user, **overrides):
        fields = dict(
            name="Review",
            description="Review the docs",
            assigned_user=assigned_user,
            start_date=datetime(2025, 2, 1),
            end_date=datetime(2025, 2, 1),
        )
        fields.update(overrides)
        return schemas.TaskCreate(**fields)

    def test_member_creates_task_with_default_status(self, db, users, alpha):
        result = TaskService(db).create_task(
            principal_for(users["u1"]), alpha.id, self.make_payload(users["u2"].id)
        )
        data = result["data"]

        assert data["status"] == "pending"
        assert data["project"] == str(alpha.id)
        assert data["createdBy"] == str(users["u1"].id)

    def test_assignee_outside_project_rejected(self, db, users, alpha):
        with pytest.raises(ValidationError, match="assigned user is not part of this project"):
            TaskService(db).create_task(
                principal_for(users["admin"]), alpha.id, self.make_payload(users["u3"].id)
            )

    def test_inverted_dates_rejected(self, db, users, alpha):
        payload = self.make_payload(users["u1"].id, end_date=datetime(2025, 1, 1))
        with pytest.raises(ValidationError, match="end date must be after start date"):
            TaskService(db).create_task(principal_for(users["admin"]), alpha.id, payload)

    def test_missing_project_before_authorization(self, db, users):
        with pytest.raises(NotFoundError):
            TaskService(db).create_task(principal_for(users["u3"]), uuid4(), self.make_payload(users["u1"].id))

    def test_non_member_cannot_create(self, db, users, alpha):
        with pytest.raises(UnauthorizedError):
            TaskService(db).create_task(principal_for(users["u3"]), alpha.id, self.make_payload(users["u1"].id))

    def test_status_moves_freely(self, db, users, alpha_task):
        service = TaskService(db)
        assignee = principal_for(users["u1"])

        for value in ("completed", "pending", "in-progress", "in-progress"):
            data = service.update_task_status(assignee, alpha_task.id, value)["data"]
            assert data["status"] == value

    def test_creator_cannot_change_status(self, db, users, alpha_task):
        with pytest.raises(UnauthorizedError):
            TaskService(db).update_task_status(principal_for(users["u2"]), alpha_task.id, "completed")

    def test_invalid_status_rejected(self, db, users, alpha_task):
        with pytest.raises(ValidationError, match="invalid status value"):
            TaskService(db).update_task_status(principal_for(users["admin"]), alpha_task.id, "done")

    def test_full_update_with_status_needs_status_permission(self, db, users, alpha_task):
        payload = schemas.TaskUpdate(status=TaskStatus.COMPLETED)
        with pytest.raises(UnauthorizedError):
            TaskService(db).update_task(principal_for(users["u2"]), alpha_task.id, payload)

    def test_creator_updates_fields(self, db, users, alpha_task):
        payload = schemas.TaskUpdate(name="Renamed", assigned_user=users["u2"].id)
        data = TaskService(db).update_task(principal_for(users["u2"]), alpha_task.id, payload)["data"]

        assert data["name"] == "Renamed"
        assert data["assignedUser"] == str(users["u2"].id)
        assert data["description"] == "Document the API"

    def test_update_rejects_assignee_outside_project(self, db, users, alpha_task):
        payload = schemas.TaskUpdate(assigned_user=users["u3"].id)
        with pytest.raises(ValidationError):
            TaskService(db).update_task(principal_for(users["admin"]), alpha_task.id, payload)

    def test_update_checks_dates_against_stored_values(self, db, users, alpha_task):
        payload = schemas.TaskUpdate(end_date=datetime(2024, 12, 1))
        with pytest.raises(ValidationError):
            TaskService(db).update_task(principal_for(users["admin"]), alpha_task.id, payload)

    def test_outsider_cannot_view_task(self, db, users, alpha_task):
        with pytest.raises(UnauthorizedError, match="Not authorized to access this task"):
            TaskService(db).get_task(principal_for(users["u3"]), alpha_task.id)

    def test_get_expands_all_relations(self, db, users, alpha, alpha_task):
        data = TaskService(db).get_task(principal_for(users["u1"]), alpha_task.id)["data"]

        assert data["project"] == {"id": str(alpha.id), "name": "Alpha", "description": "d"}
        assert data["assignedUser"]["email"] == "u1@example.com"
        assert data["createdBy"]["email"] == "u2@example.com"

    def test_user_tasks_leave_assignee_unexpanded(self, db, users, alpha_task):
        result = TaskService(db).list_user_tasks(principal_for(users["u1"]), users["u1"].id)

        assert result["count"] == 1
        task = result["data"][0]
        assert task["assignedUser"] == str(users["u1"].id)
        assert task["project"]["name"] == "Alpha"
        assert task["createdBy"]["name"] == "User Two"

    def test_list_tasks_scoped_to_assignee_or_creator(self, db, users, alpha_task):
        service = TaskService(db)

        assert service.list_tasks(principal_for(users["u1"]))["count"] == 1
        assert service.list_tasks(principal_for(users["u2"]))["count"] == 1
        assert service.list_tasks(principal_for(users["u3"]))["count"] == 0
        assert service.list_tasks(principal_for(users["admin"]))["count"] == 1


class TestUserService:
    """User management."""

    def test_duplicate_email_rejected(self, db, users):
        payload = schemas.UserCreate(name="Again", email="U1@example.com")
        with pytest.raises(DuplicateEmailError, match="already exists"):
            UserService(db).create_user(principal_for(users["admin"]), payload)

    def test_create_defaults_to_user_role(self, db, users):
        payload = schemas.UserCreate(name="New", email="new@example.com")
        data = UserService(db).create_user(principal_for(users["admin"]), payload)["data"]

        assert data["role"] == UserRole.USER.value
        assert data["email"] == "new@example.com"

    def test_update_to_own_email_allowed(self, db, users):
        payload = schemas.UserUpdate(email="u1@example.com", name="Renamed")
        data = UserService(db).update_user(principal_for(users["admin"]), users["u1"].id, payload)["data"]
        assert data["name"] == "Renamed"

    def test_underscore_is_not_a_wildcard(self, db, users):
        service = UserService(db)
        admin = principal_for(users["admin"])
        service.create_user(admin, schemas.UserCreate(name="Axb", email="axb@x.com"))

        data = service.create_user(admin, schemas.UserCreate(name="A B", email="a_b@x.com"))["data"]
        assert data["email"] == "a_b@x.com"

        payload = schemas.UserUpdate(email="u%@example.com")
        data = service.update_user(admin, users["u3"].id, payload)["data"]
        assert data["email"] == "u%@example.com"

    def test_update_to_taken_email_rejected(self, db, users):
        payload = schemas.UserUpdate(email="u2@example.com")
        with pytest.raises(DuplicateEmailError):
            UserService(db).update_user(principal_for(users["admin"]), users["u1"].id, payload)

    def test_update_losing_email_race_rejected(self, db, users, monkeypatch):
        # Another request takes the address between the lookup and the commit
        monkeypatch.setattr(crud, "get_user_by_email", lambda db, email: None)
        payload = schemas.UserUpdate(email="u2@example.com")

        with pytest.raises(DuplicateEmailError):
            UserService(db).update_user(principal_for(users["admin"]), users["u1"].id, payload)

        db.expire_all()
        assert crud.get_user(db, users["u1"].id).email == "u1@example.com"

    def test_missing_user_reported_before_authorization(self, db, users):
        with pytest.raises(NotFoundError, match="User not found"):
            UserService(db).get_user(principal_for(users["u1"]), uuid4())

    def test_delete_leaves_task_references(self, db, users, alpha_task):
        UserService(db).delete_user(principal_for(users["admin"]), users["u1"].id)

        task = crud.get_task(db, alpha_task.id)
        assert task.assigned_user == users["u1"].id

        data = TaskService(db).get_task(principal_for(users["admin"]), alpha_task.id)["data"]
        assert data["assignedUser"] is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
