"""Tests for task and task-suggestion endpoints."""

import uuid
from datetime import UTC, date, datetime
from unittest.mock import AsyncMock, MagicMock

from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.deps import get_task_service
from api.errors import register_error_handlers
from api.tasks import router
from src.core.models.enums import SuggestionStatus, TaskPriority, TaskStatus
from src.core.task_manager import TaskService


def _task(**overrides):
    task = MagicMock()
    task.id = uuid.uuid4()
    task.title = "Send invoice"
    task.description = None
    task.status = TaskStatus.todo
    task.priority = TaskPriority.med
    task.due_date = None
    task.completed_at = None
    task.suggestion_id = None
    task.email_id = None
    task.is_scheduled = False
    task.scheduled_start = None
    task.scheduled_end = None
    task.created_at = datetime(2026, 3, 2, tzinfo=UTC)
    task.updated_at = datetime(2026, 3, 2, tzinfo=UTC)
    for key, value in overrides.items():
        setattr(task, key, value)
    return task


def _create_test_app():
    tasks_repo = MagicMock()
    tasks_repo.create = AsyncMock(side_effect=lambda new_task: _task(title=new_task.title))
    tasks_repo.update_status = AsyncMock(
        side_effect=lambda task_id, status: _task(id=task_id, status=status)
    )
    tasks_repo.update_fields = AsyncMock(
        side_effect=lambda task_id, changes: _task(id=task_id, **changes)
    )
    tasks_repo.find = AsyncMock(return_value=[_task()])
    suggestions_repo = MagicMock()

    app = FastAPI()
    register_error_handlers(app)
    app.include_router(router)
    app.dependency_overrides[get_task_service] = lambda: TaskService(tasks_repo, suggestions_repo)
    return app, tasks_repo, suggestions_repo


def test_patch_unknown_status_is_400():
    app, tasks_repo, _ = _create_test_app()
    client = TestClient(app)

    resp = client.patch(f"/tasks/{uuid.uuid4()}", json={"status": "archived"})

    assert resp.status_code == 400
    assert resp.json() == {
        "success": False,
        "error": "Invalid status. Must be one of: todo, in_progress, completed, cancelled",
    }
    tasks_repo.update_status.assert_not_awaited()
    tasks_repo.update_fields.assert_not_awaited()


def test_patch_status_only():
    app, tasks_repo, _ = _create_test_app()
    client = TestClient(app)

    resp = client.patch(f"/tasks/{uuid.uuid4()}", json={"status": "in_progress"})

    assert resp.status_code == 200
    assert resp.json()["task"]["status"] == "in_progress"
    tasks_repo.update_status.assert_awaited_once()


def test_patch_field_update_ignores_status():
    app, tasks_repo, _ = _create_test_app()
    client = TestClient(app)

    resp = client.patch(
        f"/tasks/{uuid.uuid4()}",
        json={"status": "archived", "title": "Renamed", "due_date": "2026-04-01"},
    )

    assert resp.status_code == 200
    _, changes = tasks_repo.update_fields.call_args.args
    assert changes == {"title": "Renamed", "due_date": date(2026, 4, 1)}
    tasks_repo.update_status.assert_not_awaited()


def test_patch_with_nothing_to_update():
    app, _, _ = _create_test_app()
    resp = TestClient(app).patch(f"/tasks/{uuid.uuid4()}", json={"foo": "bar"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "No valid fields to update"


def test_create_with_empty_title_is_400():
    app, tasks_repo, _ = _create_test_app()
    client = TestClient(app)

    resp = client.post("/tasks", json={"title": ""})

    assert resp.status_code == 400
    assert resp.json()["error"] == "Title is required and must be a non-empty string"
    tasks_repo.create.assert_not_awaited()


def test_create_task():
    app, tasks_repo, _ = _create_test_app()
    resp = TestClient(app).post("/tasks", json={"title": "Send invoice", "priority": "high"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["task"]["title"] == "Send invoice"
    new_task = tasks_repo.create.call_args.args[0]
    assert new_task.priority == TaskPriority.high


def test_list_tasks_with_filters():
    app, tasks_repo, _ = _create_test_app()
    resp = TestClient(app).get("/tasks", params={"status": "todo", "scheduled": "false", "limit": 5})

    assert resp.status_code == 200
    assert resp.json()["count"] == 1
    assert tasks_repo.find.call_args.kwargs == {
        "status": TaskStatus.todo,
        "scheduled": False,
        "limit": 5,
    }


def test_list_tasks_invalid_status():
    app, _, _ = _create_test_app()
    resp = TestClient(app).get("/tasks", params={"status": "archived"})
    assert resp.status_code == 400


def test_reject_task_suggestion():
    app, _, suggestions_repo = _create_test_app()
    suggestion = MagicMock(
        id=uuid.uuid4(),
        title="Review contract",
        why=None,
        suggested_owner_email=None,
        suggested_due_date=None,
        priority=TaskPriority.med,
        status=SuggestionStatus.rejected,
        email_id=None,
        created_at=None,
    )
    suggestions_repo.reject = AsyncMock(return_value=suggestion)

    resp = TestClient(app).patch(f"/task-suggestions/{suggestion.id}", json={"action": "reject"})

    assert resp.status_code == 200
    assert resp.json()["suggestion"]["status"] == "rejected"
    assert resp.json()["task"] is None


def test_unknown_suggestion_action_is_400():
    app, _, _ = _create_test_app()
    resp = TestClient(app).patch(f"/task-suggestions/{uuid.uuid4()}", json={"action": "snooze"})
    assert resp.status_code == 400
    assert resp.json()["success"] is False
