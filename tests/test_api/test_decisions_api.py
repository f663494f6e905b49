"""Tests for decision log endpoints."""

import uuid
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.decisions import router
from api.deps import get_decision_service
from api.errors import register_error_handlers
from src.core.decisions import DecisionService
from src.core.exceptions import NotFoundError


def _decision(**overrides):
    d = MagicMock()
    d.id = uuid.uuid4()
    d.decision = "Use Postgres for the event store"
    d.rationale = "Team knows it"
    d.context = None
    d.decided_at = datetime(2026, 3, 1, tzinfo=UTC)
    d.project_id = None
    d.source = "manual"
    d.source_reference = None
    d.supersedes_id = None
    d.created_at = datetime(2026, 3, 1, tzinfo=UTC)
    for key, value in overrides.items():
        setattr(d, key, value)
    return d


def _create_test_app(service):
    app = FastAPI()
    register_error_handlers(app)
    app.include_router(router)
    app.dependency_overrides[get_decision_service] = lambda: service
    return app


def test_post_without_decision_text_is_400():
    repo = MagicMock(create=AsyncMock(), get=AsyncMock())
    client = TestClient(_create_test_app(DecisionService(repo)))

    resp = client.post("/decisions", json={"rationale": "because"})

    assert resp.status_code == 400
    assert resp.json() == {"success": False, "error": "decision text is required"}
    repo.create.assert_not_awaited()


def test_post_logs_decision():
    row = _decision()
    service = MagicMock(log=AsyncMock(return_value=row))

    resp = TestClient(_create_test_app(service)).post(
        "/decisions", json={"decision": row.decision, "rationale": "Team knows it"}
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["decision"]["is_current"] is True
    assert body["decision"]["source"] == "manual"
    assert service.log.call_args.args == (row.decision,)


def test_get_missing_decision_is_404():
    service = MagicMock(get=AsyncMock(side_effect=NotFoundError("Decision not found")))

    resp = TestClient(_create_test_app(service)).get(f"/decisions/{uuid.uuid4()}")

    assert resp.status_code == 404
    assert resp.json()["error"] == "Decision not found"


def test_get_superseded_decision_reports_not_current():
    row = _decision()
    service = MagicMock(get=AsyncMock(return_value=row), is_current=AsyncMock(return_value=False))

    resp = TestClient(_create_test_app(service)).get(f"/decisions/{row.id}")

    assert resp.json()["decision"]["is_current"] is False


def test_list_current_and_search():
    row = _decision()
    service = MagicMock(find=AsyncMock(return_value=[row]), search=AsyncMock(return_value=[row]))
    client = TestClient(_create_test_app(service))

    resp = client.get("/decisions")
    assert resp.json()["count"] == 1
    service.find.assert_awaited_once_with(project_id=None, include_superseded=False, limit=50)

    resp = client.get("/decisions", params={"q": "postgres", "limit": 5})
    assert resp.json()["decisions"][0]["is_current"] is True
    service.search.assert_awaited_once_with(
        "postgres", project_id=None, include_superseded=False, limit=5
    )


def test_search_passes_project_and_superseded_filters():
    row = _decision()
    service = MagicMock(search=AsyncMock(return_value=[row]))
    project = uuid.uuid4()

    resp = TestClient(_create_test_app(service)).get(
        "/decisions", params={"q": "postgres", "project_id": str(project), "superseded": "true"}
    )

    assert resp.status_code == 200
    assert resp.json()["decisions"][0]["is_current"] is None
    service.search.assert_awaited_once_with(
        "postgres", project_id=project, include_superseded=True, limit=50
    )
