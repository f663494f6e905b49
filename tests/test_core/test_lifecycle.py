"""Tests for suggestion, task and decision lifecycle rules."""

import uuid
from datetime import date

import pytest

from src.core.exceptions import ConflictError, ValidationError
from src.core.lifecycle import (
    TaskFieldUpdate,
    TaskStatusUpdate,
    ensure_acyclic,
    ensure_suggestion_transition,
    parse_new_task,
    parse_task_update,
)
from src.core.models.enums import SuggestionStatus, TaskPriority, TaskStatus

# ---------------------------------------------------------------------------
# Suggestions
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("target", [SuggestionStatus.approved, SuggestionStatus.rejected])
def test_pending_can_be_terminalized(target):
    ensure_suggestion_transition(SuggestionStatus.pending, target)


@pytest.mark.parametrize(
    "current,target",
    [
        (SuggestionStatus.approved, SuggestionStatus.rejected),
        (SuggestionStatus.rejected, SuggestionStatus.approved),
        (SuggestionStatus.approved, SuggestionStatus.approved),
        (SuggestionStatus.pending, SuggestionStatus.pending),
    ],
)
def test_terminal_states_are_final(current, target):
    with pytest.raises(ConflictError):
        ensure_suggestion_transition(current, target)


# ---------------------------------------------------------------------------
# Task PATCH bodies
# ---------------------------------------------------------------------------


def test_status_only_update():
    assert parse_task_update({"status": "completed"}) == TaskStatusUpdate(TaskStatus.completed)


def test_unknown_status_rejected():
    with pytest.raises(ValidationError) as exc:
        parse_task_update({"status": "archived"})
    assert exc.value.message == "Invalid status. Must be one of: todo, in_progress, completed, cancelled"


def test_status_ignored_when_other_fields_present():
    update = parse_task_update({"status": "archived", "title": "New title"})
    assert update == TaskFieldUpdate({"title": "New title"})


def test_due_date_key_forces_field_path_even_when_null():
    update = parse_task_update({"status": "completed", "due_date": None})
    assert update == TaskFieldUpdate({"due_date": None})


def test_falsy_extras_keep_status_path():
    update = parse_task_update({"status": "in_progress", "title": "", "description": None})
    assert update == TaskStatusUpdate(TaskStatus.in_progress)


def test_field_update_parses_values():
    update = parse_task_update(
        {"description": "  notes ", "due_date": "2026-04-01", "priority": "high"}
    )
    assert update.changes == {
        "description": "notes",
        "due_date": date(2026, 4, 1),
        "priority": TaskPriority.high,
    }


def test_blank_description_clears_it():
    assert parse_task_update({"description": "   "}).changes == {"description": None}


@pytest.mark.parametrize(
    "body,message",
    [
        ({"title": "   "}, "Title must be a non-empty string"),
        ({"title": 7}, "Title must be a non-empty string"),
        ({"description": 12}, "Description must be a string or null"),
        ({"priority": "urgent"}, "Invalid priority. Must be one of: low, med, high"),
        ({"due_date": "next week"}, "Invalid due_date. Must be an ISO date (YYYY-MM-DD)"),
        ({}, "No valid fields to update"),
        ({"status": ""}, "No valid fields to update"),
    ],
)
def test_field_update_errors(body, message):
    with pytest.raises(ValidationError) as exc:
        parse_task_update(body)
    assert exc.value.message == message


# ---------------------------------------------------------------------------
# Manual task creation
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("title", ["", "   ", None, 5])
def test_new_task_requires_title(title):
    with pytest.raises(ValidationError) as exc:
        parse_new_task({"title": title})
    assert exc.value.message == "Title is required and must be a non-empty string"


def test_new_task_defaults():
    task = parse_new_task({"title": " Call Bob ", "priority": "critical", "description": ""})
    assert task.title == "Call Bob"
    assert task.priority == TaskPriority.med
    assert task.description is None
    assert task.due_date is None


# ---------------------------------------------------------------------------
# Decision supersession
# ---------------------------------------------------------------------------


def _parents(edges: dict):
    async def parent_of(node):
        return edges.get(node)

    return parent_of


@pytest.mark.asyncio
async def test_acyclic_chain_accepted():
    a, b, c = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
    # b supersedes a; new decision c supersedes b
    await ensure_acyclic(c, b, _parents({b: a}))


@pytest.mark.asyncio
async def test_self_supersession_rejected():
    a = uuid.uuid4()
    with pytest.raises(ValidationError):
        await ensure_acyclic(a, a, _parents({}))


@pytest.mark.asyncio
async def test_cycle_through_chain_rejected():
    a, b, c = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
    with pytest.raises(ValidationError):
        await ensure_acyclic(a, c, _parents({c: b, b: a}))
