"""Lifecycle rules for suggestions, tasks and decisions.

No store access here; the services in ``follow_ups``, ``task_manager`` and
``decisions`` apply these rules before writing anything.
"""

import uuid
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from src.core.exceptions import ConflictError, ValidationError
from src.core.models.enums import SuggestionStatus, TaskPriority, TaskStatus

# ---------------------------------------------------------------------------
# Suggestions: pending -> approved | rejected, both terminal
# ---------------------------------------------------------------------------

SUGGESTION_TRANSITIONS: dict[SuggestionStatus, frozenset[SuggestionStatus]] = {
    SuggestionStatus.pending: frozenset({SuggestionStatus.approved, SuggestionStatus.rejected}),
    SuggestionStatus.approved: frozenset(),
    SuggestionStatus.rejected: frozenset(),
}


def ensure_suggestion_transition(current: SuggestionStatus, target: SuggestionStatus) -> None:
    if target not in SUGGESTION_TRANSITIONS[current]:
        raise ConflictError(
            f"Cannot move suggestion from {current.value} to {target.value}; "
            "only pending suggestions can be approved or rejected"
        )


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------

VALID_STATUSES = tuple(s.value for s in TaskStatus)
VALID_PRIORITIES = tuple(p.value for p in TaskPriority)

_UNSET: Any = object()


@dataclass(frozen=True)
class TaskStatusUpdate:
    status: TaskStatus


@dataclass(frozen=True)
class TaskFieldUpdate:
    """Field changes; a key is present only when the request supplied it."""

    changes: dict[str, Any] = field(default_factory=dict)


def parse_due_date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            pass
    raise ValidationError("Invalid due_date. Must be an ISO date (YYYY-MM-DD)")


def parse_priority(value: Any) -> TaskPriority:
    if value not in VALID_PRIORITIES:
        raise ValidationError(f"Invalid priority. Must be one of: {', '.join(VALID_PRIORITIES)}")
    return TaskPriority(value)


def parse_task_update(body: Mapping[str, Any]) -> TaskStatusUpdate | TaskFieldUpdate:
    """Split a PATCH body into a status-only update or a field update.

    The status path is taken only when ``status`` is set and ``title``,
    ``description`` and ``priority`` are empty and ``due_date`` is absent.
    Any other shape is a field update, and ``status`` is then ignored.
    """
    status = body.get("status")
    is_status_only = (
        bool(status)
        and not body.get("title")
        and not body.get("description")
        and "due_date" not in body
        and not body.get("priority")
    )

    if is_status_only:
        if status not in VALID_STATUSES:
            raise ValidationError(f"Invalid status. Must be one of: {', '.join(VALID_STATUSES)}")
        return TaskStatusUpdate(status=TaskStatus(status))

    changes: dict[str, Any] = {}

    title = body.get("title", _UNSET)
    if title is not _UNSET:
        if not isinstance(title, str) or not title.strip():
            raise ValidationError("Title must be a non-empty string")
        changes["title"] = title.strip()

    description = body.get("description", _UNSET)
    if description is not _UNSET:
        if description is not None and not isinstance(description, str):
            raise ValidationError("Description must be a string or null")
        changes["description"] = description.strip() if description and description.strip() else None

    if "due_date" in body:
        changes["due_date"] = parse_due_date(body["due_date"])

    priority = body.get("priority", _UNSET)
    if priority is not _UNSET:
        changes["priority"] = parse_priority(priority)

    if not changes:
        raise ValidationError("No valid fields to update")

    return TaskFieldUpdate(changes=changes)


@dataclass(frozen=True)
class NewTask:
    title: str
    description: str | None
    priority: TaskPriority
    due_date: date | None


def parse_new_task(body: Mapping[str, Any]) -> NewTask:
    """Validate a manual task creation request."""
    title = body.get("title")
    if not title or not isinstance(title, str) or not title.strip():
        raise ValidationError("Title is required and must be a non-empty string")

    description = body.get("description")
    if not isinstance(description, str) or not description.strip():
        description = None

    priority = body.get("priority")
    task_priority = TaskPriority(priority) if priority in VALID_PRIORITIES else TaskPriority.med

    return NewTask(
        title=title.strip(),
        description=description.strip() if description else None,
        priority=task_priority,
        due_date=parse_due_date(body.get("due_date")),
    )


# ---------------------------------------------------------------------------
# Decisions: supersession graph must stay acyclic
# ---------------------------------------------------------------------------


async def ensure_acyclic(
    decision_id: uuid.UUID,
    supersedes_id: uuid.UUID,
    parent_of: Callable[[uuid.UUID], Awaitable[uuid.UUID | None]],
) -> None:
    """Reject a supersession edge that would close a cycle.

    Walks the chain ``supersedes_id -> parent_of(...) -> ...`` and fails if
    it reaches *decision_id* or revisits a node.
    """
    seen: set[uuid.UUID] = set()
    node: uuid.UUID | None = supersedes_id
    while node is not None:
        if node == decision_id or node in seen:
            raise ValidationError(
                f"Decision {decision_id} cannot supersede {supersedes_id}: "
                "supersession would form a cycle"
            )
        seen.add(node)
        node = await parent_of(node)
