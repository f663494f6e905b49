import logging
import uuid
from collections.abc import Mapping
from typing import Any

from src.core.exceptions import NotFoundError, ValidationError
from src.core.lifecycle import (
    VALID_STATUSES,
    TaskStatusUpdate,
    parse_due_date,
    parse_new_task,
    parse_priority,
    parse_task_update,
)
from src.core.models.enums import TaskStatus
from src.core.models.task import Task
from src.core.models.task_suggestion import TaskSuggestion
from src.core.repositories.tasks import TaskRepository, TaskSuggestionRepository

logger = logging.getLogger(__name__)


class TaskService:
    def __init__(self, tasks: TaskRepository, suggestions: TaskSuggestionRepository) -> None:
        self._tasks = tasks
        self._suggestions = suggestions

    async def create(self, body: Mapping[str, Any]) -> Task:
        new_task = parse_new_task(body)
        task = await self._tasks.create(new_task)
        logger.info("Created task %s", task.id)
        return task

    async def update(self, task_id: uuid.UUID, body: Mapping[str, Any]) -> Task:
        """Apply a PATCH body; validation runs before the task is loaded."""
        update = parse_task_update(body)
        if isinstance(update, TaskStatusUpdate):
            return await self._tasks.update_status(task_id, update.status)
        return await self._tasks.update_fields(task_id, update.changes)

    async def get(self, task_id: uuid.UUID) -> Task:
        task = await self._tasks.get(task_id)
        if task is None:
            raise NotFoundError("Task not found")
        return task

    async def find(
        self,
        status: str | None = None,
        scheduled: bool | None = None,
        limit: int = 50,
    ) -> list[Task]:
        task_status = None
        if status:
            if status not in VALID_STATUSES:
                raise ValidationError(f"Invalid status. Must be one of: {', '.join(VALID_STATUSES)}")
            task_status = TaskStatus(status)
        return await self._tasks.find(status=task_status, scheduled=scheduled, limit=limit)

    async def pending_suggestions(self, limit: int = 50) -> list[TaskSuggestion]:
        return await self._suggestions.list_pending(limit=limit)

    async def approve_suggestion(
        self, suggestion_id: uuid.UUID, edits: Mapping[str, Any] | None = None
    ) -> Task:
        """Promote a pending suggestion to a ``todo`` task, with optional edits."""
        edits = edits or {}
        title = edits.get("title")
        if title is not None and (not isinstance(title, str) or not title.strip()):
            raise ValidationError("Title must be a non-empty string")
        priority = parse_priority(edits["priority"]) if edits.get("priority") else None
        description = edits.get("description")
        if description is not None and not isinstance(description, str):
            raise ValidationError("Description must be a string or null")
        due_date = parse_due_date(edits.get("due_date"))

        task = await self._suggestions.approve(
            suggestion_id,
            title=title.strip() if title else None,
            description=description.strip() if description and description.strip() else None,
            priority=priority,
            due_date=due_date,
        )
        logger.info("Task suggestion %s promoted to task %s", suggestion_id, task.id)
        return task

    async def get_suggestion(self, suggestion_id: uuid.UUID) -> TaskSuggestion:
        suggestion = await self._suggestions.get(suggestion_id)
        if suggestion is None:
            raise NotFoundError("Task suggestion not found")
        return suggestion

    async def reject_suggestion(self, suggestion_id: uuid.UUID) -> TaskSuggestion:
        return await self._suggestions.reject(suggestion_id)
