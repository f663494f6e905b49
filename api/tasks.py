"""Task and task-suggestion endpoints.

Create and update take the raw JSON body so that field validation, and its
error messages, stay in the task lifecycle rules.
"""

import uuid
from datetime import date, datetime
from typing import Any, Literal

from fastapi import APIRouter, Body, Depends, Query
from pydantic import BaseModel

from api.deps import get_task_service
from src.core.models.task import Task
from src.core.models.task_suggestion import TaskSuggestion
from src.core.task_manager import TaskService

router = APIRouter(tags=["tasks"])


class TaskItem(BaseModel):
    id: str
    title: str
    description: str | None = None
    status: str
    priority: str
    due_date: date | None = None
    completed_at: datetime | None = None
    suggestion_id: str | None = None
    email_id: str | None = None
    is_scheduled: bool = False
    scheduled_start: datetime | None = None
    scheduled_end: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TaskResponse(BaseModel):
    success: bool = True
    task: TaskItem


class TaskListResponse(BaseModel):
    success: bool = True
    tasks: list[TaskItem]
    count: int


class TaskSuggestionItem(BaseModel):
    id: str
    title: str
    why: str | None = None
    suggested_owner_email: str | None = None
    suggested_due_date: date | None = None
    priority: str
    status: str
    email_id: str | None = None
    created_at: datetime | None = None


class TaskSuggestionResponse(BaseModel):
    success: bool = True
    suggestion: TaskSuggestionItem
    task: TaskItem | None = None


class TaskSuggestionListResponse(BaseModel):
    success: bool = True
    suggestions: list[TaskSuggestionItem]
    count: int


class TaskSuggestionPatchRequest(BaseModel):
    action: Literal["approve", "reject"]
    title: str | None = None
    description: str | None = None
    priority: str | None = None
    due_date: str | None = None


def _to_item(t: Task) -> TaskItem:
    return TaskItem(
        id=str(t.id),
        title=t.title,
        description=t.description,
        status=t.status.value,
        priority=t.priority.value,
        due_date=t.due_date,
        completed_at=t.completed_at,
        suggestion_id=str(t.suggestion_id) if t.suggestion_id else None,
        email_id=str(t.email_id) if t.email_id else None,
        is_scheduled=bool(t.is_scheduled),
        scheduled_start=t.scheduled_start,
        scheduled_end=t.scheduled_end,
        created_at=t.created_at,
        updated_at=t.updated_at,
    )


def _to_suggestion_item(s: TaskSuggestion) -> TaskSuggestionItem:
    return TaskSuggestionItem(
        id=str(s.id),
        title=s.title,
        why=s.why,
        suggested_owner_email=s.suggested_owner_email,
        suggested_due_date=s.suggested_due_date,
        priority=s.priority.value,
        status=s.status.value,
        email_id=str(s.email_id) if s.email_id else None,
        created_at=s.created_at,
    )


# --- Tasks ---


@router.post("/tasks", response_model=TaskResponse)
async def create_task(
    body: dict[str, Any] = Body(...),
    service: TaskService = Depends(get_task_service),
):
    return TaskResponse(task=_to_item(await service.create(body)))


@router.get("/tasks", response_model=TaskListResponse)
async def list_tasks(
    status: str | None = Query(None),
    scheduled: Literal["true", "false"] | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    service: TaskService = Depends(get_task_service),
):
    is_scheduled = None if scheduled is None else scheduled == "true"
    tasks = [_to_item(t) for t in await service.find(status, is_scheduled, limit)]
    return TaskListResponse(tasks=tasks, count=len(tasks))


@router.get("/tasks/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: uuid.UUID,
    service: TaskService = Depends(get_task_service),
):
    return TaskResponse(task=_to_item(await service.get(task_id)))


@router.patch("/tasks/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: uuid.UUID,
    body: dict[str, Any] = Body(...),
    service: TaskService = Depends(get_task_service),
):
    return TaskResponse(task=_to_item(await service.update(task_id, body)))


# --- Task suggestions ---


@router.get("/task-suggestions", response_model=TaskSuggestionListResponse)
async def list_task_suggestions(
    limit: int = Query(50, ge=1, le=200),
    service: TaskService = Depends(get_task_service),
):
    items = [_to_suggestion_item(s) for s in await service.pending_suggestions(limit=limit)]
    return TaskSuggestionListResponse(suggestions=items, count=len(items))


@router.patch("/task-suggestions/{suggestion_id}", response_model=TaskSuggestionResponse)
async def update_task_suggestion(
    suggestion_id: uuid.UUID,
    body: TaskSuggestionPatchRequest,
    service: TaskService = Depends(get_task_service),
):
    if body.action == "reject":
        suggestion = await service.reject_suggestion(suggestion_id)
        return TaskSuggestionResponse(suggestion=_to_suggestion_item(suggestion))

    task = await service.approve_suggestion(
        suggestion_id, body.model_dump(exclude={"action"}, exclude_none=True)
    )
    suggestion = await service.get_suggestion(suggestion_id)
    return TaskSuggestionResponse(suggestion=_to_suggestion_item(suggestion), task=_to_item(task))
