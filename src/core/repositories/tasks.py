import uuid
from datetime import date
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.core.audit import log_action, snapshot
from src.core.exceptions import NotFoundError
from src.core.lifecycle import NewTask, ensure_suggestion_transition
from src.core.models.base import utcnow
from src.core.models.enums import SuggestionStatus, TaskPriority, TaskStatus
from src.core.models.task import Task
from src.core.models.task_suggestion import TaskSuggestion


class TaskRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, task_id: uuid.UUID) -> Task | None:
        async with self._session_factory() as session:
            return await session.get(Task, task_id)

    async def create(self, new_task: NewTask) -> Task:
        async with self._session_factory() as session:
            task = Task(
                title=new_task.title,
                description=new_task.description,
                priority=new_task.priority,
                due_date=new_task.due_date,
                status=TaskStatus.todo,
            )
            session.add(task)
            await session.flush()
            await log_action(
                session,
                entity_type="task",
                entity_id=task.id,
                action="created",
                new_state=snapshot(task),
                meta={"source": "manual"},
            )
            await session.commit()
            return task

    async def update_status(self, task_id: uuid.UUID, status: TaskStatus) -> Task:
        async with self._session_factory() as session:
            task = await self._load(session, task_id)
            previous = snapshot(task)

            task.status = status
            task.completed_at = utcnow() if status == TaskStatus.completed else None

            await log_action(
                session,
                entity_type="task",
                entity_id=task.id,
                action=f"status_{status.value}",
                previous_state=previous,
                new_state=snapshot(task),
            )
            await session.commit()
            return task

    async def update_fields(self, task_id: uuid.UUID, changes: dict[str, Any]) -> Task:
        async with self._session_factory() as session:
            task = await self._load(session, task_id)
            previous = snapshot(task)

            for key, value in changes.items():
                setattr(task, key, value)

            await log_action(
                session,
                entity_type="task",
                entity_id=task.id,
                action="updated",
                previous_state=previous,
                new_state=snapshot(task),
                meta={"fields": sorted(changes)},
            )
            await session.commit()
            return task

    async def find(
        self,
        *,
        status: TaskStatus | None = None,
        scheduled: bool | None = None,
        limit: int = 50,
    ) -> list[Task]:
        query = select(Task)
        if status is not None:
            query = query.where(Task.status == status)
        if scheduled is not None:
            query = query.where(Task.is_scheduled.is_(scheduled))
        query = query.order_by(Task.due_date.asc().nulls_last(), Task.created_at.desc()).limit(limit)

        async with self._session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    @staticmethod
    async def _load(session: AsyncSession, task_id: uuid.UUID) -> Task:
        task = await session.get(Task, task_id)
        if task is None:
            raise NotFoundError("Task not found")
        return task


class TaskSuggestionRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create(
        self,
        *,
        title: str,
        why: str | None = None,
        email_id: uuid.UUID | None = None,
        suggested_owner_email: str | None = None,
        suggested_due_date: date | None = None,
        priority: TaskPriority = TaskPriority.med,
    ) -> TaskSuggestion:
        async with self._session_factory() as session:
            suggestion = TaskSuggestion(
                title=title,
                why=why,
                email_id=email_id,
                suggested_owner_email=suggested_owner_email,
                suggested_due_date=suggested_due_date,
                priority=priority,
            )
            session.add(suggestion)
            await session.commit()
            return suggestion

    async def get(self, suggestion_id: uuid.UUID) -> TaskSuggestion | None:
        async with self._session_factory() as session:
            return await session.get(TaskSuggestion, suggestion_id)

    async def list_pending(self, limit: int = 50) -> list[TaskSuggestion]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(TaskSuggestion)
                .where(TaskSuggestion.status == SuggestionStatus.pending)
                .order_by(TaskSuggestion.created_at.desc())
                .limit(limit)
            )
            return list(result.scalars().all())

    async def approve(
        self,
        suggestion_id: uuid.UUID,
        *,
        title: str | None = None,
        description: str | None = None,
        priority: TaskPriority | None = None,
        due_date: date | None = None,
    ) -> Task:
        """Promote a pending suggestion into a task in one transaction."""
        async with self._session_factory() as session:
            suggestion = await self._load_for_update(session, suggestion_id)
            ensure_suggestion_transition(suggestion.status, SuggestionStatus.approved)
            previous = snapshot(suggestion)

            task = Task(
                title=title or suggestion.title,
                description=description or suggestion.why,
                priority=priority or suggestion.priority,
                due_date=due_date or suggestion.suggested_due_date,
                status=TaskStatus.todo,
                suggestion_id=suggestion.id,
                email_id=suggestion.email_id,
            )
            session.add(task)
            suggestion.status = SuggestionStatus.approved
            await session.flush()

            await log_action(
                session,
                entity_type="task_suggestion",
                entity_id=suggestion.id,
                action="approved",
                previous_state=previous,
                new_state=snapshot(suggestion),
                meta={"task_id": str(task.id)},
            )
            await session.commit()
            return task

    async def reject(self, suggestion_id: uuid.UUID) -> TaskSuggestion:
        async with self._session_factory() as session:
            suggestion = await self._load_for_update(session, suggestion_id)
            ensure_suggestion_transition(suggestion.status, SuggestionStatus.rejected)
            previous = snapshot(suggestion)
            suggestion.status = SuggestionStatus.rejected

            await log_action(
                session,
                entity_type="task_suggestion",
                entity_id=suggestion.id,
                action="rejected",
                previous_state=previous,
                new_state=snapshot(suggestion),
            )
            await session.commit()
            return suggestion

    @staticmethod
    async def _load_for_update(session: AsyncSession, suggestion_id: uuid.UUID) -> TaskSuggestion:
        result = await session.execute(
            select(TaskSuggestion).where(TaskSuggestion.id == suggestion_id).with_for_update()
        )
        suggestion = result.scalar_one_or_none()
        if suggestion is None:
            raise NotFoundError("Task suggestion not found")
        return suggestion
