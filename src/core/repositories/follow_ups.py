import logging
import uuid

from sqlalchemy import exists, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from src.core.audit import log_action, snapshot
from src.core.exceptions import ConflictError, InternalError, NotFoundError
from src.core.lifecycle import ensure_suggestion_transition
from src.core.models.base import utcnow
from src.core.models.enums import AuditActor, FollowUpAction, FollowUpTone, SuggestionStatus
from src.core.models.follow_up import FollowUpSuggestion

logger = logging.getLogger(__name__)


class FollowUpRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, suggestion_id: uuid.UUID) -> FollowUpSuggestion | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(FollowUpSuggestion)
                .options(selectinload(FollowUpSuggestion.thread))
                .where(FollowUpSuggestion.id == suggestion_id)
            )
            return result.scalar_one_or_none()

    async def has_pending(self, thread_id: uuid.UUID) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                select(
                    exists().where(
                        FollowUpSuggestion.thread_id == thread_id,
                        FollowUpSuggestion.status == SuggestionStatus.pending,
                    )
                )
            )
            return bool(result.scalar())

    async def list_pending(self, limit: int = 50) -> list[FollowUpSuggestion]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(FollowUpSuggestion)
                .options(selectinload(FollowUpSuggestion.thread))
                .where(FollowUpSuggestion.status == SuggestionStatus.pending)
                .order_by(FollowUpSuggestion.created_at.desc())
                .limit(limit)
            )
            return list(result.scalars().all())

    async def create(
        self,
        thread_id: uuid.UUID,
        *,
        draft_subject: str,
        draft_body: str,
        tone: FollowUpTone,
        ai_model_used: str,
        ai_reasoning: str,
        suggested_action: FollowUpAction = FollowUpAction.follow_up,
    ) -> FollowUpSuggestion:
        """Persist a pending draft; a second pending draft for the thread is a conflict."""
        async with self._session_factory() as session:
            suggestion = FollowUpSuggestion(
                thread_id=thread_id,
                suggested_action=suggested_action,
                draft_subject=draft_subject,
                draft_body=draft_body,
                tone=tone,
                ai_model_used=ai_model_used,
                ai_reasoning=ai_reasoning,
                status=SuggestionStatus.pending,
            )
            session.add(suggestion)
            try:
                await session.flush()
                await log_action(
                    session,
                    entity_type="follow_up_suggestion",
                    entity_id=suggestion.id,
                    action="created",
                    actor=AuditActor.ai,
                    new_state=snapshot(suggestion),
                    meta={"thread_id": str(thread_id), "model": ai_model_used},
                )
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise ConflictError("A pending follow-up already exists for this thread") from e
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error("Failed to save follow-up for thread %s: %s", thread_id, e)
                raise InternalError("Failed to save follow-up suggestion") from e
            return suggestion

    async def approve(
        self,
        suggestion_id: uuid.UUID,
        edited_subject: str | None = None,
        edited_body: str | None = None,
    ) -> FollowUpSuggestion:
        async with self._session_factory() as session:
            suggestion = await self._load_for_update(session, suggestion_id)
            ensure_suggestion_transition(suggestion.status, SuggestionStatus.approved)
            previous = snapshot(suggestion)

            suggestion.status = SuggestionStatus.approved
            suggestion.approved_at = utcnow()
            if edited_subject is not None and edited_subject != suggestion.draft_subject:
                suggestion.user_edited_subject = edited_subject
                suggestion.was_edited = True
            if edited_body is not None and edited_body != suggestion.draft_body:
                suggestion.user_edited_body = edited_body
                suggestion.was_edited = True

            await log_action(
                session,
                entity_type="follow_up_suggestion",
                entity_id=suggestion.id,
                action="approved",
                previous_state=previous,
                new_state=snapshot(suggestion),
            )
            await session.commit()
            return suggestion

    async def reject(self, suggestion_id: uuid.UUID, reason: str | None = None) -> FollowUpSuggestion:
        async with self._session_factory() as session:
            suggestion = await self._load_for_update(session, suggestion_id)
            ensure_suggestion_transition(suggestion.status, SuggestionStatus.rejected)
            previous = snapshot(suggestion)

            suggestion.status = SuggestionStatus.rejected
            suggestion.rejected_at = utcnow()
            suggestion.rejection_reason = reason

            await log_action(
                session,
                entity_type="follow_up_suggestion",
                entity_id=suggestion.id,
                action="rejected",
                previous_state=previous,
                new_state=snapshot(suggestion),
            )
            await session.commit()
            return suggestion

    @staticmethod
    async def _load_for_update(session: AsyncSession, suggestion_id: uuid.UUID) -> FollowUpSuggestion:
        result = await session.execute(
            select(FollowUpSuggestion).where(FollowUpSuggestion.id == suggestion_id).with_for_update()
        )
        suggestion = result.scalar_one_or_none()
        if suggestion is None:
            raise NotFoundError("Follow-up suggestion not found")
        return suggestion
