"""Follow-up drafting for stalled threads.

``generate`` is the only path that calls a model. A thread qualifies only
while it is active with a stored ``waiting_on_email`` and its emails, checked
again at call time, still end with an outbound message.
"""

import logging
import uuid
from collections.abc import Callable
from datetime import UTC, datetime

from src.core.exceptions import ConflictError, InvalidGenerationError, NotFoundError, ValidationError
from src.core.llm.backends import GenerationBackend
from src.core.llm.prompts import FOLLOW_UP_SYSTEM_PROMPT, build_follow_up_message
from src.core.llm.validation import validate_follow_up_result
from src.core.models.enums import ThreadStatus
from src.core.models.follow_up import FollowUpSuggestion
from src.core.repositories.follow_ups import FollowUpRepository
from src.core.repositories.threads import ThreadRepository
from src.core.waiting_on import as_utc, classify_thread, days_waiting

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class FollowUpService:
    def __init__(
        self,
        threads: ThreadRepository,
        follow_ups: FollowUpRepository,
        backend: GenerationBackend,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._threads = threads
        self._follow_ups = follow_ups
        self._backend = backend
        self._now = now

    async def generate(self, thread_id: uuid.UUID) -> FollowUpSuggestion:
        thread = await self._threads.get_with_emails(thread_id)
        if thread is None:
            raise NotFoundError("Thread not found")

        if thread.status != ThreadStatus.active or thread.waiting_on_email is None:
            raise ValidationError("Thread is not in waiting-on status")

        status = classify_thread(thread.emails)
        if not status.waiting:
            raise ValidationError("Thread is not in waiting-on status")

        if await self._follow_ups.has_pending(thread.id):
            raise ConflictError("A pending follow-up already exists for this thread")

        waited = days_waiting(status.waiting_since, self._now())
        user_message = build_follow_up_message(
            subject=thread.subject,
            waiting_on_email=status.waiting_on_email or thread.waiting_on_email,
            days_waiting=waited,
            emails=sorted(thread.emails, key=lambda e: as_utc(e.received_at)),
        )

        logger.info(
            "Generating follow-up for thread %s via %s (%d days waiting)",
            thread.id,
            self._backend.name,
            waited,
        )
        raw = await self._backend.generate(FOLLOW_UP_SYSTEM_PROMPT, user_message)

        draft = validate_follow_up_result(raw)
        if draft is None:
            raise InvalidGenerationError("Invalid AI response: missing or malformed subject/body")

        suggestion = await self._follow_ups.create(
            thread.id,
            draft_subject=draft.subject,
            draft_body=draft.body,
            tone=draft.tone,
            ai_model_used=self._backend.model,
            ai_reasoning=draft.reasoning,
        )
        logger.info("Created follow-up %s for thread %s", suggestion.id, thread.id)
        return suggestion

    async def get(self, suggestion_id: uuid.UUID) -> FollowUpSuggestion:
        suggestion = await self._follow_ups.get(suggestion_id)
        if suggestion is None:
            raise NotFoundError("Follow-up suggestion not found")
        return suggestion

    async def list_pending(self, limit: int = 50) -> list[FollowUpSuggestion]:
        return await self._follow_ups.list_pending(limit=limit)

    async def approve(
        self,
        suggestion_id: uuid.UUID,
        edited_subject: str | None = None,
        edited_body: str | None = None,
    ) -> FollowUpSuggestion:
        return await self._follow_ups.approve(suggestion_id, edited_subject, edited_body)

    async def reject(self, suggestion_id: uuid.UUID, reason: str | None = None) -> FollowUpSuggestion:
        return await self._follow_ups.reject(suggestion_id, reason)
