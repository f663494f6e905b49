"""Tests for follow-up generation and review."""

import uuid
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from src.core.exceptions import (
    ConflictError,
    InternalError,
    InvalidGenerationError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from src.core.follow_ups import FollowUpService
from src.core.models.audit import AuditLog
from src.core.models.enums import EmailDirection, FollowUpTone, SuggestionStatus, ThreadStatus
from src.core.models.follow_up import FollowUpSuggestion

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


def _service(repos, backend, now=T0 + timedelta(days=4)):
    return FollowUpService(repos.threads, repos.follow_ups, backend, now=lambda: now)


async def _count(session_factory, model) -> int:
    async with session_factory() as session:
        return (await session.execute(select(func.count()).select_from(model))).scalar()


@pytest.mark.asyncio
async def test_generate_persists_pending_suggestion(
    repos,
    session_factory,
    waiting_thread,
    backend_factory,
):
    """Inbound at T0, outbound at T1, now = T1 + 3 days."""
    backend = backend_factory(
        {"subject": "Re: Q3 proposal - follow up", "body": "Checking in.", "reasoning": "3 days"}
    )
    service = _service(repos, backend, now=T0 + timedelta(days=4))

    suggestion = await service.generate(waiting_thread.id)

    assert suggestion.status == SuggestionStatus.pending
    assert "follow up" in suggestion.draft_subject
    assert suggestion.tone == FollowUpTone.professional
    assert suggestion.ai_model_used == "fake-model-1"
    assert suggestion.ai_reasoning == "3 days"

    system, user_message = backend.calls[0]
    assert "JSON" in system
    assert "DAYS WITHOUT REPLY: 3" in user_message
    assert "WAITING ON: client@acme.com" in user_message
    assert "THREAD SUBJECT: Q3 proposal" in user_message
    assert user_message.index("[1] From: client@acme.com") < user_message.index("[2] From: me@example.com")

    assert await _count(session_factory, FollowUpSuggestion) == 1
    async with session_factory() as session:
        audit = (await session.execute(select(AuditLog))).scalars().all()
    assert [a.action for a in audit] == ["created"]


@pytest.mark.asyncio
async def test_generate_rejects_thread_that_is_not_waiting(
    repos,
    session_factory,
    waiting_thread,
    backend_factory,
):
    await repos.threads.append_email(
        waiting_thread.id,
        sender_email="client@acme.com",
        to_emails=["me@example.com"],
        body="Thanks, reviewing now.",
        received_at=T0 + timedelta(days=2),
        direction=EmailDirection.inbound,
    )
    backend = backend_factory()

    with pytest.raises(ValidationError) as exc:
        await _service(repos, backend).generate(waiting_thread.id)

    assert exc.value.status_code == 400
    assert exc.value.message == "Thread is not in waiting-on status"
    assert backend.calls == []
    assert await _count(session_factory, FollowUpSuggestion) == 0


@pytest.mark.asyncio
async def test_generate_rejects_resolved_thread(
    repos,
    session_factory,
    waiting_thread,
    backend_factory,
):
    resolved = await repos.threads.change_status(waiting_thread.id, ThreadStatus.resolved)
    assert resolved.waiting_on_email is None
    backend = backend_factory()

    with pytest.raises(ValidationError) as exc:
        await _service(repos, backend).generate(waiting_thread.id)

    assert exc.value.message == "Thread is not in waiting-on status"
    assert backend.calls == []
    assert await _count(session_factory, FollowUpSuggestion) == 0


@pytest.mark.asyncio
async def test_generate_rejects_snoozed_thread(repos, waiting_thread, backend_factory):
    await repos.threads.change_status(
        waiting_thread.id, ThreadStatus.snoozed, snooze_until=T0 + timedelta(days=10)
    )
    backend = backend_factory()

    with pytest.raises(ValidationError):
        await _service(repos, backend).generate(waiting_thread.id)
    assert backend.calls == []


@pytest.mark.asyncio
async def test_generate_unknown_thread(repos, backend_factory):
    with pytest.raises(NotFoundError):
        await _service(repos, backend_factory()).generate(uuid.uuid4())


@pytest.mark.asyncio
async def test_result_without_body_is_rejected(
    repos,
    session_factory,
    waiting_thread,
    backend_factory,
):
    backend = backend_factory({"subject": "Re: Q3 proposal"})

    with pytest.raises(InvalidGenerationError) as exc:
        await _service(repos, backend).generate(waiting_thread.id)

    assert exc.value.status_code == 500
    assert await _count(session_factory, FollowUpSuggestion) == 0


@pytest.mark.asyncio
async def test_plain_text_result_is_rejected(
    repos,
    session_factory,
    waiting_thread,
    backend_factory,
):
    with pytest.raises(InvalidGenerationError):
        await _service(repos, backend_factory("Sure! Here's a follow-up email...")).generate(
            waiting_thread.id
        )
    assert await _count(session_factory, FollowUpSuggestion) == 0


@pytest.mark.asyncio
async def test_sarcastic_tone_is_stored_as_professional(repos, waiting_thread, backend_factory):
    backend = backend_factory({"subject": "Re: hi", "body": "Any news?", "tone": "sarcastic"})
    suggestion = await _service(repos, backend).generate(waiting_thread.id)
    assert suggestion.tone == FollowUpTone.professional


@pytest.mark.asyncio
async def test_backend_failure_propagates_without_writes(
    repos,
    session_factory,
    waiting_thread,
    backend_factory,
):
    broken = backend_factory()
    broken.generate = AsyncMock(side_effect=UpstreamError("OpenAI API error: timeout"))

    with pytest.raises(UpstreamError) as exc:
        await _service(repos, broken).generate(waiting_thread.id)
    assert not isinstance(exc.value, InvalidGenerationError)
    assert await _count(session_factory, FollowUpSuggestion) == 0


@pytest.mark.asyncio
async def test_store_failure_surfaces_as_internal_error(
    repos,
    session_factory,
    waiting_thread,
    backend_factory,
):
    failure = OperationalError("INSERT INTO audit_log", {}, Exception("disk I/O error"))

    with patch("src.core.repositories.follow_ups.log_action", AsyncMock(side_effect=failure)):
        with pytest.raises(InternalError) as exc:
            await _service(repos, backend_factory()).generate(waiting_thread.id)

    assert exc.value.status_code == 500
    assert await _count(session_factory, FollowUpSuggestion) == 0


@pytest.mark.asyncio
async def test_second_pending_draft_conflicts(
    repos,
    session_factory,
    waiting_thread,
    backend_factory,
):
    backend = backend_factory()
    service = _service(repos, backend)
    await service.generate(waiting_thread.id)

    with pytest.raises(ConflictError):
        await service.generate(waiting_thread.id)

    assert len(backend.calls) == 1
    assert await _count(session_factory, FollowUpSuggestion) == 1


@pytest.mark.asyncio
async def test_unique_index_blocks_racing_insert(repos, waiting_thread):
    """The store rejects a second pending row even if the pre-check was skipped."""
    fields = dict(
        draft_subject="s",
        draft_body="b",
        tone=FollowUpTone.professional,
        ai_model_used="m",
        ai_reasoning="",
    )
    await repos.follow_ups.create(waiting_thread.id, **fields)
    with pytest.raises(ConflictError):
        await repos.follow_ups.create(waiting_thread.id, **fields)


@pytest.mark.asyncio
async def test_new_draft_allowed_after_rejection(repos, waiting_thread, backend_factory):
    service = _service(repos, backend_factory())
    first = await service.generate(waiting_thread.id)
    rejected = await service.reject(first.id, "Too pushy")

    assert rejected.status == SuggestionStatus.rejected
    assert rejected.rejection_reason == "Too pushy"
    assert rejected.rejected_at is not None

    second = await service.generate(waiting_thread.id)
    assert second.id != first.id


@pytest.mark.asyncio
async def test_approve_records_edits(repos, waiting_thread, backend_factory):
    service = _service(repos, backend_factory())
    draft = await service.generate(waiting_thread.id)

    approved = await service.approve(draft.id, edited_body="Shorter version.")

    assert approved.status == SuggestionStatus.approved
    assert approved.approved_at is not None
    assert approved.was_edited is True
    assert approved.user_edited_body == "Shorter version."
    assert approved.user_edited_subject is None


@pytest.mark.asyncio
async def test_approve_without_changes_is_not_edited(repos, waiting_thread, backend_factory):
    service = _service(repos, backend_factory())
    draft = await service.generate(waiting_thread.id)
    approved = await service.approve(draft.id, edited_subject=draft.draft_subject)
    assert approved.was_edited is False


@pytest.mark.asyncio
async def test_terminal_suggestion_cannot_change(repos, waiting_thread, backend_factory):
    service = _service(repos, backend_factory())
    draft = await service.generate(waiting_thread.id)
    await service.approve(draft.id)

    with pytest.raises(ConflictError):
        await service.reject(draft.id)
    with pytest.raises(ConflictError):
        await service.approve(draft.id)


@pytest.mark.asyncio
async def test_list_pending_and_get(repos, waiting_thread, backend_factory):
    service = _service(repos, backend_factory())
    draft = await service.generate(waiting_thread.id)

    pending = await service.list_pending()
    assert [s.id for s in pending] == [draft.id]
    assert pending[0].thread.subject == "Q3 proposal"

    fetched = await service.get(draft.id)
    assert fetched.draft_body == draft.draft_body

    with pytest.raises(NotFoundError):
        await service.get(uuid.uuid4())
