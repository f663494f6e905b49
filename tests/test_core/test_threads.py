"""Tests for thread ingestion, waiting-on listing and snooze/resolve."""

import uuid
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import select

from src.core.exceptions import ConflictError, NotFoundError, ValidationError
from src.core.models.audit import AuditLog
from src.core.models.enums import EmailDirection, ThreadStatus
from src.core.threads import ThreadService

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


def _service(repos, now=T0 + timedelta(days=4)):
    return ThreadService(repos.threads, now=lambda: now)


@pytest.mark.asyncio
async def test_ingest_creates_thread_and_tracks_waiting(repos):
    service = _service(repos)
    thread = await service.ingest_email(
        "gmail-42",
        sender_email="Me@Example.com",
        to_emails=["Vendor@Supplies.io", "cc@supplies.io"],
        body="Can you confirm the delivery date?",
        received_at=T0,
        direction=EmailDirection.outbound,
        subject="Delivery date",
        external_message_id="msg-1",
    )
    assert thread.subject == "Delivery date"
    assert thread.waiting_on_email == "vendor@supplies.io"
    assert thread.waiting_since is not None

    replied = await service.ingest_email(
        "gmail-42",
        sender_email="vendor@supplies.io",
        to_emails=["me@example.com"],
        body="Next Tuesday.",
        received_at=T0 + timedelta(hours=3),
        direction=EmailDirection.inbound,
        external_message_id="msg-2",
    )
    assert replied.id == thread.id
    assert replied.waiting_on_email is None
    assert replied.waiting_since is None
    assert len(replied.emails) == 2


@pytest.mark.asyncio
async def test_duplicate_message_id_conflicts(repos):
    service = _service(repos)
    email = dict(
        sender_email="me@example.com",
        to_emails=["a@b.com"],
        body="hi",
        received_at=T0,
        direction=EmailDirection.outbound,
        external_message_id="dup",
    )
    await service.ingest_email("t-1", **email)
    with pytest.raises(ConflictError):
        await service.ingest_email("t-1", **email)


@pytest.mark.asyncio
async def test_append_to_unknown_thread(repos):
    with pytest.raises(NotFoundError):
        await _service(repos).append_email(
            uuid.uuid4(),
            sender_email="me@example.com",
            to_emails=[],
            body="",
            received_at=T0,
            direction=EmailDirection.outbound,
        )


@pytest.mark.asyncio
async def test_list_waiting_reports_days(repos, waiting_thread):
    waiting = await _service(repos, now=T0 + timedelta(days=4, hours=2)).list_waiting()
    assert len(waiting) == 1
    assert waiting[0].thread.id == waiting_thread.id
    assert waiting[0].days_waiting == 3


@pytest.mark.asyncio
async def test_snooze_hides_thread_until_reactivated(repos, waiting_thread):
    service = _service(repos)
    until = T0 + timedelta(days=10)

    snoozed = await service.snooze(waiting_thread.id, until)
    assert snoozed.status == ThreadStatus.snoozed
    assert await service.list_waiting() == []

    active = await service.reactivate(waiting_thread.id)
    assert active.status == ThreadStatus.active
    assert active.snooze_until is None
    assert len(await service.list_waiting()) == 1


@pytest.mark.asyncio
async def test_snooze_requires_future_date(repos, waiting_thread):
    service = _service(repos)
    with pytest.raises(ValidationError):
        await service.snooze(waiting_thread.id, None)
    with pytest.raises(ValidationError):
        await service.snooze(waiting_thread.id, T0)


@pytest.mark.asyncio
async def test_resolve_clears_waiting_and_is_audited(repos, session_factory, waiting_thread):
    resolved = await _service(repos).resolve(waiting_thread.id, "replied_by_phone")

    assert resolved.status == ThreadStatus.resolved
    assert resolved.resolved_reason == "replied_by_phone"
    assert resolved.waiting_since is None

    async with session_factory() as session:
        entries = (await session.execute(select(AuditLog))).scalars().all()
    assert [(e.entity_type, e.action) for e in entries] == [("thread", "resolved")]


@pytest.mark.asyncio
async def test_email_on_resolved_thread_keeps_it_out_of_waiting(repos, waiting_thread):
    service = _service(repos)
    await service.resolve(waiting_thread.id)

    thread = await service.append_email(
        waiting_thread.id,
        sender_email="me@example.com",
        to_emails=["client@acme.com"],
        body="One more thing",
        received_at=T0 + timedelta(days=3),
        direction=EmailDirection.outbound,
    )

    assert thread.status == ThreadStatus.resolved
    assert thread.waiting_on_email is None
    assert thread.waiting_since is None
    assert await service.list_waiting() == []

    reactivated = await service.reactivate(waiting_thread.id)
    assert reactivated.waiting_on_email == "client@acme.com"
    assert reactivated.waiting_since.replace(tzinfo=UTC) == T0 + timedelta(days=3)


@pytest.mark.asyncio
async def test_reactivate_due_wakes_elapsed_snoozes(repos, waiting_thread):
    await _service(repos).snooze(waiting_thread.id, T0 + timedelta(days=5))

    assert await _service(repos, now=T0 + timedelta(days=4, hours=12)).reactivate_due() == 0
    assert await _service(repos, now=T0 + timedelta(days=5, minutes=1)).reactivate_due() == 1

    thread = await repos.threads.get_with_emails(waiting_thread.id)
    assert thread.status == ThreadStatus.active
