"""Tests for scheduled waiting-on sync."""

from datetime import UTC, datetime, timedelta

import pytest

from src.core.config import settings
from src.core.models.enums import EmailDirection, NotificationType
from src.core.services import build_services
from src.core.tasks.thread_tasks import sync_waiting
from src.core.waiting_on import NOT_WAITING

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


@pytest.fixture
def services(session_factory, fake_backend, fake_sender):
    return build_services(session_factory, settings, backend=fake_backend, push_sender=fake_sender)


@pytest.mark.asyncio
async def test_stalled_thread_notifies_once_per_cooldown(services, waiting_thread):
    now = T0 + timedelta(days=4)

    first = await sync_waiting(services, now=now)
    second = await sync_waiting(services, now=now)

    assert first["notified"] == 1
    assert second["notified"] == 0
    items, _ = await services.notifications.inbox()
    assert len(items) == 1
    assert items[0].type == NotificationType.waiting_on
    assert items[0].related_entity_id == waiting_thread.id


@pytest.mark.asyncio
async def test_recent_thread_below_threshold_is_quiet(services, waiting_thread):
    stats = await sync_waiting(services, now=T0 + timedelta(days=1, hours=6))
    assert stats == {"checked": 1, "updated": 0, "notified": 0, "errors": 0}


@pytest.mark.asyncio
async def test_stale_waiting_fields_are_repaired(services, repos, waiting_thread):
    await repos.threads.set_waiting(waiting_thread.id, NOT_WAITING)

    stats = await sync_waiting(services, now=T0 + timedelta(days=1, hours=1))

    assert stats["updated"] == 1
    thread = await repos.threads.get_with_emails(waiting_thread.id)
    assert thread.waiting_on_email == "client@acme.com"


@pytest.mark.asyncio
async def test_replied_thread_is_cleared(services, repos, waiting_thread):
    await repos.threads.append_email(
        waiting_thread.id,
        sender_email="client@acme.com",
        to_emails=["me@example.com"],
        body="Got it",
        received_at=T0 + timedelta(days=2),
        direction=EmailDirection.inbound,
    )
    stats = await sync_waiting(services, now=T0 + timedelta(days=6))
    assert stats["notified"] == 0
    assert await services.threads.list_waiting() == []
