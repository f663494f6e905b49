"""Scheduled thread maintenance (Taskiq cron)."""

import logging
from datetime import UTC, datetime, timedelta

from src.core.config import settings
from src.core.models.enums import NotificationType
from src.core.services import Services
from src.core.tasks.broker import broker
from src.core.tasks.runtime import get_services
from src.core.waiting_on import as_utc, classify_thread, days_waiting

logger = logging.getLogger(__name__)


async def sync_waiting(services: Services, now: datetime | None = None) -> dict[str, int]:
    """Reclassify active threads and nudge about the ones that have stalled."""
    now = now or datetime.now(UTC)
    cooldown = timedelta(days=settings.waiting_notify_cooldown_days)
    stats = {"checked": 0, "updated": 0, "notified": 0, "errors": 0}

    for thread in await services.repositories.threads.list_active_with_emails():
        stats["checked"] += 1
        try:
            status = classify_thread(thread.emails)
            stored_since = as_utc(thread.waiting_since) if thread.waiting_since else None
            fresh_since = as_utc(status.waiting_since) if status.waiting_since else None
            if stored_since != fresh_since or thread.waiting_on_email != status.waiting_on_email:
                await services.repositories.threads.set_waiting(thread.id, status)
                stats["updated"] += 1

            if not status.waiting:
                continue
            waited = days_waiting(status.waiting_since, now)
            if waited < settings.waiting_threshold_days:
                continue
            if await services.notifications.has_recent(NotificationType.waiting_on, thread.id, cooldown):
                continue

            await services.notifications.notify(
                NotificationType.waiting_on,
                f"Waiting on {status.waiting_on_email or 'a reply'}",
                f'"{thread.subject or "No subject"}" has had no reply for {waited} days.',
                link="/waiting-on",
                tag=f"waiting-{thread.id}",
                related_entity_type="thread",
                related_entity_id=thread.id,
            )
            stats["notified"] += 1
        except Exception as e:
            stats["errors"] += 1
            logger.error("Waiting-on sync failed for thread %s: %s", thread.id, e)

    logger.info(
        "Waiting-on sync: %d checked, %d updated, %d notified, %d errors",
        stats["checked"],
        stats["updated"],
        stats["notified"],
        stats["errors"],
    )
    return stats


@broker.task(schedule=[{"cron": "*/30 * * * *"}])  # Every 30 minutes
async def sync_waiting_on():
    await sync_waiting(get_services())


@broker.task(schedule=[{"cron": "*/15 * * * *"}])  # Every 15 minutes
async def reactivate_snoozed_threads():
    woken = await get_services().threads.reactivate_due()
    if woken:
        logger.info("Reactivated %d snoozed thread(s)", woken)
