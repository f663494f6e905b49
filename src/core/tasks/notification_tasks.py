"""Scheduled push delivery (Taskiq cron)."""

import logging

from src.core.tasks.broker import broker
from src.core.tasks.runtime import get_services

logger = logging.getLogger(__name__)


@broker.task(schedule=[{"cron": "*/10 * * * *"}])  # Every 10 minutes
async def dispatch_pending_notifications():
    """Deliver notifications that were stored while push was unavailable."""
    delivered = await get_services().notifications.dispatch_pending()
    if delivered:
        logger.info("Dispatched %d pending notification(s)", delivered)
