"""Notification inbox and push delivery.

Every notification is stored before any push attempt, so the in-app inbox
is complete even when delivery fails or push is not configured.
"""

import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from src.core.exceptions import ValidationError
from src.core.models.base import utcnow
from src.core.models.enums import NotificationType
from src.core.models.notification import Notification
from src.core.models.push_subscription import PushSubscription
from src.core.push import DispatchResult, PushDispatcher
from src.core.repositories.notifications import NotificationRepository, PushSubscriptionRepository

logger = logging.getLogger(__name__)

ICON = "/icons/icon-192x192.png"
BADGE = "/icons/icon-72x72.png"
PENDING_PUSH_WINDOW = timedelta(hours=24)


@dataclass(frozen=True)
class NotifyResult:
    notification: Notification
    push_sent: int = 0
    push_failed: int = 0


@dataclass(frozen=True)
class PushStatus:
    vapid_configured: bool
    subscriptions: list[PushSubscription]


def build_payload(
    title: str,
    body: str,
    link: str | None = None,
    tag: str | None = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "title": title,
        "body": body,
        "icon": ICON,
        "badge": BADGE,
        "link": link or "/",
    }
    if tag:
        payload["tag"] = tag
    return payload


def parse_subscription(body: Mapping[str, Any]) -> tuple[str, dict[str, str]]:
    """Extract ``endpoint`` and ``keys`` from a browser PushSubscription JSON."""
    endpoint = body.get("endpoint")
    keys = body.get("keys")
    if (
        not isinstance(endpoint, str)
        or not endpoint
        or not isinstance(keys, Mapping)
        or not keys.get("p256dh")
        or not keys.get("auth")
    ):
        raise ValidationError("Invalid subscription: endpoint and keys (p256dh, auth) required")
    return endpoint, {"p256dh": str(keys["p256dh"]), "auth": str(keys["auth"])}


class NotificationService:
    def __init__(
        self,
        notifications: NotificationRepository,
        subscriptions: PushSubscriptionRepository,
        dispatcher: PushDispatcher | None,
    ) -> None:
        # dispatcher is None when VAPID keys are not configured
        self._notifications = notifications
        self._subscriptions = subscriptions
        self._dispatcher = dispatcher

    @property
    def push_enabled(self) -> bool:
        return self._dispatcher is not None

    async def notify(
        self,
        type: NotificationType,
        title: str,
        body: str,
        *,
        link: str | None = None,
        tag: str | None = None,
        related_entity_type: str | None = None,
        related_entity_id: uuid.UUID | None = None,
    ) -> NotifyResult:
        notification = await self._notifications.create(
            type,
            title,
            body,
            link=link,
            tag=tag,
            related_entity_type=related_entity_type,
            related_entity_id=related_entity_id,
        )
        if self._dispatcher is None:
            logger.info("Push disabled, notification %s stored only", notification.id)
            return NotifyResult(notification=notification)

        result = await self._deliver(notification)
        return NotifyResult(notification=notification, push_sent=result.sent, push_failed=result.failed)

    async def dispatch_pending(self, now: datetime | None = None) -> int:
        """Push recent notifications that were stored without a delivery attempt."""
        if self._dispatcher is None:
            return 0
        since = (now or utcnow()) - PENDING_PUSH_WINDOW
        delivered = 0
        for notification in await self._notifications.list_pending_push(since):
            try:
                await self._deliver(notification)
                delivered += 1
            except Exception:
                logger.exception("Failed to dispatch notification %s", notification.id)
        return delivered

    async def send_test_push(self) -> DispatchResult:
        if self._dispatcher is None:
            logger.info("Test push skipped: VAPID not configured")
            return DispatchResult()
        return await self._dispatcher.send_to_all(
            build_payload(
                "Test Notification",
                "Push notifications are working correctly!",
                link="/",
                tag="test",
            )
        )

    async def _deliver(self, notification: Notification) -> DispatchResult:
        result = await self._dispatcher.send_to_all(
            build_payload(notification.title, notification.body, notification.link, notification.tag)
        )
        error = f"Failed to send to {result.failed} device(s)" if result.failed else None
        await self._notifications.mark_push_sent(notification.id, error)
        return result

    # -- subscriptions ---------------------------------------------------

    async def subscribe(
        self,
        body: Mapping[str, Any],
        user_agent: str | None = None,
    ) -> PushSubscription:
        endpoint, keys = parse_subscription(body)
        device_name = body.get("device_name") if isinstance(body.get("device_name"), str) else None
        sub = await self._subscriptions.upsert(endpoint, keys, user_agent=user_agent, device_name=device_name)
        logger.info("Push subscription %s registered", sub.id)
        return sub

    async def unsubscribe(self, body: Mapping[str, Any]) -> bool:
        endpoint = body.get("endpoint")
        if not isinstance(endpoint, str) or not endpoint:
            raise ValidationError("Endpoint is required")
        return await self._subscriptions.deactivate(endpoint)

    async def clear_subscriptions(self) -> int:
        count = await self._subscriptions.deactivate_all()
        logger.info("Cleared %d push subscription(s)", count)
        return count

    async def status(self) -> PushStatus:
        return PushStatus(
            vapid_configured=self.push_enabled,
            subscriptions=await self._subscriptions.list_active(),
        )

    # -- inbox -----------------------------------------------------------

    async def inbox(self, limit: int = 20, unread_only: bool = False) -> tuple[list[Notification], int]:
        items = await self._notifications.list_recent(limit=limit, unread_only=unread_only)
        return items, await self._notifications.unread_count()

    async def mark_read(self, notification_id: uuid.UUID) -> Notification:
        return await self._notifications.mark_read(notification_id)

    async def mark_all_read(self) -> int:
        return await self._notifications.mark_all_read()

    async def has_recent(
        self, type: NotificationType, related_entity_id: uuid.UUID, window: timedelta
    ) -> bool:
        return await self._notifications.has_recent(type, related_entity_id, utcnow() - window)
