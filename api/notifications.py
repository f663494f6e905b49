"""Notification inbox, push subscription and push test endpoints."""

import hmac
import uuid
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Body, Depends, Header, HTTPException, Query
from pydantic import BaseModel

from api.deps import get_notification_service
from src.core.config import settings
from src.core.exceptions import ValidationError
from src.core.models.notification import Notification
from src.core.notifications import NotificationService

router = APIRouter(prefix="/notifications", tags=["notifications"])


class NotificationItem(BaseModel):
    id: str
    type: str
    title: str
    body: str
    link: str | None = None
    related_entity_type: str | None = None
    related_entity_id: str | None = None
    read: bool
    read_at: datetime | None = None
    push_sent: bool
    created_at: datetime | None = None


class NotificationListResponse(BaseModel):
    success: bool = True
    notifications: list[NotificationItem]
    unread_count: int


class NotificationActionRequest(BaseModel):
    action: str | None = None


class SubscriptionPreview(BaseModel):
    id: str
    endpoint_preview: str
    device_name: str | None = None
    user_agent: str | None = None
    created_at: datetime | None = None
    last_used_at: datetime | None = None
    is_active: bool


class PushStatusResponse(BaseModel):
    vapid_configured: bool
    active_subscriptions: int
    subscriptions: list[SubscriptionPreview]


class TestPushResponse(BaseModel):
    success: bool = True
    message: str = "Test notification sent"
    sent: int
    failed: int
    total: int
    errors: list[str]


def _to_item(n: Notification) -> NotificationItem:
    return NotificationItem(
        id=str(n.id),
        type=n.type.value,
        title=n.title,
        body=n.body,
        link=n.link,
        related_entity_type=n.related_entity_type,
        related_entity_id=str(n.related_entity_id) if n.related_entity_id else None,
        read=bool(n.read),
        read_at=n.read_at,
        push_sent=bool(n.push_sent),
        created_at=n.created_at,
    )


def require_cron_secret(authorization: str | None = Header(None)) -> None:
    """Bearer gate for operator endpoints, active only when CRON_SECRET is set."""
    if not settings.cron_secret:
        return
    expected = f"Bearer {settings.cron_secret}"
    if not authorization or not hmac.compare_digest(authorization, expected):
        raise HTTPException(status_code=401, detail="Unauthorized")


# --- Inbox ---


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    limit: int = Query(20, ge=1, le=100),
    unread: bool = Query(False),
    service: NotificationService = Depends(get_notification_service),
):
    items, unread_count = await service.inbox(limit=limit, unread_only=unread)
    return NotificationListResponse(
        notifications=[_to_item(n) for n in items], unread_count=unread_count
    )


@router.post("")
async def notification_action(
    body: NotificationActionRequest,
    service: NotificationService = Depends(get_notification_service),
):
    if body.action != "mark_all_read":
        raise ValidationError("Unknown action")
    count = await service.mark_all_read()
    return {"success": True, "updated": count}


# --- Push subscriptions ---


@router.post("/subscribe")
async def subscribe(
    body: dict[str, Any] = Body(...),
    user_agent: str | None = Header(None),
    service: NotificationService = Depends(get_notification_service),
):
    sub = await service.subscribe(body, user_agent=user_agent)
    return {"success": True, "subscription_id": str(sub.id)}


@router.delete("/subscribe")
async def unsubscribe(
    body: dict[str, Any] = Body(...),
    service: NotificationService = Depends(get_notification_service),
):
    await service.unsubscribe(body)
    return {"success": True}


# --- Push diagnostics ---


@router.get("/test", response_model=PushStatusResponse)
async def push_status(service: NotificationService = Depends(get_notification_service)):
    status = await service.status()
    return PushStatusResponse(
        vapid_configured=status.vapid_configured,
        active_subscriptions=len(status.subscriptions),
        subscriptions=[
            SubscriptionPreview(
                id=str(sub.id),
                endpoint_preview=sub.endpoint[:60] + "...",
                device_name=sub.device_name,
                user_agent=sub.user_agent[:50] if sub.user_agent else None,
                created_at=sub.created_at,
                last_used_at=sub.last_used_at,
                is_active=bool(sub.is_active),
            )
            for sub in status.subscriptions
        ],
    )


@router.post("/test", response_model=TestPushResponse, dependencies=[Depends(require_cron_secret)])
async def send_test_push(service: NotificationService = Depends(get_notification_service)):
    result = await service.send_test_push()
    return TestPushResponse(
        sent=result.sent, failed=result.failed, total=result.total, errors=result.errors
    )


@router.delete("/test", dependencies=[Depends(require_cron_secret)])
async def clear_subscriptions(service: NotificationService = Depends(get_notification_service)):
    count = await service.clear_subscriptions()
    return {
        "success": True,
        "message": f"Cleared {count} subscription(s). Please re-enable push notifications.",
        "cleared": count,
    }


# --- Single notification ---


@router.patch("/{notification_id}")
async def mark_notification_read(
    notification_id: uuid.UUID,
    service: NotificationService = Depends(get_notification_service),
):
    notification = await service.mark_read(notification_id)
    return {"success": True, "notification": _to_item(notification).model_dump(mode="json")}
