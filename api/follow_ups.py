"""Follow-up drafting and review endpoints."""

import logging
import uuid
from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from api.deps import get_follow_up_service, get_notification_service
from src.core.exceptions import ValidationError
from src.core.follow_ups import FollowUpService
from src.core.models.enums import NotificationType
from src.core.models.follow_up import FollowUpSuggestion
from src.core.notifications import NotificationService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/follow-ups", tags=["follow-ups"])


# --- Schemas ---


class FollowUpItem(BaseModel):
    id: str
    thread_id: str
    suggested_action: str
    draft_subject: str
    draft_body: str
    tone: str
    status: str
    ai_model_used: str | None = None
    ai_reasoning: str | None = None
    was_edited: bool = False
    user_edited_subject: str | None = None
    user_edited_body: str | None = None
    approved_at: datetime | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None
    created_at: datetime | None = None


class FollowUpResponse(BaseModel):
    success: bool = True
    follow_up: FollowUpItem


class FollowUpListResponse(BaseModel):
    success: bool = True
    follow_ups: list[FollowUpItem]
    count: int


class FollowUpPatchRequest(BaseModel):
    action: Literal["approve", "reject"]
    subject: str | None = None
    body: str | None = None
    reason: str | None = None


def _to_item(s: FollowUpSuggestion) -> FollowUpItem:
    return FollowUpItem(
        id=str(s.id),
        thread_id=str(s.thread_id),
        suggested_action=s.suggested_action.value,
        draft_subject=s.draft_subject,
        draft_body=s.draft_body,
        tone=s.tone.value,
        status=s.status.value,
        ai_model_used=s.ai_model_used,
        ai_reasoning=s.ai_reasoning,
        was_edited=bool(s.was_edited),
        user_edited_subject=s.user_edited_subject,
        user_edited_body=s.user_edited_body,
        approved_at=s.approved_at,
        rejected_at=s.rejected_at,
        rejection_reason=s.rejection_reason,
        created_at=s.created_at,
    )


# --- Endpoints ---


async def _generate(
    thread_id: uuid.UUID,
    service: FollowUpService,
    notifications: NotificationService,
) -> FollowUpResponse:
    suggestion = await service.generate(thread_id)
    try:
        await notifications.notify(
            NotificationType.follow_up,
            "Follow-up draft ready",
            suggestion.draft_subject,
            link="/approvals",
            tag=f"follow-up-{suggestion.thread_id}",
            related_entity_type="follow_up_suggestion",
            related_entity_id=suggestion.id,
        )
    except Exception as e:
        logger.error("Follow-up notification failed for %s: %s", suggestion.id, e)
    return FollowUpResponse(follow_up=_to_item(suggestion))


@router.post("/generate/{thread_id}", response_model=FollowUpResponse)
async def generate_follow_up(
    thread_id: uuid.UUID,
    service: FollowUpService = Depends(get_follow_up_service),
    notifications: NotificationService = Depends(get_notification_service),
):
    return await _generate(thread_id, service, notifications)


@router.get("/generate/{thread_id}", response_model=FollowUpResponse)
async def generate_follow_up_get(
    thread_id: uuid.UUID,
    service: FollowUpService = Depends(get_follow_up_service),
    notifications: NotificationService = Depends(get_notification_service),
):
    return await _generate(thread_id, service, notifications)


@router.get("", response_model=FollowUpListResponse)
async def list_follow_ups(
    status: str = Query("pending"),
    limit: int = Query(50, ge=1, le=200),
    service: FollowUpService = Depends(get_follow_up_service),
):
    if status != "pending":
        raise ValidationError("Only status=pending is supported")
    items = [_to_item(s) for s in await service.list_pending(limit=limit)]
    return FollowUpListResponse(follow_ups=items, count=len(items))


@router.get("/{suggestion_id}", response_model=FollowUpResponse)
async def get_follow_up(
    suggestion_id: uuid.UUID,
    service: FollowUpService = Depends(get_follow_up_service),
):
    return FollowUpResponse(follow_up=_to_item(await service.get(suggestion_id)))


@router.patch("/{suggestion_id}", response_model=FollowUpResponse)
async def update_follow_up(
    suggestion_id: uuid.UUID,
    body: FollowUpPatchRequest,
    service: FollowUpService = Depends(get_follow_up_service),
):
    if body.action == "approve":
        suggestion = await service.approve(suggestion_id, body.subject, body.body)
    else:
        suggestion = await service.reject(suggestion_id, body.reason)
    return FollowUpResponse(follow_up=_to_item(suggestion))
