"""Thread endpoints: waiting-on list, email ingestion, snooze/resolve."""

import uuid
from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from api.deps import get_thread_service
from src.core.exceptions import ValidationError
from src.core.models.enums import EmailDirection
from src.core.models.thread import Thread
from src.core.threads import ThreadService

router = APIRouter(prefix="/threads", tags=["threads"])


class ThreadItem(BaseModel):
    id: str
    external_thread_id: str
    subject: str | None = None
    status: str
    waiting_on_email: str | None = None
    waiting_since: datetime | None = None
    days_waiting: int | None = None
    snooze_until: datetime | None = None
    resolved_at: datetime | None = None
    resolved_reason: str | None = None


class ThreadResponse(BaseModel):
    success: bool = True
    thread: ThreadItem


class ThreadListResponse(BaseModel):
    success: bool = True
    threads: list[ThreadItem]
    count: int


class EmailIngestRequest(BaseModel):
    sender_email: str = Field(min_length=3)
    to_emails: list[str] = Field(default_factory=list)
    body: str = ""
    received_at: datetime
    direction: EmailDirection
    subject: str | None = None
    external_message_id: str | None = None


class ThreadPatchRequest(BaseModel):
    action: Literal["snooze", "resolve", "reactivate"]
    snooze_until: datetime | None = None
    reason: str | None = None


def _to_item(t: Thread, days: int | None = None) -> ThreadItem:
    return ThreadItem(
        id=str(t.id),
        external_thread_id=t.external_thread_id,
        subject=t.subject,
        status=t.status.value,
        waiting_on_email=t.waiting_on_email,
        waiting_since=t.waiting_since,
        days_waiting=days,
        snooze_until=t.snooze_until,
        resolved_at=t.resolved_at,
        resolved_reason=t.resolved_reason,
    )


@router.get("", response_model=ThreadListResponse)
async def list_threads(
    waiting: str | None = Query(None),
    service: ThreadService = Depends(get_thread_service),
):
    if waiting != "true":
        raise ValidationError("Only waiting=true is currently supported")
    items = [_to_item(w.thread, w.days_waiting) for w in await service.list_waiting()]
    return ThreadListResponse(threads=items, count=len(items))


@router.post("/{thread_id}/emails", response_model=ThreadResponse, status_code=201)
async def add_email(
    thread_id: uuid.UUID,
    body: EmailIngestRequest,
    service: ThreadService = Depends(get_thread_service),
):
    thread = await service.append_email(thread_id, **body.model_dump())
    return ThreadResponse(thread=_to_item(thread))


@router.patch("/{thread_id}", response_model=ThreadResponse)
async def update_thread(
    thread_id: uuid.UUID,
    body: ThreadPatchRequest,
    service: ThreadService = Depends(get_thread_service),
):
    if body.action == "snooze":
        thread = await service.snooze(thread_id, body.snooze_until)
    elif body.action == "resolve":
        thread = await service.resolve(thread_id, body.reason)
    else:
        thread = await service.reactivate(thread_id)
    return ThreadResponse(thread=_to_item(thread))


class ThreadIngestRequest(EmailIngestRequest):
    external_thread_id: str = Field(min_length=1)


@router.post("", response_model=ThreadResponse, status_code=201)
async def ingest_email(
    body: ThreadIngestRequest,
    service: ThreadService = Depends(get_thread_service),
):
    """Ingest an email by provider thread id, creating the thread if needed."""
    fields = body.model_dump()
    external_thread_id = fields.pop("external_thread_id")
    thread = await service.ingest_email(external_thread_id, **fields)
    return ThreadResponse(thread=_to_item(thread))
