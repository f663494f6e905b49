import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from src.core.exceptions import ValidationError
from src.core.models.enums import AuditActor, EmailDirection, ThreadStatus
from src.core.models.thread import Thread
from src.core.repositories.threads import ThreadRepository
from src.core.waiting_on import as_utc, days_waiting

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WaitingThread:
    thread: Thread
    days_waiting: int


class ThreadService:
    def __init__(
        self,
        threads: ThreadRepository,
        now: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self._threads = threads
        self._now = now

    async def ingest_email(
        self,
        external_thread_id: str,
        *,
        sender_email: str,
        to_emails: list[str],
        body: str,
        received_at: datetime,
        direction: EmailDirection,
        subject: str | None = None,
        external_message_id: str | None = None,
    ) -> Thread:
        """Append one email to its thread, creating the thread on first sight."""
        thread = await self._threads.get_or_create(external_thread_id, subject)
        return await self.append_email(
            thread.id,
            sender_email=sender_email,
            to_emails=to_emails,
            body=body,
            received_at=received_at,
            direction=direction,
            subject=subject,
            external_message_id=external_message_id,
        )

    async def append_email(self, thread_id: uuid.UUID, **email) -> Thread:
        thread = await self._threads.append_email(thread_id, **email)
        logger.info(
            "Thread %s now %s",
            thread.id,
            f"waiting on {thread.waiting_on_email}" if thread.waiting_since else "not waiting",
        )
        return thread

    async def list_waiting(self) -> list[WaitingThread]:
        now = self._now()
        return [
            WaitingThread(thread=thread, days_waiting=days_waiting(thread.waiting_since, now))
            for thread in await self._threads.list_waiting()
        ]

    async def snooze(self, thread_id: uuid.UUID, until: datetime | None) -> Thread:
        if until is None:
            raise ValidationError("snooze_until is required to snooze a thread")
        if as_utc(until) <= self._now():
            raise ValidationError("snooze_until must be in the future")
        return await self._threads.change_status(thread_id, ThreadStatus.snoozed, snooze_until=until)

    async def resolve(self, thread_id: uuid.UUID, reason: str | None = None) -> Thread:
        return await self._threads.change_status(
            thread_id, ThreadStatus.resolved, resolved_reason=reason
        )

    async def reactivate(
        self, thread_id: uuid.UUID, actor: AuditActor = AuditActor.user
    ) -> Thread:
        return await self._threads.change_status(thread_id, ThreadStatus.active, actor=actor)

    async def reactivate_due(self) -> int:
        """Wake snoozed threads whose snooze has elapsed."""
        woken = 0
        for thread in await self._threads.list_snoozed_due(self._now()):
            try:
                await self.reactivate(thread.id, actor=AuditActor.system)
                woken += 1
            except Exception:
                logger.exception("Failed to reactivate thread %s", thread.id)
        return woken
