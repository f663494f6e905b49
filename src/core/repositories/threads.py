import logging
import uuid
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from src.core.audit import log_action, snapshot
from src.core.exceptions import ConflictError, NotFoundError
from src.core.models.base import utcnow
from src.core.models.email import Email
from src.core.models.enums import AuditActor, EmailDirection, ThreadStatus
from src.core.models.thread import Thread
from src.core.waiting_on import WaitingStatus, classify_thread

logger = logging.getLogger(__name__)


class ThreadRepository:
    """Threads and their append-only email sequence."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_with_emails(self, thread_id: uuid.UUID) -> Thread | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Thread).options(selectinload(Thread.emails)).where(Thread.id == thread_id)
            )
            return result.scalar_one_or_none()

    async def list_waiting(self) -> list[Thread]:
        """Active threads waiting on a reply, oldest first."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(Thread)
                .where(
                    Thread.waiting_on_email.is_not(None),
                    Thread.status == ThreadStatus.active,
                )
                .order_by(Thread.waiting_since.asc())
            )
            return list(result.scalars().all())

    async def list_active_with_emails(self) -> list[Thread]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Thread)
                .options(selectinload(Thread.emails))
                .where(Thread.status == ThreadStatus.active)
            )
            return list(result.scalars().all())

    async def list_snoozed_due(self, now: datetime) -> list[Thread]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Thread).where(
                    Thread.status == ThreadStatus.snoozed,
                    Thread.snooze_until <= now,
                )
            )
            return list(result.scalars().all())

    async def get_or_create(self, external_thread_id: str, subject: str | None = None) -> Thread:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Thread).where(Thread.external_thread_id == external_thread_id)
            )
            thread = result.scalar_one_or_none()
            if thread:
                return thread

            thread = Thread(external_thread_id=external_thread_id, subject=subject)
            session.add(thread)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise ConflictError(f"Thread {external_thread_id} already exists") from e
            return thread

    async def append_email(
        self,
        thread_id: uuid.UUID,
        *,
        sender_email: str,
        to_emails: list[str],
        body: str,
        received_at: datetime,
        direction: EmailDirection,
        subject: str | None = None,
        external_message_id: str | None = None,
    ) -> Thread:
        """Add an email and refresh the thread's waiting-on fields in one transaction."""
        async with self._session_factory() as session:
            thread = await self._load(session, thread_id, with_emails=True)
            email = Email(
                thread_id=thread.id,
                external_message_id=external_message_id,
                sender_email=sender_email.lower(),
                to_emails=[addr.lower() for addr in to_emails],
                subject=subject,
                body=body,
                received_at=received_at,
                direction=direction,
            )
            session.add(email)
            thread.emails.append(email)
            if subject and not thread.subject:
                thread.subject = subject

            if thread.status == ThreadStatus.active:
                self._apply_waiting(thread, classify_thread(thread.emails))
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise ConflictError(f"Email {external_message_id} already ingested") from e
            return thread

    async def set_waiting(self, thread_id: uuid.UUID, status: WaitingStatus) -> Thread:
        async with self._session_factory() as session:
            thread = await self._load(session, thread_id)
            self._apply_waiting(thread, status)
            await session.commit()
            return thread

    async def change_status(
        self,
        thread_id: uuid.UUID,
        status: ThreadStatus,
        *,
        snooze_until: datetime | None = None,
        resolved_reason: str | None = None,
        actor: AuditActor = AuditActor.user,
    ) -> Thread:
        async with self._session_factory() as session:
            thread = await self._load(session, thread_id, with_emails=status == ThreadStatus.active)
            previous = snapshot(thread)

            thread.status = status
            thread.snooze_until = snooze_until if status == ThreadStatus.snoozed else None
            if status == ThreadStatus.resolved:
                thread.resolved_at = utcnow()
                thread.resolved_reason = resolved_reason or "manual"
                thread.waiting_on_email = None
                thread.waiting_since = None
            else:
                thread.resolved_at = None
                thread.resolved_reason = None
            if status == ThreadStatus.active:
                self._apply_waiting(thread, classify_thread(thread.emails))

            await log_action(
                session,
                entity_type="thread",
                entity_id=thread.id,
                action=status.value,
                actor=actor,
                previous_state=previous,
                new_state=snapshot(thread),
            )
            await session.commit()
            return thread

    @staticmethod
    def _apply_waiting(thread: Thread, status: WaitingStatus) -> None:
        if status.waiting:
            thread.waiting_since = status.waiting_since
            thread.waiting_on_email = status.waiting_on_email
        else:
            thread.waiting_since = None
            thread.waiting_on_email = None

    @staticmethod
    async def _load(session: AsyncSession, thread_id: uuid.UUID, with_emails: bool = False) -> Thread:
        query = select(Thread).where(Thread.id == thread_id)
        if with_emails:
            query = query.options(selectinload(Thread.emails))
        result = await session.execute(query)
        thread = result.scalar_one_or_none()
        if thread is None:
            raise NotFoundError("Thread not found")
        return thread
