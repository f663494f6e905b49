import logging
import uuid
from datetime import datetime

from sqlalchemy import exists, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.core.exceptions import NotFoundError
from src.core.models.base import utcnow
from src.core.models.enums import NotificationType
from src.core.models.notification import Notification
from src.core.models.push_subscription import PushSubscription

logger = logging.getLogger(__name__)


class PushSubscriptionRepository:
    """Push endpoints keyed by URL; re-subscribing updates the existing row."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def upsert(
        self,
        endpoint: str,
        keys: dict[str, str],
        user_agent: str | None = None,
        device_name: str | None = None,
    ) -> PushSubscription:
        async with self._session_factory() as session:
            sub = await self._by_endpoint(session, endpoint)
            if sub is None:
                sub = PushSubscription(endpoint=endpoint, keys=keys)
                session.add(sub)
            self._refresh(sub, keys, user_agent, device_name)
            try:
                await session.commit()
                return sub
            except IntegrityError as e:
                # Concurrent subscribe for the same endpoint won the insert
                await session.rollback()
                conflict = e

            sub = await self._by_endpoint(session, endpoint)
            if sub is None:
                raise conflict
            self._refresh(sub, keys, user_agent, device_name)
            await session.commit()
            return sub

    async def list_active(self) -> list[PushSubscription]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(PushSubscription)
                .where(PushSubscription.is_active.is_(True))
                .order_by(PushSubscription.created_at.asc())
            )
            return list(result.scalars().all())

    async def deactivate(self, endpoint: str) -> bool:
        """Deactivate one endpoint. Returns False when nothing matched."""
        async with self._session_factory() as session:
            result = await session.execute(
                update(PushSubscription)
                .where(PushSubscription.endpoint == endpoint)
                .values(is_active=False, updated_at=utcnow())
            )
            await session.commit()
            return result.rowcount > 0

    async def deactivate_by_id(self, subscription_id: uuid.UUID) -> None:
        async with self._session_factory() as session:
            await session.execute(
                update(PushSubscription)
                .where(PushSubscription.id == subscription_id)
                .values(is_active=False, updated_at=utcnow())
            )
            await session.commit()

    async def deactivate_all(self) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                update(PushSubscription)
                .where(PushSubscription.is_active.is_(True))
                .values(is_active=False, updated_at=utcnow())
            )
            await session.commit()
            return result.rowcount

    async def touch(self, subscription_id: uuid.UUID) -> None:
        async with self._session_factory() as session:
            await session.execute(
                update(PushSubscription)
                .where(PushSubscription.id == subscription_id)
                .values(last_used_at=utcnow())
            )
            await session.commit()

    @staticmethod
    async def _by_endpoint(session: AsyncSession, endpoint: str) -> PushSubscription | None:
        result = await session.execute(
            select(PushSubscription).where(PushSubscription.endpoint == endpoint)
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _refresh(
        sub: PushSubscription,
        keys: dict[str, str],
        user_agent: str | None,
        device_name: str | None,
    ) -> None:
        sub.keys = keys
        sub.is_active = True
        if user_agent is not None:
            sub.user_agent = user_agent
        if device_name is not None:
            sub.device_name = device_name


class NotificationRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create(
        self,
        type: NotificationType,
        title: str,
        body: str,
        *,
        link: str | None = None,
        tag: str | None = None,
        related_entity_type: str | None = None,
        related_entity_id: uuid.UUID | None = None,
    ) -> Notification:
        async with self._session_factory() as session:
            notification = Notification(
                type=type,
                title=title,
                body=body,
                link=link,
                tag=tag,
                related_entity_type=related_entity_type,
                related_entity_id=related_entity_id,
            )
            session.add(notification)
            await session.commit()
            return notification

    async def list_recent(self, limit: int = 20, unread_only: bool = False) -> list[Notification]:
        query = select(Notification)
        if unread_only:
            query = query.where(Notification.read.is_(False))
        query = query.order_by(Notification.created_at.desc()).limit(limit)
        async with self._session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def unread_count(self) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                select(func.count()).select_from(Notification).where(Notification.read.is_(False))
            )
            return int(result.scalar() or 0)

    async def mark_read(self, notification_id: uuid.UUID) -> Notification:
        async with self._session_factory() as session:
            notification = await session.get(Notification, notification_id)
            if notification is None:
                raise NotFoundError("Notification not found")
            if not notification.read:
                notification.read = True
                notification.read_at = utcnow()
                await session.commit()
            return notification

    async def mark_all_read(self) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                update(Notification)
                .where(Notification.read.is_(False))
                .values(read=True, read_at=utcnow())
            )
            await session.commit()
            return result.rowcount

    async def mark_push_sent(self, notification_id: uuid.UUID, error: str | None = None) -> None:
        """Record a dispatch attempt; partial failures keep their summary in ``push_error``."""
        async with self._session_factory() as session:
            await session.execute(
                update(Notification)
                .where(Notification.id == notification_id)
                .values(push_sent=True, push_sent_at=utcnow(), push_error=error)
            )
            await session.commit()

    async def list_pending_push(self, since: datetime, limit: int = 50) -> list[Notification]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Notification)
                .where(
                    Notification.push_sent.is_(False),
                    Notification.created_at >= since,
                )
                .order_by(Notification.created_at.asc())
                .limit(limit)
            )
            return list(result.scalars().all())

    async def has_recent(
        self,
        type: NotificationType,
        related_entity_id: uuid.UUID,
        since: datetime,
    ) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                select(
                    exists().where(
                        Notification.type == type,
                        Notification.related_entity_id == related_entity_id,
                        Notification.created_at >= since,
                    )
                )
            )
            return bool(result.scalar())
