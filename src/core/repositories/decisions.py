import uuid
from datetime import datetime

from sqlalchemy import exists, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import aliased

from src.core.models.base import utcnow
from src.core.models.decision import Decision

_Successor = aliased(Decision)


def _is_current():
    """No other decision supersedes this one."""
    return ~exists().where(_Successor.supersedes_id == Decision.id)


class DecisionRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, decision_id: uuid.UUID) -> Decision | None:
        async with self._session_factory() as session:
            return await session.get(Decision, decision_id)

    async def parent_of(self, decision_id: uuid.UUID) -> uuid.UUID | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Decision.supersedes_id).where(Decision.id == decision_id)
            )
            return result.scalar_one_or_none()

    async def is_current(self, decision_id: uuid.UUID) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                select(exists().where(_Successor.supersedes_id == decision_id))
            )
            return not result.scalar()

    async def create(
        self,
        *,
        decision: str,
        rationale: str | None = None,
        context: str | None = None,
        decided_at: datetime | None = None,
        project_id: uuid.UUID | None = None,
        source: str = "manual",
        source_reference: str | None = None,
        supersedes_id: uuid.UUID | None = None,
        decision_id: uuid.UUID | None = None,
    ) -> Decision:
        async with self._session_factory() as session:
            row = Decision(
                id=decision_id or uuid.uuid4(),
                decision=decision,
                rationale=rationale,
                context=context,
                decided_at=decided_at or utcnow(),
                project_id=project_id,
                source=source,
                source_reference=source_reference,
                supersedes_id=supersedes_id,
            )
            session.add(row)
            await session.commit()
            return row

    async def find(
        self,
        *,
        project_id: uuid.UUID | None = None,
        current_only: bool = True,
        limit: int = 50,
    ) -> list[Decision]:
        query = select(Decision)
        if current_only:
            query = query.where(_is_current())
        if project_id is not None:
            query = query.where(Decision.project_id == project_id)
        query = query.order_by(Decision.decided_at.desc()).limit(limit)

        async with self._session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def search(
        self,
        text: str,
        *,
        project_id: uuid.UUID | None = None,
        current_only: bool = True,
        limit: int = 20,
    ) -> list[Decision]:
        """Case-insensitive substring match over decision, rationale and context."""
        pattern = f"%{text}%"
        query = select(Decision).where(
            or_(
                Decision.decision.ilike(pattern),
                Decision.rationale.ilike(pattern),
                Decision.context.ilike(pattern),
            )
        )
        if current_only:
            query = query.where(_is_current())
        if project_id is not None:
            query = query.where(Decision.project_id == project_id)
        query = query.order_by(Decision.decided_at.desc()).limit(limit)
        async with self._session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())
