"""Decision log with supersession.

A new decision may name an older one it replaces. The older row is left
as-is; it simply stops appearing in "current" queries.
"""

import logging
import uuid
from datetime import datetime

from src.core.exceptions import NotFoundError, ValidationError
from src.core.lifecycle import ensure_acyclic
from src.core.models.decision import Decision
from src.core.repositories.decisions import DecisionRepository

logger = logging.getLogger(__name__)


class DecisionService:
    def __init__(self, decisions: DecisionRepository) -> None:
        self._decisions = decisions

    async def log(
        self,
        decision: str,
        *,
        rationale: str | None = None,
        context: str | None = None,
        decided_at: datetime | None = None,
        project_id: uuid.UUID | None = None,
        source: str = "manual",
        source_reference: str | None = None,
        supersedes_id: uuid.UUID | None = None,
    ) -> Decision:
        if not decision or not decision.strip():
            raise ValidationError("decision text is required")

        decision_id = uuid.uuid4()
        if supersedes_id is not None:
            if await self._decisions.get(supersedes_id) is None:
                raise NotFoundError(f"Superseded decision {supersedes_id} not found")
            await ensure_acyclic(decision_id, supersedes_id, self._decisions.parent_of)

        row = await self._decisions.create(
            decision_id=decision_id,
            decision=decision.strip(),
            rationale=rationale,
            context=context,
            decided_at=decided_at,
            project_id=project_id,
            source=source,
            source_reference=source_reference,
            supersedes_id=supersedes_id,
        )
        if supersedes_id:
            logger.info("Decision %s supersedes %s", row.id, supersedes_id)
        return row

    async def get(self, decision_id: uuid.UUID) -> Decision:
        row = await self._decisions.get(decision_id)
        if row is None:
            raise NotFoundError("Decision not found")
        return row

    async def is_current(self, decision_id: uuid.UUID) -> bool:
        return await self._decisions.is_current(decision_id)

    async def find(
        self,
        *,
        project_id: uuid.UUID | None = None,
        include_superseded: bool = False,
        limit: int = 50,
    ) -> list[Decision]:
        return await self._decisions.find(
            project_id=project_id, current_only=not include_superseded, limit=limit
        )

    async def search(
        self,
        query: str,
        *,
        project_id: uuid.UUID | None = None,
        include_superseded: bool = False,
        limit: int = 20,
    ) -> list[Decision]:
        query = query.strip()
        if not query:
            return []
        return await self._decisions.search(
            query, project_id=project_id, current_only=not include_superseded, limit=limit
        )
