"""Audit logging: track every state change of suggestions, tasks and threads."""

import logging
import uuid
from enum import Enum
from typing import Any

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.models.audit import AuditLog
from src.core.models.enums import AuditActor

logger = logging.getLogger(__name__)


def snapshot(obj: Any) -> dict[str, Any]:
    """JSON-safe dict of an ORM object's loaded column values.

    Reads the instance state directly so expired attributes are skipped
    instead of triggering a lazy load.
    """
    state = inspect(obj)
    data: dict[str, Any] = {}
    for column in state.mapper.column_attrs:
        if column.key not in state.dict:
            continue
        value = state.dict[column.key]
        if isinstance(value, Enum):
            value = value.value
        elif isinstance(value, uuid.UUID):
            value = str(value)
        elif hasattr(value, "isoformat"):
            value = value.isoformat()
        data[column.key] = value
    return data


async def log_action(
    session: AsyncSession,
    entity_type: str,
    entity_id: uuid.UUID,
    action: str,
    actor: AuditActor = AuditActor.user,
    previous_state: dict | None = None,
    new_state: dict | None = None,
    meta: dict | None = None,
) -> None:
    """Add an audit entry to the caller's transaction."""
    entry = AuditLog(
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        actor=actor,
        previous_state=previous_state,
        new_state=new_state,
        meta=meta,
    )
    session.add(entry)
    await session.flush()
    logger.debug("Audit: %s %s %s by %s", entity_type, entity_id, action, actor.value)
