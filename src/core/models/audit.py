import uuid

from sqlalchemy import Enum, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.core.models.base import Base, JSONType, TimestampMixin
from src.core.models.enums import AuditActor


class AuditLog(Base, TimestampMixin):
    __tablename__ = "audit_log"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    entity_type: Mapped[str] = mapped_column(String(50))
    entity_id: Mapped[uuid.UUID] = mapped_column(Uuid, index=True)
    action: Mapped[str] = mapped_column(String(50))
    actor: Mapped[AuditActor] = mapped_column(
        Enum(AuditActor, name="audit_actor"), default=AuditActor.user
    )
    previous_state: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    new_state: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    meta: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
