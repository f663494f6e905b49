import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.models.base import Base, JSONType, TimestampMixin
from src.core.models.enums import EmailDirection


class Email(Base, TimestampMixin):
    __tablename__ = "emails"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    thread_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("threads.id", ondelete="CASCADE"), index=True
    )
    external_message_id: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    sender_email: Mapped[str] = mapped_column(String(320))
    to_emails: Mapped[list | None] = mapped_column(JSONType, nullable=True)
    subject: Mapped[str | None] = mapped_column(Text, nullable=True)
    body: Mapped[str] = mapped_column(Text, default="")
    received_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    direction: Mapped[EmailDirection] = mapped_column(Enum(EmailDirection, name="email_direction"))

    thread = relationship("Thread", back_populates="emails")
