import uuid
from datetime import date

from sqlalchemy import Date, Enum, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.core.models.base import Base, TimestampMixin
from src.core.models.enums import SuggestionStatus, TaskPriority


class TaskSuggestion(Base, TimestampMixin):
    """Action item extracted from an email, waiting for approval."""

    __tablename__ = "task_suggestions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("emails.id", ondelete="SET NULL"), nullable=True
    )
    title: Mapped[str] = mapped_column(String(500))
    why: Mapped[str | None] = mapped_column(Text, nullable=True)
    suggested_owner_email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    suggested_due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    priority: Mapped[TaskPriority] = mapped_column(
        Enum(TaskPriority, name="task_priority"),
        default=TaskPriority.med,
    )
    status: Mapped[SuggestionStatus] = mapped_column(
        Enum(SuggestionStatus, name="suggestion_status"),
        default=SuggestionStatus.pending,
    )
