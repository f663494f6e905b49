import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.models.base import Base, TimestampMixin
from src.core.models.enums import FollowUpAction, FollowUpTone, SuggestionStatus


class FollowUpSuggestion(Base, TimestampMixin):
    __tablename__ = "follow_up_suggestions"
    __table_args__ = (
        # At most one pending draft per thread
        Index(
            "uq_follow_up_pending_thread",
            "thread_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    thread_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("threads.id", ondelete="CASCADE"), index=True
    )
    suggested_action: Mapped[FollowUpAction] = mapped_column(
        Enum(FollowUpAction, name="follow_up_action"),
        default=FollowUpAction.follow_up,
    )
    draft_subject: Mapped[str] = mapped_column(Text)
    draft_body: Mapped[str] = mapped_column(Text)
    tone: Mapped[FollowUpTone] = mapped_column(
        Enum(FollowUpTone, name="follow_up_tone"),
        default=FollowUpTone.professional,
    )
    ai_model_used: Mapped[str | None] = mapped_column(String(100), nullable=True)
    ai_reasoning: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[SuggestionStatus] = mapped_column(
        Enum(SuggestionStatus, name="suggestion_status"),
        default=SuggestionStatus.pending,
    )
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    user_edited_subject: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_edited_body: Mapped[str | None] = mapped_column(Text, nullable=True)
    was_edited: Mapped[bool] = mapped_column(Boolean, default=False)

    thread = relationship("Thread")
