"""Initial schema -- threads, follow-ups, tasks, decisions, notifications.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import ENUM, UUID, JSONB

revision = "001"
down_revision = None
branch_labels = None
depends_on = None

_ENUMS = {
    "email_direction": ("inbound", "outbound"),
    "thread_status": ("active", "snoozed", "resolved"),
    "suggestion_status": ("pending", "approved", "rejected"),
    "follow_up_action": ("follow_up", "close_loop", "escalate"),
    "follow_up_tone": ("professional", "friendly", "urgent"),
    "task_status": ("todo", "in_progress", "completed", "cancelled"),
    "task_priority": ("low", "med", "high"),
    "notification_type": ("task_suggestion", "follow_up", "waiting_on", "reminder", "test"),
    "audit_actor": ("user", "ai", "system"),
}


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # ── Enum types (idempotent via DO/EXCEPTION) ────────────────
    for name, values in _ENUMS.items():
        quoted = ", ".join(f"'{v}'" for v in values)
        op.execute(sa.text(
            f"DO $$ BEGIN CREATE TYPE {name} AS ENUM ({quoted}); "
            f"EXCEPTION WHEN duplicate_object THEN NULL; END $$;"
        ))
    enum = {name: ENUM(*values, name=name, create_type=False) for name, values in _ENUMS.items()}

    # 1. threads
    op.create_table(
        "threads",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("external_thread_id", sa.String(255), nullable=False, unique=True),
        sa.Column("subject", sa.Text, nullable=True),
        sa.Column("waiting_on_email", sa.String(320), nullable=True),
        sa.Column("waiting_since", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", enum["thread_status"], nullable=False, server_default="active"),
        sa.Column("snooze_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolved_reason", sa.String(50), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_threads_waiting_since", "threads", ["waiting_since"])

    # 2. emails
    op.create_table(
        "emails",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "thread_id",
            UUID(as_uuid=True),
            sa.ForeignKey("threads.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("external_message_id", sa.String(255), nullable=True, unique=True),
        sa.Column("sender_email", sa.String(320), nullable=False),
        sa.Column("to_emails", JSONB, nullable=True),
        sa.Column("subject", sa.Text, nullable=True),
        sa.Column("body", sa.Text, nullable=False, server_default=""),
        sa.Column("received_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("direction", enum["email_direction"], nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_emails_thread_id", "emails", ["thread_id"])
    op.create_index("ix_emails_thread_received", "emails", ["thread_id", "received_at"])

    # 3. follow_up_suggestions
    op.create_table(
        "follow_up_suggestions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "thread_id",
            UUID(as_uuid=True),
            sa.ForeignKey("threads.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("suggested_action", enum["follow_up_action"], nullable=False, server_default="follow_up"),
        sa.Column("draft_subject", sa.Text, nullable=False),
        sa.Column("draft_body", sa.Text, nullable=False),
        sa.Column("tone", enum["follow_up_tone"], nullable=False, server_default="professional"),
        sa.Column("ai_model_used", sa.String(100), nullable=True),
        sa.Column("ai_reasoning", sa.Text, nullable=True),
        sa.Column("status", enum["suggestion_status"], nullable=False, server_default="pending"),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text, nullable=True),
        sa.Column("user_edited_subject", sa.Text, nullable=True),
        sa.Column("user_edited_body", sa.Text, nullable=True),
        sa.Column("was_edited", sa.Boolean, nullable=False, server_default=sa.text("false")),
        *_timestamps(),
    )
    op.create_index("ix_follow_up_suggestions_thread_id", "follow_up_suggestions", ["thread_id"])
    op.create_index(
        "uq_follow_up_pending_thread",
        "follow_up_suggestions",
        ["thread_id"],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
    )

    # 4. task_suggestions
    op.create_table(
        "task_suggestions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "email_id",
            UUID(as_uuid=True),
            sa.ForeignKey("emails.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("why", sa.Text, nullable=True),
        sa.Column("suggested_owner_email", sa.String(320), nullable=True),
        sa.Column("suggested_due_date", sa.Date, nullable=True),
        sa.Column("priority", enum["task_priority"], nullable=False, server_default="med"),
        sa.Column("status", enum["suggestion_status"], nullable=False, server_default="pending"),
        *_timestamps(),
    )

    # 5. tasks
    op.create_table(
        "tasks",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("status", enum["task_status"], nullable=False, server_default="todo"),
        sa.Column("priority", enum["task_priority"], nullable=False, server_default="med"),
        sa.Column("due_date", sa.Date, nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "suggestion_id",
            UUID(as_uuid=True),
            sa.ForeignKey("task_suggestions.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "email_id",
            UUID(as_uuid=True),
            sa.ForeignKey("emails.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("is_scheduled", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("scheduled_start", sa.DateTime(timezone=True), nullable=True),
        sa.Column("scheduled_end", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_tasks_status", "tasks", ["status"])

    # 6. decisions
    op.create_table(
        "decisions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("decision", sa.Text, nullable=False),
        sa.Column("rationale", sa.Text, nullable=True),
        sa.Column("context", sa.Text, nullable=True),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("project_id", UUID(as_uuid=True), nullable=True),
        sa.Column("source", sa.String(50), nullable=False, server_default="manual"),
        sa.Column("source_reference", sa.Text, nullable=True),
        sa.Column("supersedes_id", UUID(as_uuid=True), sa.ForeignKey("decisions.id"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_decisions_project_id", "decisions", ["project_id"])
    op.create_index("ix_decisions_supersedes_id", "decisions", ["supersedes_id"])

    # 7. push_subscriptions
    op.create_table(
        "push_subscriptions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("endpoint", sa.Text, nullable=False, unique=True),
        sa.Column("keys", JSONB, nullable=False),
        sa.Column("user_agent", sa.Text, nullable=True),
        sa.Column("device_name", sa.String(255), nullable=True),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )
    op.create_index("ix_push_subscriptions_is_active", "push_subscriptions", ["is_active"])

    # 8. notifications
    op.create_table(
        "notifications",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("type", enum["notification_type"], nullable=False),
        sa.Column("title", sa.Text, nullable=False),
        sa.Column("body", sa.Text, nullable=False),
        sa.Column("link", sa.Text, nullable=True),
        sa.Column("tag", sa.String(255), nullable=True),
        sa.Column("related_entity_type", sa.String(50), nullable=True),
        sa.Column("related_entity_id", UUID(as_uuid=True), nullable=True),
        sa.Column("read", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("push_sent", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("push_sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("push_error", sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_notifications_unread", "notifications", ["read", "created_at"])

    # 9. audit_log
    op.create_table(
        "audit_log",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("entity_type", sa.String(50), nullable=False),
        sa.Column("entity_id", UUID(as_uuid=True), nullable=False),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("actor", enum["audit_actor"], nullable=False, server_default="user"),
        sa.Column("previous_state", JSONB, nullable=True),
        sa.Column("new_state", JSONB, nullable=True),
        sa.Column("meta", JSONB, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_audit_log_entity_id", "audit_log", ["entity_id"])


def downgrade() -> None:
    # Drop tables in reverse dependency order
    op.drop_table("audit_log")
    op.drop_table("notifications")
    op.drop_table("push_subscriptions")
    op.drop_table("decisions")
    op.drop_table("tasks")
    op.drop_table("task_suggestions")
    op.drop_table("follow_up_suggestions")
    op.drop_table("emails")
    op.drop_table("threads")

    for name in reversed(list(_ENUMS)):
        sa.Enum(name=name).drop(op.get_bind(), checkfirst=True)
