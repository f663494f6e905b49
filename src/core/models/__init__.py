from src.core.models.audit import AuditLog
from src.core.models.base import Base
from src.core.models.decision import Decision
from src.core.models.email import Email
from src.core.models.enums import (
    AuditActor,
    EmailDirection,
    FollowUpAction,
    FollowUpTone,
    NotificationType,
    SuggestionStatus,
    TaskPriority,
    TaskStatus,
    ThreadStatus,
)
from src.core.models.follow_up import FollowUpSuggestion
from src.core.models.notification import Notification
from src.core.models.push_subscription import PushSubscription
from src.core.models.task import Task
from src.core.models.task_suggestion import TaskSuggestion
from src.core.models.thread import Thread

__all__ = [
    "AuditActor",
    "AuditLog",
    "Base",
    "Decision",
    "Email",
    "EmailDirection",
    "FollowUpAction",
    "FollowUpSuggestion",
    "FollowUpTone",
    "Notification",
    "NotificationType",
    "PushSubscription",
    "SuggestionStatus",
    "Task",
    "TaskPriority",
    "TaskStatus",
    "TaskSuggestion",
    "Thread",
    "ThreadStatus",
]
