import enum


class EmailDirection(str, enum.Enum):
    inbound = "inbound"
    outbound = "outbound"


class ThreadStatus(str, enum.Enum):
    active = "active"
    snoozed = "snoozed"
    resolved = "resolved"


class SuggestionStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class FollowUpAction(str, enum.Enum):
    follow_up = "follow_up"
    close_loop = "close_loop"
    escalate = "escalate"


class FollowUpTone(str, enum.Enum):
    professional = "professional"
    friendly = "friendly"
    urgent = "urgent"


class TaskStatus(str, enum.Enum):
    todo = "todo"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"


class TaskPriority(str, enum.Enum):
    low = "low"
    med = "med"
    high = "high"


class NotificationType(str, enum.Enum):
    task_suggestion = "task_suggestion"
    follow_up = "follow_up"
    waiting_on = "waiting_on"
    reminder = "reminder"
    test = "test"


class AuditActor(str, enum.Enum):
    user = "user"
    ai = "ai"
    system = "system"
