from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.core.repositories.decisions import DecisionRepository
from src.core.repositories.follow_ups import FollowUpRepository
from src.core.repositories.notifications import NotificationRepository, PushSubscriptionRepository
from src.core.repositories.tasks import TaskRepository, TaskSuggestionRepository
from src.core.repositories.threads import ThreadRepository


@dataclass(frozen=True)
class Repositories:
    threads: ThreadRepository
    follow_ups: FollowUpRepository
    decisions: DecisionRepository
    tasks: TaskRepository
    task_suggestions: TaskSuggestionRepository
    notifications: NotificationRepository
    subscriptions: PushSubscriptionRepository


def build_repositories(session_factory: async_sessionmaker[AsyncSession]) -> Repositories:
    return Repositories(
        threads=ThreadRepository(session_factory),
        follow_ups=FollowUpRepository(session_factory),
        decisions=DecisionRepository(session_factory),
        tasks=TaskRepository(session_factory),
        task_suggestions=TaskSuggestionRepository(session_factory),
        notifications=NotificationRepository(session_factory),
        subscriptions=PushSubscriptionRepository(session_factory),
    )


__all__ = [
    "DecisionRepository",
    "FollowUpRepository",
    "NotificationRepository",
    "PushSubscriptionRepository",
    "Repositories",
    "TaskRepository",
    "TaskSuggestionRepository",
    "ThreadRepository",
    "build_repositories",
]
