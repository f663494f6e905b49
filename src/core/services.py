"""Wiring: one place that turns a session factory and settings into services."""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.core.config import Settings
from src.core.decisions import DecisionService
from src.core.follow_ups import FollowUpService
from src.core.llm.backends import GenerationBackend, get_backend
from src.core.notifications import NotificationService
from src.core.push import PushDispatcher, PushSender, WebPushSender
from src.core.repositories import Repositories, build_repositories
from src.core.task_manager import TaskService
from src.core.threads import ThreadService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Services:
    repositories: Repositories
    threads: ThreadService
    follow_ups: FollowUpService
    decisions: DecisionService
    tasks: TaskService
    notifications: NotificationService


def build_push_sender(settings: Settings) -> PushSender | None:
    if not settings.vapid_configured:
        logger.warning("VAPID keys not configured - push notifications disabled")
        return None
    return WebPushSender(settings.vapid_private_key, settings.vapid_subject)


def build_services(
    session_factory: async_sessionmaker[AsyncSession],
    settings: Settings,
    backend: GenerationBackend | None = None,
    push_sender: PushSender | None = None,
) -> Services:
    repos = build_repositories(session_factory)
    backend = backend or get_backend(settings)
    push_sender = push_sender or build_push_sender(settings)
    dispatcher = PushDispatcher(repos.subscriptions, push_sender) if push_sender else None

    return Services(
        repositories=repos,
        threads=ThreadService(repos.threads),
        follow_ups=FollowUpService(repos.threads, repos.follow_ups, backend),
        decisions=DecisionService(repos.decisions),
        tasks=TaskService(repos.tasks, repos.task_suggestions),
        notifications=NotificationService(repos.notifications, repos.subscriptions, dispatcher),
    )
