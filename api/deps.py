"""Request-scoped accessors for services built in the app lifespan."""

from fastapi import Request

from src.core.decisions import DecisionService
from src.core.follow_ups import FollowUpService
from src.core.notifications import NotificationService
from src.core.task_manager import TaskService
from src.core.threads import ThreadService


def get_follow_up_service(request: Request) -> FollowUpService:
    return request.app.state.services.follow_ups


def get_thread_service(request: Request) -> ThreadService:
    return request.app.state.services.threads


def get_decision_service(request: Request) -> DecisionService:
    return request.app.state.services.decisions


def get_task_service(request: Request) -> TaskService:
    return request.app.state.services.tasks


def get_notification_service(request: Request) -> NotificationService:
    return request.app.state.services.notifications
