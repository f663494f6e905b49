"""Taskiq broker + scheduler for the waiting-on and push jobs."""

from taskiq import TaskiqScheduler
from taskiq.schedule_sources import LabelScheduleSource
from taskiq_redis import ListQueueBroker

from src.core.config import settings

broker = ListQueueBroker(url=settings.redis_url, queue_name="follow_up_engine")

scheduler = TaskiqScheduler(
    broker=broker,
    sources=[LabelScheduleSource(broker)],
)
