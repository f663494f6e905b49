"""Service container for worker processes."""

from functools import lru_cache

from src.core.config import settings
from src.core.db import async_session
from src.core.services import Services, build_services


@lru_cache(maxsize=1)
def get_services() -> Services:
    return build_services(async_session, settings)
