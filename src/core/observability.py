"""Langfuse observability: tracing for generation backend calls.

When LANGFUSE_PUBLIC_KEY is not set, provides a no-op `observe` decorator
so the rest of the codebase doesn't need conditional imports.
"""

import asyncio
import logging
from collections.abc import Callable
from functools import wraps

from src.core.config import settings

logger = logging.getLogger(__name__)

# Suppress Langfuse SDK's repeated WARNING about missing keys
logging.getLogger("langfuse").setLevel(logging.ERROR)


if settings.langfuse_public_key:
    from langfuse import observe
else:

    def observe(name: str = "", **kwargs) -> Callable:  # type: ignore[misc]
        """No-op decorator when Langfuse is not configured."""

        def decorator(fn: Callable) -> Callable:
            if asyncio.iscoroutinefunction(fn):

                @wraps(fn)
                async def async_wrapper(*args, **kw):
                    return await fn(*args, **kw)

                return async_wrapper

            @wraps(fn)
            def sync_wrapper(*args, **kw):
                return fn(*args, **kw)

            return sync_wrapper

        return decorator


__all__ = ["observe"]
