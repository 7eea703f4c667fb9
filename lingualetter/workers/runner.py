"""Bridge from synchronous Celery tasks to async service code."""

import asyncio
from collections.abc import Coroutine
from typing import Any, TypeVar

from lingualetter.core.database import engine

T = TypeVar("T")


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run an async coroutine in a fresh event loop, disposing DB connections after.

    asyncpg connections are bound to the loop that created them, so pooled
    connections from a previous (closed) loop must not be reused.
    """
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.run_until_complete(engine.dispose())
        loop.close()
