"""Dependency injection for FastAPI routes."""

from collections.abc import AsyncGenerator
from typing import Annotated

import redis.asyncio as aioredis
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

# Re-export auth dependencies for convenience
from lingualetter.core.auth import (
    AdminUser,
    BearerToken,
    ConsentedUser,
    CurrentUser,
    OptionalUser,
    get_bearer_token,
    get_current_user,
    get_optional_user,
    require_admin,
    require_consent,
)
from lingualetter.core.config import settings
from lingualetter.core.database import get_async_session
from lingualetter.services.email_service import EmailService

# Shared Redis connection pool
_redis_pool: aioredis.ConnectionPool | None = None


def _get_redis_pool() -> aioredis.ConnectionPool:
    global _redis_pool  # noqa: PLW0603
    if _redis_pool is None:
        _redis_pool = aioredis.ConnectionPool.from_url(
            str(settings.redis_url), decode_responses=True
        )
    return _redis_pool


async def get_redis() -> AsyncGenerator[aioredis.Redis, None]:
    """Yield a Redis client from the shared connection pool."""
    pool = _get_redis_pool()
    r = aioredis.Redis(connection_pool=pool)
    try:
        yield r
    finally:
        await r.aclose()


def get_email_service() -> EmailService:
    return EmailService()


# Database session dependency (shared with the auth dependencies within a request)
DBSession = Annotated[AsyncSession, Depends(get_async_session)]
Mailer = Annotated[EmailService, Depends(get_email_service)]


__all__ = [
    "AdminUser",
    "BearerToken",
    "ConsentedUser",
    "CurrentUser",
    "DBSession",
    "Mailer",
    "OptionalUser",
    "get_bearer_token",
    "get_current_user",
    "get_async_session",
    "get_email_service",
    "get_optional_user",
    "get_redis",
    "require_admin",
    "require_consent",
]
