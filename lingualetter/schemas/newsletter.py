"""Pydantic schemas for newsletter subscription and dispatch."""

from uuid import UUID

from pydantic import Field

from lingualetter.schemas.common import BaseSchema


class SubscribeRequest(BaseSchema):
    """Subscribe an email address."""

    email: str = Field(..., max_length=255)


class UnsubscribeRequest(BaseSchema):
    """Unsubscribe by email address."""

    email: str = Field(..., max_length=255)


class UnsubscribeTokenRequest(BaseSchema):
    """Unsubscribe with the token embedded in a newsletter email."""

    token: str = Field(..., min_length=1, max_length=128)


class DispatchResultResponse(BaseSchema):
    """Outcome of a newsletter dispatch batch."""

    skipped: bool = False
    article_id: UUID | None = None
    success_count: int = 0
    total_count: int = 0


class GenerateResultResponse(BaseSchema):
    """Outcome of a content generation run."""

    success: bool
    article_id: UUID | None = None
    error: str | None = None
