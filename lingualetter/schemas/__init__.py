"""Pydantic schemas for request/response validation."""

from lingualetter.schemas.common import ActionResponse, ErrorResponse, HealthResponse

__all__ = [
    "ActionResponse",
    "HealthResponse",
    "ErrorResponse",
]
