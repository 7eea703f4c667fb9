"""Pydantic schemas for consent tracking."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from lingualetter.schemas.common import BaseSchema


class PolicyVersions(BaseSchema):
    """The policy versions currently in force."""

    terms: str
    privacy: str
    newsletter: str


class ConsentRecordResponse(BaseSchema):
    """A stored consent record."""

    id: UUID
    terms_accepted: bool
    privacy_accepted: bool
    newsletter_opt_in: bool
    terms_version: str
    privacy_version: str
    newsletter_version: str
    created_at: datetime


class ConsentInfo(BaseSchema):
    """Whether the user must (re)affirm the current policies."""

    required: bool = Field(..., description="True when the user must accept current policies")
    current_versions: PolicyVersions
    latest: ConsentRecordResponse | None = None


class ConsentCreate(BaseSchema):
    """Consent submission. Versions default to the ones currently in force."""

    terms_accepted: bool
    privacy_accepted: bool
    newsletter_opt_in: bool = False
    terms_version: str | None = Field(default=None, max_length=32)
    privacy_version: str | None = Field(default=None, max_length=32)
    newsletter_version: str | None = Field(default=None, max_length=32)
