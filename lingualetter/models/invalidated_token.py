"""Denylist of session tokens revoked before their natural expiry."""

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from lingualetter.models.base import Base


class RevocationReason(str, enum.Enum):
    """Why a token was revoked."""

    LOGOUT = "logout"
    ACCOUNT_DELETED = "account_deleted"


class InvalidatedToken(Base):
    """A revoked session token.

    ``user_id`` is deliberately not a foreign key: entries must outlive the
    user when an account is deleted. ``expires_at`` mirrors the token's own
    ``exp`` so entries can be purged once the token would have died anyway.
    """

    __tablename__ = "invalidated_tokens"

    token_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False, index=True)
    reason: Mapped[RevocationReason] = mapped_column(
        Enum(RevocationReason, name="revocation_reason"),
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )

    def __repr__(self) -> str:
        return f"<InvalidatedToken {self.token_id} ({self.reason.value})>"
