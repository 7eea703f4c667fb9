"""Append-only consent log."""

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lingualetter.models.base import Base

if TYPE_CHECKING:
    from lingualetter.models.user import User


class UserConsent(Base):
    """A snapshot of the policy versions a user accepted.

    Rows are never updated. The current state is the most recent row.
    """

    __tablename__ = "user_consents"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    terms_accepted: Mapped[bool] = mapped_column(Boolean, nullable=False)
    privacy_accepted: Mapped[bool] = mapped_column(Boolean, nullable=False)
    newsletter_opt_in: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    terms_version: Mapped[str] = mapped_column(String(32), nullable=False)
    privacy_version: Mapped[str] = mapped_column(String(32), nullable=False)
    newsletter_version: Mapped[str] = mapped_column(String(32), nullable=False)

    user: Mapped["User"] = relationship("User", back_populates="consents")

    __table_args__ = (Index("ix_user_consents_user_created", "user_id", "created_at"),)

    def __repr__(self) -> str:
        return (
            f"<UserConsent user={self.user_id} terms={self.terms_version} "
            f"privacy={self.privacy_version}>"
        )
