"""Newsletter subscriber model."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from lingualetter.models.base import Base


class NewsletterSubscriber(Base):
    """One row per email address.

    State is derived from ``is_active`` and ``confirmed_at``:

    - Pending: inactive, never confirmed since the last subscribe
    - Active: ``is_active`` is True
    - Inactive: inactive after having been confirmed
    """

    __tablename__ = "newsletter_subscribers"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    confirm_token: Mapped[str | None] = mapped_column(String(128), unique=True, nullable=True)
    unsubscribe_token: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    subscribed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def is_pending(self) -> bool:
        return not self.is_active and self.confirmed_at is None

    def __repr__(self) -> str:
        state = "active" if self.is_active else ("pending" if self.is_pending else "inactive")
        return f"<NewsletterSubscriber {self.email} ({state})>"
