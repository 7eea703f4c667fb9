"""User model for newsletter readers and learners."""

import enum
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Enum, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lingualetter.models.base import Base

if TYPE_CHECKING:
    from lingualetter.models.user_consent import UserConsent
    from lingualetter.models.user_stats import UserStats


class UserRole(str, enum.Enum):
    """Application roles. Always derived from the admin policy at login."""

    USER = "USER"
    ADMIN = "ADMIN"


class AuthProvider(str, enum.Enum):
    """Supported OAuth providers."""

    GOOGLE = "google"
    KAKAO = "kakao"


class User(Base):
    """User resolved from an external OAuth profile."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    google_id: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    kakao_id: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)

    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    picture: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    provider: Mapped[AuthProvider] = mapped_column(
        Enum(AuthProvider, name="auth_provider"),
        nullable=False,
    )
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role"),
        default=UserRole.USER,
        nullable=False,
    )
    last_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    stats: Mapped["UserStats | None"] = relationship(
        "UserStats",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
        uselist=False,
    )
    consents: Mapped[list["UserConsent"]] = relationship(
        "UserConsent",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role.value})>"
