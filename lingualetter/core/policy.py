"""Admin role policy."""

from typing import Protocol

from lingualetter.core.config import settings


class AdminPolicy(Protocol):
    """Decides whether an email address is granted the ADMIN role."""

    def is_admin(self, email: str) -> bool: ...


class StaticAdminPolicy:
    """Allow-list of admin emails, read from settings by default."""

    def __init__(self, emails: list[str] | None = None) -> None:
        source = settings.admin_email_list if emails is None else emails
        self._emails = frozenset(e.strip().lower() for e in source)

    def is_admin(self, email: str) -> bool:
        return email.strip().lower() in self._emails


def get_admin_policy() -> AdminPolicy:
    return StaticAdminPolicy()
