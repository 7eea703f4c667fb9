"""SQLAlchemy models."""

from lingualetter.models.article import LATEST_ARTICLE_POINTER, Article, DispatchPointer
from lingualetter.models.base import Base
from lingualetter.models.invalidated_token import InvalidatedToken, RevocationReason
from lingualetter.models.newsletter_subscriber import NewsletterSubscriber
from lingualetter.models.user import AuthProvider, User, UserRole
from lingualetter.models.user_consent import UserConsent
from lingualetter.models.user_stats import UserStats

__all__ = [
    # Base
    "Base",
    # Identity
    "User",
    "UserRole",
    "AuthProvider",
    "UserStats",
    "UserConsent",
    # Sessions
    "InvalidatedToken",
    "RevocationReason",
    # Newsletter
    "NewsletterSubscriber",
    "Article",
    "DispatchPointer",
    "LATEST_ARTICLE_POINTER",
]
