"""Pytest configuration and fixtures for the LinguaLetter API test suite.

Provides:
- Fresh in-memory SQLite database per test (aiosqlite, shared StaticPool connection)
- Mock Redis (fakeredis)
- Mock mailer (no Resend calls)
- Disabled rate limiting
- Real signed session tokens for users created in the test database
- Model factory fixtures for User, UserConsent, NewsletterSubscriber and Article
"""

from collections.abc import AsyncGenerator, Callable, Generator
from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import fakeredis.aioredis
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from lingualetter.core.config import settings
from lingualetter.core.database import get_async_session
from lingualetter.core.deps import get_email_service, get_redis
from lingualetter.core.rate_limit import limiter
from lingualetter.core.security import create_session_token, generate_token
from lingualetter.main import app
from lingualetter.models.article import LATEST_ARTICLE_POINTER, Article, DispatchPointer
from lingualetter.models.base import Base
from lingualetter.models.newsletter_subscriber import NewsletterSubscriber
from lingualetter.models.user import AuthProvider, User, UserRole
from lingualetter.models.user_consent import UserConsent
from lingualetter.services.email_service import EmailService

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
TEST_USER_EMAIL = "learner@example.com"
TEST_ADMIN_EMAIL = "admin@example.com"
TEST_GOOGLE_ID = "google-123"

# ---------------------------------------------------------------------------
# Disable rate limiting globally for tests
# ---------------------------------------------------------------------------
limiter.enabled = False


# ---------------------------------------------------------------------------
# Per-test database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def test_engine() -> AsyncGenerator[Any, None]:
    """In-memory SQLite engine with all tables created.

    StaticPool keeps a single connection so every session sees the same
    in-memory database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(test_engine: Any) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Session for test setup (factory fixtures) and direct service tests."""
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# Fake Redis and mailer
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_redis() -> fakeredis.aioredis.FakeRedis:
    """Provide a fresh fakeredis instance per test."""
    return fakeredis.aioredis.FakeRedis(decode_responses=True)


@pytest.fixture
def mock_mailer() -> MagicMock:
    """EmailService double whose send methods succeed by default."""
    mailer = MagicMock(spec=EmailService)
    mailer.send = AsyncMock(return_value="email-id")
    mailer.send_confirmation_email = AsyncMock(return_value="email-id")
    mailer.send_newsletter_email = AsyncMock(return_value="email-id")
    return mailer


# ---------------------------------------------------------------------------
# HTTP client (overrides DB, Redis, mailer; auth goes through real tokens)
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
    fake_redis: fakeredis.aioredis.FakeRedis,
    mock_mailer: MagicMock,
) -> AsyncGenerator[AsyncClient, None]:
    """Async test client with all external dependencies overridden."""

    async def _override_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as s:
            yield s

    async def _override_redis() -> AsyncGenerator[fakeredis.aioredis.FakeRedis, None]:
        yield fake_redis

    app.dependency_overrides[get_async_session] = _override_session
    app.dependency_overrides[get_redis] = _override_redis
    app.dependency_overrides[get_email_service] = lambda: mock_mailer

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture
def admin_emails(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    """Grant the ADMIN role to TEST_ADMIN_EMAIL."""
    monkeypatch.setattr("lingualetter.core.config.settings.admin_emails", TEST_ADMIN_EMAIL)
    return [TEST_ADMIN_EMAIL]


# ---------------------------------------------------------------------------
# Model Factories
# ---------------------------------------------------------------------------


@pytest.fixture
def user_factory(db_session: AsyncSession) -> Callable[..., Any]:
    """Factory that creates User instances in the test database."""

    async def _create(
        *,
        email: str = TEST_USER_EMAIL,
        provider: AuthProvider = AuthProvider.GOOGLE,
        external_id: str = TEST_GOOGLE_ID,
        role: UserRole = UserRole.USER,
        name: str | None = "Test Learner",
    ) -> User:
        user = User(
            email=email,
            google_id=external_id if provider is AuthProvider.GOOGLE else None,
            kakao_id=external_id if provider is AuthProvider.KAKAO else None,
            name=name,
            provider=provider,
            role=role,
            last_login=datetime.now(UTC),
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _create


@pytest_asyncio.fixture
async def user(user_factory: Callable[..., Any]) -> User:
    """Default USER-role user."""
    return await user_factory()


@pytest.fixture
def consent_factory(db_session: AsyncSession) -> Callable[..., Any]:
    """Factory that records a consent for a user, accepting the current versions by default."""

    async def _create(user: User, **overrides: Any) -> UserConsent:
        values: dict[str, Any] = {
            "terms_accepted": True,
            "privacy_accepted": True,
            "newsletter_opt_in": False,
            "terms_version": settings.terms_version,
            "privacy_version": settings.privacy_version,
            "newsletter_version": settings.newsletter_version,
        }
        values.update(overrides)
        consent = UserConsent(user_id=user.id, **values)
        db_session.add(consent)
        await db_session.commit()
        return consent

    return _create


@pytest_asyncio.fixture
async def admin(
    user_factory: Callable[..., Any], consent_factory: Callable[..., Any]
) -> User:
    """ADMIN-role user who has accepted the current policies."""
    user = await user_factory(
        email=TEST_ADMIN_EMAIL, external_id="google-admin", role=UserRole.ADMIN
    )
    await consent_factory(user)
    return user


def token_for(user: User, *, now: datetime | None = None) -> str:
    """Sign a session token for ``user`` the same way login does."""
    return create_session_token(
        {
            "sub": str(user.id),
            "email": user.email,
            "name": user.name,
            "picture": user.picture,
            "provider": user.provider.value,
            "role": user.role.value,
        },
        now=now,
    )


@pytest.fixture
def auth_token(user: User) -> str:
    return token_for(user)


@pytest.fixture
def auth_headers(auth_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {auth_token}"}


@pytest.fixture
def admin_headers(admin: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {token_for(admin)}"}


@pytest.fixture
def subscriber_factory(db_session: AsyncSession) -> Callable[..., Any]:
    """Factory that creates NewsletterSubscriber rows in a given state."""

    async def _create(
        *,
        email: str = "reader@example.com",
        is_active: bool = True,
        confirmed_at: datetime | None = None,
    ) -> NewsletterSubscriber:
        now = datetime.now(UTC)
        subscriber = NewsletterSubscriber(
            email=email,
            confirm_token=generate_token(),
            unsubscribe_token=generate_token(),
            is_active=is_active,
            subscribed_at=now,
            confirmed_at=confirmed_at or (now if is_active else None),
        )
        db_session.add(subscriber)
        await db_session.commit()
        await db_session.refresh(subscriber)
        return subscriber

    return _create


ARTICLE_FIELDS: dict[str, str] = {
    "trend_topic": "정치색 논란",
    "korean_article": "한 아이돌이 게시물 때문에 정치색 논란에 휩싸였습니다.",
    "english_translation": "An idol faced backlash over a post seen as political.",
    "expression": "정치색",
    "literal_translation": "political color",
    "idiomatic_translation": "political leaning",
    "reason": "'Color' is not used metaphorically for political views in English.",
}


@pytest.fixture
def article_factory(db_session: AsyncSession) -> Callable[..., Any]:
    """Factory that creates an Article and optionally points the dispatch at it."""

    async def _create(*, set_latest: bool = True, **overrides: str) -> Article:
        article = Article(**{**ARTICLE_FIELDS, **overrides})
        db_session.add(article)
        await db_session.flush()
        if set_latest:
            db_session.add(DispatchPointer(name=LATEST_ARTICLE_POINTER, article_id=article.id))
        await db_session.commit()
        await db_session.refresh(article)
        return article

    return _create


@pytest.fixture
def resend_configured(monkeypatch: pytest.MonkeyPatch) -> str:
    key = "re_test_key"
    monkeypatch.setattr("lingualetter.core.config.settings.resend_api_key", key)
    return key


@pytest.fixture
def mock_async_session_maker(
    session_factory: async_sessionmaker[AsyncSession],
) -> Generator[None, None, None]:
    """Patch async_session_maker so Celery task bodies use the test database."""
    with (
        patch("lingualetter.workers.tasks.newsletter.async_session_maker", session_factory),
        patch("lingualetter.workers.tasks.maintenance.async_session_maker", session_factory),
    ):
        yield
