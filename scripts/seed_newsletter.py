"""Seed script for local newsletter testing.

Creates:
- 1 admin user (first ADMIN_EMAILS entry) with a stats row and current consent
- 3 subscribers: active, pending and unsubscribed
- 1 sample article set as the latest article

Usage:
    uv run python -m scripts.seed_newsletter
"""

import asyncio
from datetime import UTC, datetime, timedelta

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from lingualetter.core.config import settings
from lingualetter.core.database import async_session_maker
from lingualetter.core.security import create_session_token, generate_token
from lingualetter.models.article import LATEST_ARTICLE_POINTER, Article, DispatchPointer
from lingualetter.models.newsletter_subscriber import NewsletterSubscriber
from lingualetter.models.user import AuthProvider, User, UserRole
from lingualetter.models.user_consent import UserConsent
from lingualetter.models.user_stats import UserStats

ADMIN_EMAIL = (settings.admin_email_list or ["admin@lingualetter.local"])[0]
SUBSCRIBERS = {
    "active@lingualetter.local": "active",
    "pending@lingualetter.local": "pending",
    "inactive@lingualetter.local": "inactive",
}

SAMPLE_ARTICLE = {
    "trend_topic": "눈치 게임",
    "korean_article": (
        "연말을 맞아 직장인들 사이에서 회식 자리 '눈치 게임'이 화제입니다. "
        "누가 먼저 자리를 뜰지 서로 눈치를 보는 모습이 온라인에서 공감을 얻고 있습니다."
    ),
    "english_translation": (
        "As the year ends, the 'nunchi game' at office dinners has become a hot topic. "
        "Workers quietly reading the room over who leaves first has struck a chord online."
    ),
    "expression": "눈치를 보다",
    "literal_translation": "to look at the eye-measure",
    "idiomatic_translation": "to read the room",
    "reason": "눈치 has no direct English equivalent; 'read the room' carries the same social sense.",
}


async def seed(session: AsyncSession) -> tuple[User, Article]:
    now = datetime.now(UTC)

    # ── Cleanup existing seed data ──────────────────────────────────────
    await session.execute(
        delete(NewsletterSubscriber).where(NewsletterSubscriber.email.in_(SUBSCRIBERS))
    )
    await session.execute(
        delete(DispatchPointer).where(DispatchPointer.name == LATEST_ARTICLE_POINTER)
    )
    existing = (
        await session.execute(select(User).where(User.email == ADMIN_EMAIL))
    ).scalar_one_or_none()
    if existing is not None:
        await session.execute(delete(UserConsent).where(UserConsent.user_id == existing.id))
        await session.execute(delete(UserStats).where(UserStats.user_id == existing.id))
        await session.delete(existing)
    await session.flush()

    # ── Admin user ──────────────────────────────────────────────────────
    admin = User(
        email=ADMIN_EMAIL,
        google_id="seed-google-admin",
        name="Seed Admin",
        provider=AuthProvider.GOOGLE,
        role=UserRole.ADMIN,
        last_login=now,
    )
    session.add(admin)
    await session.flush()
    session.add(UserStats(user_id=admin.id))
    session.add(
        UserConsent(
            user_id=admin.id,
            terms_accepted=True,
            privacy_accepted=True,
            newsletter_opt_in=True,
            terms_version=settings.terms_version,
            privacy_version=settings.privacy_version,
            newsletter_version=settings.newsletter_version,
        )
    )

    # ── Subscribers in each state ───────────────────────────────────────
    for email, state in SUBSCRIBERS.items():
        session.add(
            NewsletterSubscriber(
                email=email,
                confirm_token=generate_token(),
                unsubscribe_token=generate_token(),
                is_active=state == "active",
                subscribed_at=now - timedelta(days=3),
                confirmed_at=None if state == "pending" else now - timedelta(days=2),
            )
        )

    # ── Latest article ──────────────────────────────────────────────────
    article = Article(**SAMPLE_ARTICLE)
    session.add(article)
    await session.flush()
    session.add(DispatchPointer(name=LATEST_ARTICLE_POINTER, article_id=article.id))

    await session.commit()
    return admin, article


async def main() -> None:
    async with async_session_maker() as session:
        admin, article = await seed(session)

    token = create_session_token({
        "sub": str(admin.id),
        "email": admin.email,
        "name": admin.name,
        "picture": None,
        "provider": admin.provider.value,
        "role": admin.role.value,
    })

    print("=" * 60)
    print("  Newsletter seed data created successfully!")
    print("=" * 60)
    print()
    print(f"  Admin user:          {admin.email} ({admin.id})")
    print(f"  Latest article:      {article.id}")
    print()
    print("  Subscribers:")
    for email, state in SUBSCRIBERS.items():
        print(f"    {state:<10} {email}")
    print()
    print("  Admin bearer token (valid 7 days):")
    print(f"    {token}")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
