"""Tests for daily content generation and newsletter dispatch.

Covers:
- generate_content: stores article and moves pointer; failures keep the old pointer
- dispatch_newsletter: partial failures, skipped when no article, inactive subscribers excluded
- dispatch_newsletter: recipient snapshot survives a mid-batch unsubscribe, bounded concurrency
- ContentGenerator output parsing
"""

import asyncio
import json
from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from lingualetter.core.exceptions import UpstreamProviderError
from lingualetter.models.article import Article, DispatchPointer
from lingualetter.models.newsletter_subscriber import NewsletterSubscriber
from lingualetter.services.content_service import ContentGenerator
from lingualetter.services.dispatch_service import DispatchService
from lingualetter.services.subscription_service import SubscriptionService
from tests.conftest import ARTICLE_FIELDS


def _generator(result: dict[str, str] | Exception) -> MagicMock:
    generator = MagicMock(spec=ContentGenerator)
    if isinstance(result, Exception):
        generator.generate = AsyncMock(side_effect=result)
    else:
        generator.generate = AsyncMock(return_value=result)
    return generator


class TestGenerateContent:
    """Article generation job."""

    async def test_first_article_creates_pointer(
        self, db_session: AsyncSession, mock_mailer: MagicMock
    ) -> None:
        service = DispatchService(
            db_session, email_service=mock_mailer, generator=_generator(ARTICLE_FIELDS)
        )

        article = await service.generate_content()

        assert article is not None
        assert article.trend_topic == ARTICLE_FIELDS["trend_topic"]
        latest = await service.latest_article()
        assert latest is not None
        assert latest.id == article.id

    async def test_new_article_moves_pointer(
        self,
        db_session: AsyncSession,
        mock_mailer: MagicMock,
        article_factory: Callable[..., Any],
    ) -> None:
        """A later article replaces the previous one as latest; old articles stay."""
        old = await article_factory(trend_topic="어제의 주제")
        service = DispatchService(
            db_session, email_service=mock_mailer, generator=_generator(ARTICLE_FIELDS)
        )

        new = await service.generate_content()

        assert new is not None
        latest = await service.latest_article()
        assert latest is not None
        assert latest.id == new.id != old.id
        assert await db_session.scalar(select(func.count()).select_from(Article)) == 2
        assert await db_session.scalar(select(func.count()).select_from(DispatchPointer)) == 1

    async def test_failure_keeps_previous_article(
        self,
        db_session: AsyncSession,
        mock_mailer: MagicMock,
        article_factory: Callable[..., Any],
    ) -> None:
        """An LLM failure leaves the pointer on yesterday's article."""
        old = await article_factory()
        service = DispatchService(
            db_session,
            email_service=mock_mailer,
            generator=_generator(UpstreamProviderError("openai")),
        )

        assert await service.generate_content() is None

        latest = await service.latest_article()
        assert latest is not None
        assert latest.id == old.id


class TestDispatchNewsletter:
    """Newsletter fan-out job."""

    async def test_skipped_without_article(
        self,
        db_session: AsyncSession,
        mock_mailer: MagicMock,
        subscriber_factory: Callable[..., Any],
    ) -> None:
        await subscriber_factory()

        result = await DispatchService(db_session, email_service=mock_mailer).dispatch_newsletter()

        assert result.skipped is True
        assert result.total_count == 0
        mock_mailer.send_newsletter_email.assert_not_awaited()

    async def test_partial_failure_does_not_abort_batch(
        self,
        db_session: AsyncSession,
        mock_mailer: MagicMock,
        subscriber_factory: Callable[..., Any],
        article_factory: Callable[..., Any],
    ) -> None:
        """With three subscribers and the second failing, the other two still get mail."""
        article = await article_factory()
        for email in ("one@example.com", "two@example.com", "three@example.com"):
            await subscriber_factory(email=email)

        async def _send(to_email: str, _article: Article, _token: str) -> str:
            if to_email == "two@example.com":
                raise UpstreamProviderError("resend")
            return "email-id"

        mock_mailer.send_newsletter_email.side_effect = _send

        result = await DispatchService(db_session, email_service=mock_mailer).dispatch_newsletter()

        assert result.skipped is False
        assert result.article_id == article.id
        assert result.total_count == 3
        assert result.success_count == 2
        attempted = [c.args[0] for c in mock_mailer.send_newsletter_email.await_args_list]
        assert sorted(attempted) == ["one@example.com", "three@example.com", "two@example.com"]

    async def test_only_active_subscribers_receive(
        self,
        db_session: AsyncSession,
        mock_mailer: MagicMock,
        subscriber_factory: Callable[..., Any],
        article_factory: Callable[..., Any],
    ) -> None:
        """Pending and unsubscribed addresses are excluded."""
        await article_factory()
        active = await subscriber_factory(email="active@example.com")
        await subscriber_factory(email="pending@example.com", is_active=False)

        result = await DispatchService(
            db_session, email_service=mock_mailer, concurrency=1
        ).dispatch_newsletter()

        assert (result.success_count, result.total_count) == (1, 1)
        to_email, sent_article, token = mock_mailer.send_newsletter_email.await_args.args
        assert to_email == "active@example.com"
        assert sent_article.trend_topic == ARTICLE_FIELDS["trend_topic"]
        assert token == active.unsubscribe_token

    async def test_unsubscribe_during_batch_keeps_snapshot(
        self,
        db_session: AsyncSession,
        session_factory: async_sessionmaker[AsyncSession],
        mock_mailer: MagicMock,
        subscriber_factory: Callable[..., Any],
        article_factory: Callable[..., Any],
    ) -> None:
        """Recipients are fixed at batch start; a later unsubscribe is still sent and counted."""
        await article_factory()
        subscribers = [
            await subscriber_factory(email=email)
            for email in ("one@example.com", "two@example.com", "three@example.com")
        ]
        leaving_id = subscribers[-1].id
        leaving_token = subscribers[-1].unsubscribe_token

        async def _send(to_email: str, _article: Article, _token: str) -> str:
            if mock_mailer.send_newsletter_email.await_count == 1:
                async with session_factory() as other:
                    await SubscriptionService(
                        other, email_service=mock_mailer
                    ).unsubscribe_by_token(leaving_token)
            return "email-id"

        mock_mailer.send_newsletter_email.side_effect = _send

        result = await DispatchService(
            db_session, email_service=mock_mailer, concurrency=1
        ).dispatch_newsletter()

        assert (result.success_count, result.total_count) == (3, 3)
        assert mock_mailer.send_newsletter_email.await_count == 3
        is_active = await db_session.scalar(
            select(NewsletterSubscriber.is_active).where(NewsletterSubscriber.id == leaving_id)
        )
        assert is_active is False

    async def test_sends_bounded_by_concurrency(
        self,
        db_session: AsyncSession,
        mock_mailer: MagicMock,
        subscriber_factory: Callable[..., Any],
        article_factory: Callable[..., Any],
    ) -> None:
        """No more than `concurrency` sends are in flight at once."""
        await article_factory()
        for i in range(6):
            await subscriber_factory(email=f"reader{i}@example.com")
        in_flight = 0
        peak = 0

        async def _send(to_email: str, _article: Article, _token: str) -> str:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return "email-id"

        mock_mailer.send_newsletter_email.side_effect = _send

        result = await DispatchService(
            db_session, email_service=mock_mailer, concurrency=2
        ).dispatch_newsletter()

        assert (result.success_count, result.total_count) == (6, 6)
        assert peak == 2

    async def test_empty_subscriber_list(
        self,
        db_session: AsyncSession,
        mock_mailer: MagicMock,
        article_factory: Callable[..., Any],
    ) -> None:
        await article_factory()

        result = await DispatchService(db_session, email_service=mock_mailer).dispatch_newsletter()

        assert (result.success_count, result.total_count, result.skipped) == (0, 0, False)


class TestContentGenerator:
    """Parsing of LLM responses."""

    @staticmethod
    def _llm(content: str) -> MagicMock:
        llm = MagicMock()
        llm.ainvoke = AsyncMock(return_value=MagicMock(content=content))
        return llm

    async def test_parses_fenced_json(self) -> None:
        content = f"```json\n{json.dumps(ARTICLE_FIELDS, ensure_ascii=False)}\n```"

        fields = await ContentGenerator(llm=self._llm(content)).generate()

        assert fields == ARTICLE_FIELDS

    async def test_missing_field_is_upstream_error(self) -> None:
        partial = {k: v for k, v in ARTICLE_FIELDS.items() if k != "reason"}

        with pytest.raises(UpstreamProviderError, match="reason"):
            await ContentGenerator(llm=self._llm(json.dumps(partial))).generate()

    async def test_invalid_json_is_upstream_error(self) -> None:
        with pytest.raises(UpstreamProviderError):
            await ContentGenerator(llm=self._llm("not json at all")).generate()

    async def test_llm_exception_is_upstream_error(self) -> None:
        llm = MagicMock()
        llm.ainvoke = AsyncMock(side_effect=RuntimeError("timeout"))

        with pytest.raises(UpstreamProviderError) as exc_info:
            await ContentGenerator(llm=llm).generate()
        assert exc_info.value.provider == "openai"
