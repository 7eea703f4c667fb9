"""Daily content generation and newsletter fan-out."""

import asyncio
import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from lingualetter.core.config import settings
from lingualetter.models.article import LATEST_ARTICLE_POINTER, Article, DispatchPointer
from lingualetter.services.content_service import ContentGenerator
from lingualetter.services.email_service import EmailService
from lingualetter.services.subscription_service import SubscriptionService

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    """Counts from one newsletter batch. ``total_count`` is the snapshot size."""

    success_count: int = 0
    total_count: int = 0
    article_id: UUID | None = None
    skipped: bool = False


class DispatchService:
    """Runs the two daily newsletter jobs."""

    def __init__(
        self,
        db: AsyncSession,
        email_service: EmailService | None = None,
        generator: ContentGenerator | None = None,
        concurrency: int | None = None,
    ) -> None:
        self.db = db
        self.email_service = email_service or EmailService()
        self._generator = generator
        self.concurrency = max(1, concurrency or settings.newsletter_send_concurrency)

    @property
    def generator(self) -> ContentGenerator:
        if self._generator is None:
            self._generator = ContentGenerator()
        return self._generator

    async def _get_pointer(self) -> DispatchPointer | None:
        stmt = select(DispatchPointer).where(DispatchPointer.name == LATEST_ARTICLE_POINTER)
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def latest_article(self) -> Article | None:
        """Article the next dispatch will send, if any."""
        pointer = await self._get_pointer()
        if pointer is None:
            return None
        return await self.db.get(Article, pointer.article_id)

    async def generate_content(self) -> Article | None:
        """Generate today's article and move the latest-article pointer to it.

        Failures are logged and leave the pointer where it was.

        Returns:
            The stored article, or None if generation failed.
        """
        try:
            fields = await self.generator.generate()
        except Exception:
            logger.exception("Content generation failed; latest article unchanged")
            return None

        article = Article(**fields)
        self.db.add(article)
        await self.db.flush()

        pointer = await self._get_pointer()
        if pointer is None:
            self.db.add(DispatchPointer(name=LATEST_ARTICLE_POINTER, article_id=article.id))
        else:
            pointer.article_id = article.id

        try:
            await self.db.commit()
        except IntegrityError:
            # Pointer row created concurrently; store the article and update it
            await self.db.rollback()
            article = Article(**fields)
            self.db.add(article)
            await self.db.flush()
            pointer = await self._get_pointer()
            if pointer is None:
                raise
            pointer.article_id = article.id
            await self.db.commit()

        logger.info("Article generated: id=%s topic=%s", article.id, article.trend_topic)
        return article

    async def dispatch_newsletter(self) -> DispatchResult:
        """Send the latest article to every Active subscriber.

        Each send is isolated: one failure is logged and counted, never
        aborting the rest of the batch.
        """
        article = await self.latest_article()
        if article is None:
            logger.warning("No latest article; newsletter dispatch skipped")
            return DispatchResult(skipped=True)

        subscribers = await SubscriptionService(self.db, self.email_service).active_subscribers()
        recipients = [(s.email, s.unsubscribe_token) for s in subscribers]
        semaphore = asyncio.Semaphore(self.concurrency)

        async def _send(email: str, unsubscribe_token: str) -> None:
            async with semaphore:
                await self.email_service.send_newsletter_email(email, article, unsubscribe_token)

        results = await asyncio.gather(
            *(_send(email, token) for email, token in recipients),
            return_exceptions=True,
        )

        success_count = 0
        for (email, _), result in zip(recipients, results, strict=True):
            if isinstance(result, BaseException):
                logger.error("Newsletter send failed: to=%s error=%s", email, result)
            else:
                success_count += 1

        logger.info(
            "Newsletter dispatched: article=%s sent=%d/%d",
            article.id,
            success_count,
            len(recipients),
        )
        return DispatchResult(
            success_count=success_count,
            total_count=len(recipients),
            article_id=article.id,
        )
