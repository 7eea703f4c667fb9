"""Celery tasks for the daily newsletter pipeline.

Neither task retries: a failed run is retried by the next day's trigger.
Both are acknowledged on receipt so a lost worker never redelivers a
batch, and neither carries a time limit.
"""

import logging
from dataclasses import asdict
from typing import Any

from lingualetter.core.database import async_session_maker
from lingualetter.services.dispatch_service import DispatchService
from lingualetter.workers.celery_app import celery_app
from lingualetter.workers.runner import run_async

logger = logging.getLogger(__name__)


@celery_app.task(  # type: ignore[untyped-decorator]
    name="tasks.newsletter.generate_content",
    acks_late=False,
)
def generate_content() -> dict[str, Any]:
    """Generate today's article and point the next dispatch at it."""
    return run_async(_generate_content_async())


async def _generate_content_async() -> dict[str, Any]:
    async with async_session_maker() as session:
        article = await DispatchService(session).generate_content()

    if article is None:
        return {"status": "failed"}
    return {"status": "completed", "article_id": str(article.id)}


@celery_app.task(  # type: ignore[untyped-decorator]
    name="tasks.newsletter.dispatch_newsletter",
    acks_late=False,
)
def dispatch_newsletter() -> dict[str, Any]:
    """Send the latest article to every active subscriber."""
    return run_async(_dispatch_newsletter_async())


async def _dispatch_newsletter_async() -> dict[str, Any]:
    async with async_session_maker() as session:
        result = await DispatchService(session).dispatch_newsletter()

    payload = asdict(result)
    payload["article_id"] = str(result.article_id) if result.article_id else None
    payload["status"] = "skipped" if result.skipped else "completed"
    return payload
