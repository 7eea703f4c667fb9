"""Admin-only triggers for the daily newsletter jobs."""

import logging

from fastapi import APIRouter

from lingualetter.core.deps import AdminUser, DBSession, Mailer
from lingualetter.schemas.newsletter import DispatchResultResponse, GenerateResultResponse
from lingualetter.services.dispatch_service import DispatchService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/dispatch/generate", response_model=GenerateResultResponse)
async def trigger_generate(
    admin: AdminUser,
    db: DBSession,
    mailer: Mailer,
) -> GenerateResultResponse:
    """Generate today's article now and make it the latest."""
    logger.info("Manual content generation requested by %s", admin.get("email"))
    article = await DispatchService(db, mailer).generate_content()
    if article is None:
        return GenerateResultResponse(success=False, error="Content generation failed")
    return GenerateResultResponse(success=True, article_id=article.id)


@router.post("/dispatch/send", response_model=DispatchResultResponse)
async def trigger_send(
    admin: AdminUser,
    db: DBSession,
    mailer: Mailer,
) -> DispatchResultResponse:
    """Send the latest article to all active subscribers now."""
    logger.info("Manual newsletter dispatch requested by %s", admin.get("email"))
    result = await DispatchService(db, mailer).dispatch_newsletter()
    return DispatchResultResponse(
        skipped=result.skipped,
        article_id=result.article_id,
        success_count=result.success_count,
        total_count=result.total_count,
    )
