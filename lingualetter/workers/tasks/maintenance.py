"""Periodic housekeeping tasks."""

import logging
from typing import Any

from lingualetter.core.database import async_session_maker
from lingualetter.services.token_service import TokenRevocationStore
from lingualetter.workers.celery_app import BaseTask, celery_app
from lingualetter.workers.runner import run_async

logger = logging.getLogger(__name__)


@celery_app.task(  # type: ignore[untyped-decorator]
    name="tasks.maintenance.purge_invalidated_tokens",
    base=BaseTask,
    bind=True,
)
def purge_invalidated_tokens(self: BaseTask) -> dict[str, Any]:  # noqa: ARG001
    """Delete denylist entries for tokens that have expired anyway."""
    return run_async(_purge_invalidated_tokens_async())


async def _purge_invalidated_tokens_async() -> dict[str, Any]:
    async with async_session_maker() as session:
        deleted = await TokenRevocationStore(session).purge_expired()
    return {"status": "completed", "deleted": deleted}
