"""Newsletter subscription endpoints."""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from lingualetter.core.deps import DBSession, Mailer, OptionalUser
from lingualetter.core.exceptions import LinguaLetterError
from lingualetter.core.rate_limit import limiter
from lingualetter.schemas.common import ActionResponse
from lingualetter.schemas.newsletter import (
    SubscribeRequest,
    UnsubscribeRequest,
    UnsubscribeTokenRequest,
)
from lingualetter.services.subscription_service import MSG_CONFIRMATION_SENT, SubscriptionService

logger = logging.getLogger(__name__)

router = APIRouter()


def _failure(error: LinguaLetterError) -> JSONResponse:
    return JSONResponse(status_code=error.status_code, content=error.to_response())


@router.post("/subscribe", response_model=ActionResponse)
@limiter.limit("5/minute")
async def subscribe(
    request: Request,  # noqa: ARG001  # required by slowapi
    payload: SubscribeRequest,
    db: DBSession,
    mailer: Mailer,
) -> ActionResponse | JSONResponse:
    """Subscribe an email; a confirmation link is mailed to it."""
    try:
        await SubscriptionService(db, mailer).subscribe(payload.email)
    except LinguaLetterError as e:
        return _failure(e)
    return ActionResponse(success=True, message=MSG_CONFIRMATION_SENT)


@router.post("/unsubscribe", response_model=ActionResponse)
async def unsubscribe(
    payload: UnsubscribeRequest,
    db: DBSession,
    user: OptionalUser,
) -> ActionResponse | JSONResponse:
    """Unsubscribe by email. Signed-in users may only unsubscribe themselves."""
    requester_email = user.get("email") if user else None
    try:
        message = await SubscriptionService(db).unsubscribe_by_email(
            payload.email, requester_email
        )
    except LinguaLetterError as e:
        return _failure(e)
    return ActionResponse(success=True, message=message)


@router.post("/unsubscribe-token", response_model=ActionResponse)
async def unsubscribe_with_token(
    payload: UnsubscribeTokenRequest,
    db: DBSession,
) -> ActionResponse | JSONResponse:
    """Unsubscribe with the token from a newsletter email."""
    try:
        message = await SubscriptionService(db).unsubscribe_by_token(payload.token)
    except LinguaLetterError as e:
        return _failure(e)
    return ActionResponse(success=True, message=message)
