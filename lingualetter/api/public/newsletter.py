"""Newsletter links opened straight from email clients."""

import logging
from html import escape

from fastapi import APIRouter
from fastapi.responses import HTMLResponse

from lingualetter.core.deps import DBSession
from lingualetter.core.exceptions import InvalidToken
from lingualetter.services.subscription_service import SubscriptionService

logger = logging.getLogger(__name__)

router = APIRouter()


def _page(title: str, message: str, *, status_code: int = 200, extra: str = "") -> HTMLResponse:
    return HTMLResponse(
        "<html><head><meta charset='utf-8'>"
        f"<title>{escape(title)}</title></head>"
        "<body style='font-family: sans-serif; text-align: center; padding: 60px;'>"
        f"<h1>{escape(title)}</h1>"
        f"<p>{escape(message)}</p>"
        f"{extra}"
        "</body></html>",
        status_code=status_code,
    )


@router.get("/confirm/{token}", response_class=HTMLResponse)
async def confirm_subscription(token: str, db: DBSession) -> HTMLResponse:
    """Confirm a pending subscription from the opt-in email."""
    try:
        message = await SubscriptionService(db).confirm(token)
    except InvalidToken:
        return _page(
            "Invalid Link",
            "This confirmation link is invalid or has expired.",
            status_code=400,
        )
    return _page(
        "Subscription Confirmed",
        f"{message}. You'll receive LinguaLetter every morning.",
    )


@router.get("/unsubscribe/{token}", response_class=HTMLResponse)
async def unsubscribe_page(token: str, db: DBSession) -> HTMLResponse:
    """Ask for confirmation before unsubscribing.

    Mail scanners prefetch GET links, so the state change happens on POST.
    """
    subscriber = await SubscriptionService(db).get_by_unsubscribe_token(token)
    if subscriber is None:
        return _page(
            "Invalid Link",
            "This unsubscribe link is invalid or has expired.",
            status_code=400,
        )
    if not subscriber.is_active:
        return _page("Unsubscribed", "You are not receiving LinguaLetter.")

    form = (
        f"<form method='post' action='/newsletter/unsubscribe/{escape(token)}'>"
        "<button type='submit' style='padding: 12px 24px;'>Unsubscribe</button>"
        "</form>"
    )
    return _page(
        "Unsubscribe",
        f"Stop sending LinguaLetter to {subscriber.email}?",
        extra=form,
    )


@router.post("/unsubscribe/{token}", response_class=HTMLResponse)
async def unsubscribe(token: str, db: DBSession) -> HTMLResponse:
    """Unsubscribe using the token embedded in a newsletter."""
    try:
        message = await SubscriptionService(db).unsubscribe_by_token(token)
    except InvalidToken:
        return _page(
            "Invalid Link",
            "This unsubscribe link is invalid or has expired.",
            status_code=400,
        )
    return _page(
        "Unsubscribed",
        f"{message}. You won't receive any more LinguaLetter emails.",
    )
