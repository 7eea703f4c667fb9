"""Newsletter subscription lifecycle.

Each email moves through None -> Pending -> Active <-> Inactive. Transitions
are driven by two high-entropy tokens: the confirm token from the opt-in
email and the unsubscribe token embedded in every newsletter.
"""

import logging
from datetime import UTC, datetime

from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from lingualetter.core.exceptions import (
    AlreadySubscribed,
    InvalidEmail,
    InvalidToken,
    NotSubscribed,
    PermissionDenied,
)
from lingualetter.core.security import generate_token
from lingualetter.models.newsletter_subscriber import NewsletterSubscriber
from lingualetter.services.email_service import EmailService

logger = logging.getLogger(__name__)

_EMAIL_ADAPTER = TypeAdapter(EmailStr)
MAX_WRITE_ATTEMPTS = 3

MSG_CONFIRMATION_SENT = "Confirmation email sent"
MSG_CONFIRMED = "Subscription confirmed"
MSG_ALREADY_CONFIRMED = "Already confirmed"
MSG_UNSUBSCRIBED = "Unsubscribed successfully"
MSG_ALREADY_UNSUBSCRIBED = "Already unsubscribed"


def normalize_email(email: str) -> str:
    return email.strip().lower()


def validate_email(email: str) -> str:
    """Return the normalised address or raise InvalidEmail."""
    normalized = normalize_email(email)
    try:
        validated = _EMAIL_ADAPTER.validate_python(normalized)
    except PydanticValidationError as e:
        raise InvalidEmail("Invalid email format") from e
    return normalize_email(validated)


class SubscriptionService:
    """Per-email newsletter subscription state machine."""

    def __init__(self, db: AsyncSession, email_service: EmailService | None = None) -> None:
        self.db = db
        self.email_service = email_service or EmailService()

    async def get_by_email(self, email: str) -> NewsletterSubscriber | None:
        stmt = select(NewsletterSubscriber).where(
            NewsletterSubscriber.email == normalize_email(email)
        )
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def get_by_confirm_token(self, token: str) -> NewsletterSubscriber | None:
        stmt = select(NewsletterSubscriber).where(NewsletterSubscriber.confirm_token == token)
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def get_by_unsubscribe_token(self, token: str) -> NewsletterSubscriber | None:
        stmt = select(NewsletterSubscriber).where(
            NewsletterSubscriber.unsubscribe_token == token
        )
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def active_subscribers(self) -> list[NewsletterSubscriber]:
        """Snapshot of every Active subscriber."""
        stmt = (
            select(NewsletterSubscriber)
            .where(NewsletterSubscriber.is_active == True)  # noqa: E712
            .order_by(NewsletterSubscriber.confirmed_at)
        )
        return list((await self.db.execute(stmt)).scalars().all())

    async def subscribe(self, email: str) -> NewsletterSubscriber:
        """Start (or restart) a subscription in the Pending state.

        Both tokens are regenerated whenever an inactive row is reused, so old
        confirmation and unsubscribe links stop working. A unique-constraint
        conflict (a concurrent subscribe for the same email, or a token
        collision) is retried from a fresh read.

        Raises:
            InvalidEmail: If the address is malformed.
            AlreadySubscribed: If the address is already Active.
        """
        address = validate_email(email)

        for attempt in range(1, MAX_WRITE_ATTEMPTS):
            subscriber = await self._stage_pending(address)
            try:
                await self.db.commit()
            except IntegrityError:
                await self.db.rollback()
                logger.warning("Subscribe write conflict for %s (attempt %d)", address, attempt)
                continue
            return await self._finish_subscribe(subscriber)

        # Last attempt; a further conflict propagates
        subscriber = await self._stage_pending(address)
        await self.db.commit()
        return await self._finish_subscribe(subscriber)

    async def _stage_pending(self, address: str) -> NewsletterSubscriber:
        subscriber = await self.get_by_email(address)
        if subscriber is not None and subscriber.is_active:
            raise AlreadySubscribed("Already subscribed")

        now = datetime.now(UTC)
        if subscriber is None:
            subscriber = NewsletterSubscriber(
                email=address,
                confirm_token=generate_token(),
                unsubscribe_token=generate_token(),
                is_active=False,
                subscribed_at=now,
                confirmed_at=None,
            )
            self.db.add(subscriber)
        else:
            subscriber.confirm_token = generate_token()
            subscriber.unsubscribe_token = generate_token()
            subscriber.subscribed_at = now
            subscriber.confirmed_at = None
        return subscriber

    async def _finish_subscribe(self, subscriber: NewsletterSubscriber) -> NewsletterSubscriber:
        await self.db.refresh(subscriber)
        logger.info("Subscription pending: email=%s", subscriber.email)
        await self._send_confirmation(subscriber)
        return subscriber

    async def _send_confirmation(self, subscriber: NewsletterSubscriber) -> None:
        # Best effort: the Pending row stays even if the mail cannot be sent
        if subscriber.confirm_token is None:
            return
        try:
            await self.email_service.send_confirmation_email(
                subscriber.email, subscriber.confirm_token
            )
        except Exception:
            logger.exception("Failed to send confirmation email to %s", subscriber.email)

    async def confirm(self, confirm_token: str) -> str:
        """Activate the subscription that owns ``confirm_token``.

        Confirming an already Active subscription succeeds without changes.

        Raises:
            InvalidToken: If no subscriber holds the token.
        """
        subscriber = await self.get_by_confirm_token(confirm_token)
        if subscriber is None:
            raise InvalidToken("Invalid confirmation token")

        if subscriber.is_active:
            return MSG_ALREADY_CONFIRMED

        subscriber.is_active = True
        subscriber.confirmed_at = datetime.now(UTC)
        await self.db.commit()
        logger.info("Subscription confirmed: email=%s", subscriber.email)
        return MSG_CONFIRMED

    async def unsubscribe_by_token(self, unsubscribe_token: str) -> str:
        """Deactivate the subscription that owns ``unsubscribe_token``.

        Raises:
            InvalidToken: If no subscriber holds the token.
        """
        subscriber = await self.get_by_unsubscribe_token(unsubscribe_token)
        if subscriber is None:
            raise InvalidToken("Invalid unsubscribe token")
        return await self._deactivate(subscriber)

    async def unsubscribe_by_email(self, email: str, requester_email: str | None) -> str:
        """Deactivate a subscription by address.

        Anonymous callers may unsubscribe any address; an authenticated
        caller may only unsubscribe their own.

        Raises:
            NotSubscribed: If the address has no subscription row.
            PermissionDenied: If an authenticated requester targets another address.
        """
        subscriber = await self.get_by_email(email)
        if subscriber is None:
            raise NotSubscribed("Email not found in subscribers")

        if requester_email is not None and normalize_email(requester_email) != subscriber.email:
            raise PermissionDenied("You can only unsubscribe your own email")

        return await self._deactivate(subscriber)

    async def deactivate_email(self, email: str) -> bool:
        """Deactivate any subscription for ``email`` without committing.

        Used when an account is deleted. Returns True if a row was changed.
        """
        subscriber = await self.get_by_email(email)
        if subscriber is None or not subscriber.is_active:
            return False
        subscriber.is_active = False
        return True

    async def _deactivate(self, subscriber: NewsletterSubscriber) -> str:
        if not subscriber.is_active:
            return MSG_ALREADY_UNSUBSCRIBED
        subscriber.is_active = False
        await self.db.commit()
        logger.info("Unsubscribed: email=%s", subscriber.email)
        return MSG_UNSUBSCRIBED
