"""Tests for newsletter HTTP endpoints.

Covers:
- /api/v1/newsletter/subscribe, /unsubscribe, /unsubscribe-token
- HTML pages behind the confirmation and unsubscribe links in emails
- Full lifecycle: subscribe → confirm → unsubscribe → re-subscribe
- Admin dispatch triggers end to end
"""

from collections.abc import Callable
from typing import Any
from unittest.mock import MagicMock, patch

from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from lingualetter.core.exceptions import UpstreamProviderError
from lingualetter.models.newsletter_subscriber import NewsletterSubscriber
from lingualetter.services.content_service import ContentGenerator
from lingualetter.services.subscription_service import SubscriptionService
from tests.conftest import ARTICLE_FIELDS, TEST_USER_EMAIL


async def _subscribe(client: AsyncClient, email: str = "reader@example.com") -> Any:
    return await client.post("/api/v1/newsletter/subscribe", json={"email": email})


def _sent_confirm_token(mock_mailer: MagicMock) -> str:
    _to, token = mock_mailer.send_confirmation_email.await_args.args
    return str(token)


class TestSubscribeAPI:
    """POST /api/v1/newsletter/subscribe."""

    async def test_subscribe_sends_confirmation(
        self, client: AsyncClient, mock_mailer: MagicMock
    ) -> None:
        response = await _subscribe(client, "Reader@Example.com")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Confirmation email sent"
        to_email, _token = mock_mailer.send_confirmation_email.await_args.args
        assert to_email == "reader@example.com"

    async def test_invalid_email(self, client: AsyncClient) -> None:
        response = await _subscribe(client, "nope")

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "error": "Invalid email format",
            "code": "invalid_email",
        }

    async def test_already_subscribed(
        self, client: AsyncClient, subscriber_factory: Callable[..., Any]
    ) -> None:
        await subscriber_factory(email="reader@example.com")

        response = await _subscribe(client)

        assert response.status_code == 409
        assert response.json()["code"] == "already_subscribed"

    async def test_mail_failure_still_succeeds(
        self, client: AsyncClient, mock_mailer: MagicMock
    ) -> None:
        """The row is created even when the confirmation email cannot be sent."""
        mock_mailer.send_confirmation_email.side_effect = UpstreamProviderError("resend")

        response = await _subscribe(client)

        assert response.status_code == 200
        assert response.json()["success"] is True


class TestUnsubscribeAPI:
    """POST /api/v1/newsletter/unsubscribe and /unsubscribe-token."""

    async def test_anonymous_by_email(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        subscriber_factory: Callable[..., Any],
    ) -> None:
        subscriber = await subscriber_factory(email="reader@example.com")

        response = await client.post(
            "/api/v1/newsletter/unsubscribe", json={"email": "reader@example.com"}
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Unsubscribed successfully"
        await db_session.refresh(subscriber)
        assert subscriber.is_active is False

    async def test_signed_in_user_own_email(
        self,
        client: AsyncClient,
        auth_headers: dict[str, str],
        subscriber_factory: Callable[..., Any],
    ) -> None:
        await subscriber_factory(email=TEST_USER_EMAIL)

        response = await client.post(
            "/api/v1/newsletter/unsubscribe",
            json={"email": TEST_USER_EMAIL},
            headers=auth_headers,
        )

        assert response.status_code == 200

    async def test_signed_in_user_other_email(
        self,
        client: AsyncClient,
        auth_headers: dict[str, str],
        subscriber_factory: Callable[..., Any],
    ) -> None:
        await subscriber_factory(email="reader@example.com")

        response = await client.post(
            "/api/v1/newsletter/unsubscribe",
            json={"email": "reader@example.com"},
            headers=auth_headers,
        )

        assert response.status_code == 403
        assert response.json()["code"] == "permission_denied"

    async def test_unknown_email(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/v1/newsletter/unsubscribe", json={"email": "ghost@example.com"}
        )

        assert response.status_code == 404
        assert response.json()["code"] == "not_subscribed"

    async def test_by_token(
        self, client: AsyncClient, subscriber_factory: Callable[..., Any]
    ) -> None:
        subscriber = await subscriber_factory()

        first = await client.post(
            "/api/v1/newsletter/unsubscribe-token", json={"token": subscriber.unsubscribe_token}
        )
        second = await client.post(
            "/api/v1/newsletter/unsubscribe-token", json={"token": subscriber.unsubscribe_token}
        )

        assert first.json()["message"] == "Unsubscribed successfully"
        assert second.json()["message"] == "Already unsubscribed"

    async def test_by_unknown_token(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/v1/newsletter/unsubscribe-token", json={"token": "no-such-token"}
        )

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_token"


class TestEmailLinkPages:
    """HTML pages opened from email links."""

    async def test_confirm_page(self, client: AsyncClient, mock_mailer: MagicMock) -> None:
        await _subscribe(client)
        token = _sent_confirm_token(mock_mailer)

        response = await client.get(f"/newsletter/confirm/{token}")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "Subscription Confirmed" in response.text

    async def test_confirm_link_clicked_twice(
        self, client: AsyncClient, mock_mailer: MagicMock
    ) -> None:
        await _subscribe(client)
        token = _sent_confirm_token(mock_mailer)

        await client.get(f"/newsletter/confirm/{token}")
        again = await client.get(f"/newsletter/confirm/{token}")

        assert again.status_code == 200
        assert "Already confirmed" in again.text

    async def test_confirm_invalid_token(self, client: AsyncClient) -> None:
        response = await client.get("/newsletter/confirm/no-such-token")

        assert response.status_code == 400
        assert "Invalid Link" in response.text

    async def test_unsubscribe_get_does_not_change_state(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        subscriber_factory: Callable[..., Any],
    ) -> None:
        """Opening the link shows a form; link prefetchers cannot unsubscribe."""
        subscriber = await subscriber_factory()

        response = await client.get(f"/newsletter/unsubscribe/{subscriber.unsubscribe_token}")

        assert response.status_code == 200
        assert "<form method='post'" in response.text
        await db_session.refresh(subscriber)
        assert subscriber.is_active is True

    async def test_unsubscribe_post(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        subscriber_factory: Callable[..., Any],
    ) -> None:
        subscriber = await subscriber_factory()

        response = await client.post(f"/newsletter/unsubscribe/{subscriber.unsubscribe_token}")

        assert response.status_code == 200
        assert "Unsubscribed" in response.text
        await db_session.refresh(subscriber)
        assert subscriber.is_active is False

    async def test_unsubscribe_page_when_already_inactive(
        self, client: AsyncClient, subscriber_factory: Callable[..., Any]
    ) -> None:
        subscriber = await subscriber_factory()
        await client.post(f"/newsletter/unsubscribe/{subscriber.unsubscribe_token}")

        response = await client.get(f"/newsletter/unsubscribe/{subscriber.unsubscribe_token}")

        assert response.status_code == 200
        assert "<form" not in response.text

    async def test_unsubscribe_invalid_token(self, client: AsyncClient) -> None:
        get_response = await client.get("/newsletter/unsubscribe/no-such-token")
        post_response = await client.post("/newsletter/unsubscribe/no-such-token")

        assert get_response.status_code == 400
        assert post_response.status_code == 400


class TestLifecycle:
    """End-to-end subscription flows."""

    async def test_subscribe_confirm_unsubscribe_resubscribe(
        self, client: AsyncClient, db_session: AsyncSession, mock_mailer: MagicMock
    ) -> None:
        """Re-subscribing after an unsubscribe invalidates the old links."""
        await _subscribe(client)
        first_token = _sent_confirm_token(mock_mailer)
        await client.get(f"/newsletter/confirm/{first_token}")

        subscriber = await SubscriptionService(db_session).get_by_email("reader@example.com")
        assert isinstance(subscriber, NewsletterSubscriber)
        assert subscriber.is_active is True
        old_unsubscribe = subscriber.unsubscribe_token

        await client.post(f"/newsletter/unsubscribe/{old_unsubscribe}")
        response = await _subscribe(client)
        assert response.status_code == 200
        second_token = _sent_confirm_token(mock_mailer)

        assert second_token != first_token
        assert (await client.get(f"/newsletter/confirm/{first_token}")).status_code == 400
        assert (await client.get(f"/newsletter/unsubscribe/{old_unsubscribe}")).status_code == 400
        assert (await client.get(f"/newsletter/confirm/{second_token}")).status_code == 200

    async def test_admin_generate_then_send(
        self,
        client: AsyncClient,
        admin_headers: dict[str, str],
        mock_mailer: MagicMock,
        subscriber_factory: Callable[..., Any],
    ) -> None:
        """Manual triggers generate an article and mail it to active subscribers."""
        await subscriber_factory(email="one@example.com")
        await subscriber_factory(email="two@example.com")

        with patch.object(ContentGenerator, "__init__", return_value=None), patch.object(
            ContentGenerator, "generate", return_value=dict(ARTICLE_FIELDS)
        ):
            generated = await client.post(
                "/api/v1/admin/dispatch/generate", headers=admin_headers
            )

        assert generated.status_code == 200
        assert generated.json()["success"] is True
        article_id = generated.json()["article_id"]

        sent = await client.post("/api/v1/admin/dispatch/send", headers=admin_headers)

        assert sent.json() == {
            "skipped": False,
            "article_id": article_id,
            "success_count": 2,
            "total_count": 2,
        }
        assert mock_mailer.send_newsletter_email.await_count == 2
