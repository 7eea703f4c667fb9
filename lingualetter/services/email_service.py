"""Email delivery service using Resend API."""

import logging
from pathlib import Path
from typing import Any

import httpx
from jinja2 import Environment, FileSystemLoader

from lingualetter.core.config import settings
from lingualetter.core.exceptions import UpstreamProviderError
from lingualetter.models.article import Article

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"

# Jinja2 template environment
TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "email"
_jinja_env = Environment(loader=FileSystemLoader(str(TEMPLATE_DIR)), autoescape=True)


class EmailService:
    """Sends transactional and newsletter emails via the Resend API."""

    async def send(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        tags: list[dict[str, str]] | None = None,
    ) -> str | None:
        """Send a single email.

        Returns:
            The Resend email ID, if Resend returned one.

        Raises:
            UpstreamProviderError: If Resend is not configured, rejects the
                request, or cannot be reached.
        """
        if not settings.resend_api_key:
            raise UpstreamProviderError("resend", "Resend API key not configured")

        payload: dict[str, Any] = {
            "from": settings.mail_from,
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }
        if tags:
            payload["tags"] = tags

        try:
            async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
                response = await client.post(
                    RESEND_API_URL,
                    headers={
                        "Authorization": f"Bearer {settings.resend_api_key}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                )
        except httpx.HTTPError as e:
            raise UpstreamProviderError("resend", f"Resend request failed: {e}") from e

        if not response.is_success:
            logger.error(
                "Failed to send email: to=%s status=%s body=%s",
                to_email,
                response.status_code,
                response.text[:500],
            )
            raise UpstreamProviderError("resend", f"Resend returned {response.status_code}")

        email_id = response.json().get("id")
        logger.info("Email sent: to=%s id=%s", to_email, email_id)
        return str(email_id) if email_id else None

    async def send_confirmation_email(self, to_email: str, confirm_token: str) -> str | None:
        """Send the double opt-in confirmation link."""
        confirm_url = f"{settings.api_url}/newsletter/confirm/{confirm_token}"
        html_content = _jinja_env.get_template("confirmation.html").render(
            confirm_url=confirm_url,
        )
        return await self.send(
            to_email=to_email,
            subject="LinguaLetter 구독 확인",
            html_content=html_content,
            tags=[{"name": "type", "value": "confirmation"}],
        )

    async def send_newsletter_email(
        self,
        to_email: str,
        article: Article,
        unsubscribe_token: str,
    ) -> str | None:
        """Send one newsletter issue to one subscriber."""
        unsubscribe_url = f"{settings.api_url}/newsletter/unsubscribe/{unsubscribe_token}"
        html_content = _jinja_env.get_template("newsletter.html").render(
            article=article,
            unsubscribe_url=unsubscribe_url,
        )
        return await self.send(
            to_email=to_email,
            subject=f"[LinguaLetter] {article.trend_topic}",
            html_content=html_content,
            tags=[
                {"name": "type", "value": "newsletter"},
                {"name": "article_id", "value": str(article.id)},
            ],
        )
