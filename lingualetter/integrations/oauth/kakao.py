"""Kakao OAuth helpers for code exchange and profile lookup."""

import logging
from urllib.parse import urlencode

import httpx

from lingualetter.core.config import settings
from lingualetter.core.exceptions import UpstreamProviderError
from lingualetter.schemas.auth import ExternalProfile

logger = logging.getLogger(__name__)

PROVIDER = "kakao"
AUTHORIZE_URL = "https://kauth.kakao.com/oauth/authorize"
TOKEN_URL = "https://kauth.kakao.com/oauth/token"
USERINFO_URL = "https://kapi.kakao.com/v2/user/me"


def build_auth_url(nonce: str) -> str:
    """Build the Kakao authorization URL."""
    params = urlencode({
        "client_id": settings.kakao_client_id,
        "redirect_uri": settings.kakao_redirect_uri,
        "response_type": "code",
        "state": nonce,
    })
    return f"{AUTHORIZE_URL}?{params}"


async def exchange_code_for_token(code: str, redirect_uri: str | None = None) -> str:
    """Exchange an authorization code for an access token.

    Raises:
        UpstreamProviderError: If Kakao rejects the code or cannot be reached.
    """
    try:
        async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
            response = await client.post(
                TOKEN_URL,
                data={
                    "grant_type": "authorization_code",
                    "client_id": settings.kakao_client_id,
                    "client_secret": settings.kakao_client_secret,
                    "redirect_uri": redirect_uri or settings.kakao_redirect_uri,
                    "code": code,
                },
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
            response.raise_for_status()
            data = response.json()
    except httpx.HTTPError as e:
        logger.warning("Kakao token exchange failed: %s", e)
        raise UpstreamProviderError(PROVIDER, "Kakao token exchange failed") from e

    access_token = data.get("access_token")
    if not access_token:
        raise UpstreamProviderError(PROVIDER, "Kakao returned no access token")
    return str(access_token)


async def fetch_profile(access_token: str) -> ExternalProfile:
    """Fetch the signed-in Kakao user's profile.

    The email lives under ``kakao_account`` and is absent when the user did
    not grant the email scope.
    """
    try:
        async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
            response = await client.get(
                USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
            )
            response.raise_for_status()
            data = response.json()
    except httpx.HTTPError as e:
        logger.warning("Kakao profile fetch failed: %s", e)
        raise UpstreamProviderError(PROVIDER, "Kakao profile fetch failed") from e

    account = data.get("kakao_account") or {}
    properties = data.get("properties") or {}
    return ExternalProfile(
        email=account.get("email"),
        external_id=str(data["id"]) if data.get("id") is not None else None,
        name=properties.get("nickname"),
        picture=properties.get("profile_image"),
    )
