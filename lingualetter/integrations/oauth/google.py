"""Google OAuth helpers for code exchange and profile lookup."""

import logging
from urllib.parse import urlencode

import httpx

from lingualetter.core.config import settings
from lingualetter.core.exceptions import UpstreamProviderError
from lingualetter.schemas.auth import ExternalProfile

logger = logging.getLogger(__name__)

PROVIDER = "google"
AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"
TOKENINFO_URL = "https://oauth2.googleapis.com/tokeninfo"


def build_auth_url(nonce: str) -> str:
    """Build the Google authorization URL.

    Args:
        nonce: Random state parameter for CSRF protection.
    """
    params = urlencode({
        "client_id": settings.google_client_id,
        "redirect_uri": settings.google_redirect_uri,
        "response_type": "code",
        "scope": "openid email profile",
        "state": nonce,
        "prompt": "select_account",
    })
    return f"{AUTHORIZE_URL}?{params}"


async def exchange_code_for_token(code: str, redirect_uri: str | None = None) -> str:
    """Exchange an authorization code for an access token.

    Raises:
        UpstreamProviderError: If Google rejects the code or cannot be reached.
    """
    try:
        async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
            response = await client.post(TOKEN_URL, data={
                "grant_type": "authorization_code",
                "client_id": settings.google_client_id,
                "client_secret": settings.google_client_secret,
                "redirect_uri": redirect_uri or settings.google_redirect_uri,
                "code": code,
            })
            response.raise_for_status()
            data = response.json()
    except httpx.HTTPError as e:
        logger.warning("Google token exchange failed: %s", e)
        raise UpstreamProviderError(PROVIDER, "Google token exchange failed") from e

    access_token = data.get("access_token")
    if not access_token:
        raise UpstreamProviderError(PROVIDER, "Google returned no access token")
    return str(access_token)


async def fetch_profile(access_token: str) -> ExternalProfile:
    """Fetch the signed-in Google user's profile."""
    try:
        async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
            response = await client.get(
                USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
            )
            response.raise_for_status()
            data = response.json()
    except httpx.HTTPError as e:
        logger.warning("Google profile fetch failed: %s", e)
        raise UpstreamProviderError(PROVIDER, "Google profile fetch failed") from e

    return ExternalProfile(
        email=data.get("email"),
        external_id=str(data["id"]) if data.get("id") else None,
        name=data.get("name"),
        picture=data.get("picture"),
    )


async def verify_id_token(id_token: str) -> ExternalProfile:
    """Validate a Google ID token and return the profile it asserts.

    The token's audience must be our client id.
    """
    try:
        async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
            response = await client.get(TOKENINFO_URL, params={"id_token": id_token})
            response.raise_for_status()
            data = response.json()
    except httpx.HTTPError as e:
        logger.warning("Google ID token verification failed: %s", e)
        raise UpstreamProviderError(PROVIDER, "Google ID token verification failed") from e

    if settings.google_client_id and data.get("aud") != settings.google_client_id:
        raise UpstreamProviderError(PROVIDER, "Google ID token audience mismatch")

    return ExternalProfile(
        email=data.get("email"),
        external_id=data.get("sub"),
        name=data.get("name"),
        picture=data.get("picture"),
    )
