"""OAuth handoff and session endpoints."""

import logging
from urllib.parse import urlencode
from uuid import UUID

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse

from lingualetter.core.config import settings
from lingualetter.core.deps import BearerToken, DBSession, OptionalUser, get_redis
from lingualetter.core.exceptions import LinguaLetterError, RevocationSkipped
from lingualetter.core.rate_limit import limiter
from lingualetter.core.security import generate_state_nonce
from lingualetter.integrations.oauth.providers import (
    build_auth_url,
    fetch_external_profile,
    parse_provider,
)
from lingualetter.models.invalidated_token import RevocationReason
from lingualetter.schemas.auth import (
    AuthResponse,
    AuthStatusResponse,
    OAuthCodeRequest,
    UserResponse,
)
from lingualetter.schemas.common import ActionResponse, ErrorResponse
from lingualetter.services.consent_service import ConsentService
from lingualetter.services.identity_service import IdentityBroker
from lingualetter.services.token_service import TokenRevocationStore

logger = logging.getLogger(__name__)

router = APIRouter()

NONCE_TTL_SECONDS = 600  # 10 minutes


def _state_key(provider: str, nonce: str) -> str:
    return f"oauth_state:{provider}:{nonce}"


@router.post("/logout", response_model=ActionResponse)
async def logout(token: BearerToken, db: DBSession) -> ActionResponse:
    """Revoke the presented session token. Always reports success."""
    if token:
        try:
            await TokenRevocationStore(db).revoke(token, RevocationReason.LOGOUT)
        except RevocationSkipped as e:
            logger.info("Logout without revocable token: %s", e.message)
    return ActionResponse(success=True, message="Logged out")


@router.get("/status", response_model=AuthStatusResponse)
async def auth_status(user: OptionalUser, db: DBSession) -> AuthStatusResponse:
    """Report whether the bearer token is valid, with the user's consent state."""
    if user is None:
        return AuthStatusResponse(authenticated=False)

    record = await IdentityBroker(db).get_user(UUID(str(user["sub"])))
    if record is None:
        return AuthStatusResponse(authenticated=False)

    return AuthStatusResponse(
        authenticated=True,
        user=UserResponse.model_validate(record),
        consents=await ConsentService(db).get_info(record.id),
    )


@router.get("/{provider}/login")
@limiter.limit("20/minute")
async def login(
    request: Request,  # noqa: ARG001  # required by slowapi
    provider: str,
    r: aioredis.Redis = Depends(get_redis),
) -> RedirectResponse:
    """Start a redirect-based OAuth flow."""
    try:
        auth_provider = parse_provider(provider)
    except LinguaLetterError as e:
        return RedirectResponse(f"{settings.frontend_url}/login?error={e.code}")

    nonce = generate_state_nonce()
    await r.set(_state_key(auth_provider.value, nonce), "1", ex=NONCE_TTL_SECONDS)
    return RedirectResponse(build_auth_url(auth_provider, nonce))


@router.get("/{provider}/callback")
async def callback(
    provider: str,
    db: DBSession,
    code: str | None = Query(default=None),
    state: str | None = Query(default=None),
    error: str | None = Query(default=None),
    r: aioredis.Redis = Depends(get_redis),
) -> RedirectResponse:
    """Finish a redirect-based OAuth flow and hand the session to the frontend."""
    login_url = f"{settings.frontend_url}/login"

    if error:
        return RedirectResponse(f"{login_url}?{urlencode({'error': error})}")

    # Verify nonce
    stored = None
    if state:
        key = _state_key(provider.lower(), state)
        stored = await r.get(key)
        await r.delete(key)
    if not stored:
        return RedirectResponse(f"{login_url}?error=invalid_state")

    try:
        auth_provider = parse_provider(provider)
        profile = await fetch_external_profile(auth_provider, code)
        result = await IdentityBroker(db).resolve_and_issue(auth_provider, profile)
    except LinguaLetterError as e:
        logger.warning("OAuth callback failed: provider=%s code=%s", provider, e.code)
        return RedirectResponse(f"{login_url}?{urlencode({'error': e.code})}")

    versions = result.consent_info.current_versions
    params = urlencode({
        "token": result.session_token,
        "consent_required": str(result.consent_info.required).lower(),
        "terms_version": versions.terms,
        "privacy_version": versions.privacy,
        "newsletter_version": versions.newsletter,
    })
    return RedirectResponse(f"{login_url}?{params}")


@router.post(
    "/{provider}",
    response_model=AuthResponse,
    responses={
        400: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)
@limiter.limit("20/minute")
async def authenticate(
    request: Request,  # noqa: ARG001  # required by slowapi
    provider: str,
    payload: OAuthCodeRequest,
    db: DBSession,
) -> AuthResponse | JSONResponse:
    """Exchange an authorization code for a session token."""
    try:
        auth_provider = parse_provider(provider)
        profile = await fetch_external_profile(
            auth_provider,
            payload.code,
            redirect_uri=payload.redirect_uri,
            id_token=payload.id_token,
        )
        result = await IdentityBroker(db).resolve_and_issue(auth_provider, profile)
    except LinguaLetterError as e:
        logger.warning("Authentication failed: provider=%s code=%s", provider, e.code)
        return JSONResponse(status_code=e.status_code, content=e.to_response())

    return AuthResponse(
        token=result.session_token,
        user=UserResponse.model_validate(result.user),
        consents=result.consent_info,
    )
