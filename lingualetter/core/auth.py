"""Session token authentication for FastAPI."""

from typing import Annotated, Any
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from lingualetter.core.database import get_async_session
from lingualetter.core.exceptions import ConsentRequired, InvalidCredential
from lingualetter.core.security import decode_session_token, token_id_for
from lingualetter.models.user import UserRole
from lingualetter.services.consent_service import ConsentService
from lingualetter.services.token_service import TokenRevocationStore

# HTTP Bearer token security scheme
bearer_scheme = HTTPBearer(auto_error=False)


async def verify_token(token: str, db: AsyncSession) -> dict[str, Any]:
    """Verify a session token and make sure it has not been revoked.

    Args:
        token: The JWT token to verify
        db: Session used to consult the revocation denylist

    Returns:
        The decoded token payload

    Raises:
        HTTPException: If token is invalid, expired or revoked
    """
    try:
        payload = decode_session_token(token)
    except InvalidCredential as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    if await TokenRevocationStore(db).is_revoked(token_id_for(payload)):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has been revoked",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return payload


async def get_bearer_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str | None:
    """Raw bearer token, if one was sent."""
    return credentials.credentials if credentials else None


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_async_session),
) -> dict[str, Any]:
    """Get current authenticated user from the session token.

    Returns:
        The decoded JWT payload containing user information

    Raises:
        HTTPException: If no token provided or token is invalid
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return await verify_token(credentials.credentials, db)


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_async_session),
) -> dict[str, Any] | None:
    """Get current user if authenticated, otherwise return None.

    Invalid, expired and revoked tokens are treated as anonymous.
    """
    if credentials is None:
        return None

    try:
        return await verify_token(credentials.credentials, db)
    except HTTPException:
        return None


async def require_consent(
    user: dict[str, Any] = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> dict[str, Any]:
    """Reject callers who have not accepted the current terms and privacy policy.

    Consent routes, auth status and logout stay reachable without consent so
    the client can collect it.

    Raises:
        ConsentRequired: If the latest consent record is missing or outdated.
    """
    info = await ConsentService(db).get_info(UUID(str(user["sub"])))
    if info.required:
        raise ConsentRequired()
    return user


async def require_admin(
    user: dict[str, Any] = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> dict[str, Any]:
    """Reject callers without the ADMIN role, then apply the consent gate."""
    if user.get("role") != UserRole.ADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return await require_consent(user, db)


# Type aliases for dependency injection
CurrentUser = Annotated[dict[str, Any], Depends(get_current_user)]
OptionalUser = Annotated[dict[str, Any] | None, Depends(get_optional_user)]
ConsentedUser = Annotated[dict[str, Any], Depends(require_consent)]
AdminUser = Annotated[dict[str, Any], Depends(require_admin)]
BearerToken = Annotated[str | None, Depends(get_bearer_token)]
