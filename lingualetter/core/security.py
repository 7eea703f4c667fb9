"""Security utilities for session tokens and random token generation."""

import secrets
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt

from lingualetter.core.config import settings
from lingualetter.core.exceptions import InvalidCredential


def generate_token(length: int = 32) -> str:
    """Generate a secure random token."""
    return secrets.token_urlsafe(length)


def generate_state_nonce() -> str:
    """Generate a CSRF state value for OAuth redirects."""
    return secrets.token_urlsafe(16)


def create_session_token(claims: dict[str, Any], *, now: datetime | None = None) -> str:
    """Sign a session token.

    ``iat`` and ``exp`` are set here; ``exp`` is ``session_ttl_days`` after ``iat``.
    """
    issued_at = now or datetime.now(UTC)
    payload = {
        **claims,
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + timedelta(days=settings.session_ttl_days)).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_session_token(token: str, *, verify_exp: bool = True) -> dict[str, Any]:
    """Decode and verify a session token.

    Args:
        token: The encoded JWT.
        verify_exp: Set to False to read claims of an expired token. The
            signature is always checked.

    Raises:
        InvalidCredential: If the signature is bad, claims are missing, or the
            token has expired.
    """
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"verify_exp": verify_exp, "require": ["sub", "iat", "exp"]},
        )
    except jwt.ExpiredSignatureError as e:
        raise InvalidCredential("Token has expired") from e
    except jwt.InvalidTokenError as e:
        raise InvalidCredential(f"Invalid token: {e}") from e
    return payload


def token_id_for(claims: dict[str, Any]) -> str:
    """Revocation key for a token: ``<sub>:<iat>``."""
    return f"{claims['sub']}:{claims['iat']}"
