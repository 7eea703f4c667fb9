"""Pydantic schemas for authentication and user profile."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from lingualetter.models.user import AuthProvider, UserRole
from lingualetter.schemas.common import BaseSchema
from lingualetter.schemas.consent import ConsentInfo


class ExternalProfile(BaseSchema):
    """Identity returned by an OAuth provider."""

    email: str | None = None
    external_id: str | None = None
    name: str | None = None
    picture: str | None = None


class OAuthCodeRequest(BaseSchema):
    """Authorization code handed off by the frontend."""

    code: str | None = Field(default=None, description="Authorization code")
    redirect_uri: str | None = Field(default=None, description="Redirect URI used for the code")
    id_token: str | None = Field(default=None, description="Google ID token (alternative to code)")


class UserResponse(BaseSchema):
    """Public view of a user."""

    id: UUID
    email: str
    name: str | None = None
    picture: str | None = None
    provider: AuthProvider
    role: UserRole
    created_at: datetime
    last_login: datetime | None = None


class AuthResponse(BaseSchema):
    """Successful login."""

    success: bool = True
    token: str
    user: UserResponse
    consents: ConsentInfo


class AuthStatusResponse(BaseSchema):
    """Authentication status for the presented bearer token."""

    authenticated: bool
    user: UserResponse | None = None
    consents: ConsentInfo | None = None
