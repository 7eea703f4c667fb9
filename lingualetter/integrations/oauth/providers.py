"""Provider dispatch for OAuth flows."""

from lingualetter.core.exceptions import MissingRequiredField, UnsupportedProvider
from lingualetter.integrations.oauth import google, kakao
from lingualetter.models.user import AuthProvider
from lingualetter.schemas.auth import ExternalProfile


def parse_provider(name: str) -> AuthProvider:
    try:
        return AuthProvider(name.lower())
    except ValueError as e:
        raise UnsupportedProvider(f"Unsupported provider: {name}") from e


def build_auth_url(provider: AuthProvider, nonce: str) -> str:
    if provider is AuthProvider.GOOGLE:
        return google.build_auth_url(nonce)
    return kakao.build_auth_url(nonce)


async def fetch_external_profile(
    provider: AuthProvider,
    code: str | None,
    redirect_uri: str | None = None,
    id_token: str | None = None,
) -> ExternalProfile:
    """Exchange a code (or Google ID token) for the provider's profile.

    Raises:
        MissingRequiredField: If neither a code nor a usable ID token is given.
        UpstreamProviderError: If the provider call fails.
    """
    if provider is AuthProvider.GOOGLE:
        if code:
            access_token = await google.exchange_code_for_token(code, redirect_uri)
            return await google.fetch_profile(access_token)
        if id_token:
            return await google.verify_id_token(id_token)
        raise MissingRequiredField("Authorization code is required")

    if not code:
        raise MissingRequiredField("Authorization code is required")
    access_token = await kakao.exchange_code_for_token(code, redirect_uri)
    return await kakao.fetch_profile(access_token)
