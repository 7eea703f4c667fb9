"""Domain exception hierarchy.

Every error carries a stable machine ``code`` and the HTTP status it maps to.
Routes either render these as ``{success: false, error, code}`` bodies or let
the handler registered in ``lingualetter.main`` turn them into JSON errors.
"""

from fastapi import status


class LinguaLetterError(Exception):
    """Base exception for all domain errors."""

    code = "internal_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.__class__.__doc__ or self.code
        super().__init__(self.message)

    def to_response(self) -> dict[str, str | bool]:
        return {"success": False, "error": self.message, "code": self.code}


# --- Validation (400) ---


class ValidationError(LinguaLetterError):
    """Request could not be validated."""

    code = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST


class MissingRequiredField(ValidationError):
    """A required field was not supplied."""

    code = "missing_required_field"


class InvalidEmail(ValidationError):
    """Invalid email address."""

    code = "invalid_email"


class InvalidToken(ValidationError):
    """Invalid or expired token."""

    code = "invalid_token"


class UnsupportedProvider(ValidationError):
    """Unsupported OAuth provider."""

    code = "unsupported_provider"


# --- Authentication (401) ---


class AuthenticationError(LinguaLetterError):
    """Authentication failed."""

    code = "authentication_error"
    status_code = status.HTTP_401_UNAUTHORIZED


class InvalidCredential(AuthenticationError):
    """Invalid or expired session token."""

    code = "invalid_credential"


# --- Conflicts and state violations ---


class ConflictError(LinguaLetterError):
    """Operation conflicts with current state."""

    code = "conflict"
    status_code = status.HTTP_409_CONFLICT


class AlreadySubscribed(ConflictError):
    """This email is already subscribed."""

    code = "already_subscribed"


class NotSubscribed(ConflictError):
    """This email is not subscribed."""

    code = "not_subscribed"
    status_code = status.HTTP_404_NOT_FOUND


class PermissionDenied(ConflictError):
    """You can only manage your own subscription."""

    code = "permission_denied"
    status_code = status.HTTP_403_FORBIDDEN


class AccountConflict(ConflictError):
    """This sign-in is linked to a different account."""

    code = "account_conflict"


class ConsentRequired(ConflictError):
    """Consent to the current terms and privacy policy is required."""

    code = "consent_required"
    status_code = status.HTTP_403_FORBIDDEN


# --- Upstream failures (502) ---


class UpstreamProviderError(LinguaLetterError):
    """An external provider call failed."""

    code = "upstream_provider_error"
    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, provider: str, message: str | None = None) -> None:
        self.provider = provider
        super().__init__(message or f"{provider} request failed")


# --- Non-fatal ---


class RevocationSkipped(LinguaLetterError):
    """Token could not be parsed for revocation."""

    code = "revocation_skipped"
    status_code = status.HTTP_200_OK
