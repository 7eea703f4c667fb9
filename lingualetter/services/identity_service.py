"""Identity resolution, session issuing and account deletion."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from lingualetter.core.exceptions import (
    AccountConflict,
    MissingRequiredField,
    RevocationSkipped,
)
from lingualetter.core.policy import AdminPolicy, get_admin_policy
from lingualetter.core.security import create_session_token
from lingualetter.models.invalidated_token import RevocationReason
from lingualetter.models.user import AuthProvider, User, UserRole
from lingualetter.models.user_consent import UserConsent
from lingualetter.models.user_stats import UserStats
from lingualetter.schemas.auth import ExternalProfile
from lingualetter.schemas.consent import ConsentInfo
from lingualetter.services.consent_service import ConsentService
from lingualetter.services.subscription_service import SubscriptionService
from lingualetter.services.token_service import TokenRevocationStore

logger = logging.getLogger(__name__)


@dataclass
class AuthResult:
    """A resolved user with a freshly issued session token."""

    user: User
    session_token: str
    consent_info: ConsentInfo


class IdentityBroker:
    """Maps external OAuth identities to local users."""

    def __init__(self, db: AsyncSession, admin_policy: AdminPolicy | None = None) -> None:
        self.db = db
        self.admin_policy = admin_policy or get_admin_policy()

    async def get_user(self, user_id: UUID) -> User | None:
        return await self.db.get(User, user_id)

    def _id_column(self, provider: AuthProvider) -> Any:
        return User.google_id if provider is AuthProvider.GOOGLE else User.kakao_id

    async def _find_user(self, provider: AuthProvider, email: str, external_id: str) -> User | None:
        """Resolve by provider id first, then by email.

        When the provider id and the email belong to different users, the
        provider id wins and nothing is relinked.
        """
        by_id = select(User).where(self._id_column(provider) == external_id)
        user = (await self.db.execute(by_id)).scalar_one_or_none()
        if user is not None:
            return user
        by_email = select(User).where(User.email == email)
        return (await self.db.execute(by_email)).scalar_one_or_none()

    async def _email_taken(self, email: str, user_id: UUID) -> bool:
        stmt = select(User.id).where(User.email == email, User.id != user_id)
        return (await self.db.execute(stmt)).first() is not None

    def _role_for(self, email: str) -> UserRole:
        return UserRole.ADMIN if self.admin_policy.is_admin(email) else UserRole.USER

    async def _apply_profile(
        self,
        user: User,
        provider: AuthProvider,
        profile: ExternalProfile,
        email: str,
        external_id: str,
        now: datetime,
    ) -> None:
        if user.email != email:
            if await self._email_taken(email, user.id):
                logger.warning(
                    "Profile email %s belongs to another user; keeping %s for user=%s",
                    email,
                    user.email,
                    user.id,
                )
            else:
                user.email = email
        if profile.name:
            user.name = profile.name
        if profile.picture:
            user.picture = profile.picture
        if provider is AuthProvider.GOOGLE and not user.google_id:
            user.google_id = external_id
        if provider is AuthProvider.KAKAO and not user.kakao_id:
            user.kakao_id = external_id
        user.provider = provider
        user.last_login = now
        user.role = self._role_for(user.email)

    async def _update_user(
        self,
        user: User,
        provider: AuthProvider,
        profile: ExternalProfile,
        email: str,
        external_id: str,
        now: datetime,
    ) -> User:
        await self._apply_profile(user, provider, profile, email, external_id, now)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(
                "Login update conflict: provider=%s external_id=%s", provider.value, external_id
            )
            raise AccountConflict() from e
        return user

    async def _upsert_user(
        self, provider: AuthProvider, email: str, external_id: str, profile: ExternalProfile
    ) -> User:
        now = datetime.now(UTC)
        user = await self._find_user(provider, email, external_id)
        if user is not None:
            return await self._update_user(user, provider, profile, email, external_id, now)

        user = User(
            email=email,
            google_id=external_id if provider is AuthProvider.GOOGLE else None,
            kakao_id=external_id if provider is AuthProvider.KAKAO else None,
            name=profile.name,
            picture=profile.picture,
            provider=provider,
            role=self._role_for(email),
            last_login=now,
        )
        self.db.add(user)
        try:
            await self.db.flush()
            self.db.add(UserStats(user_id=user.id))
            await self.db.commit()
        except IntegrityError:
            # Another request created this user first; fall back to the update path
            await self.db.rollback()
            user = await self._find_user(provider, email, external_id)
            if user is None:
                raise
            return await self._update_user(user, provider, profile, email, external_id, now)

        logger.info(
            "User created: email=%s provider=%s role=%s", email, provider.value, user.role.value
        )
        return user

    async def resolve_and_issue(
        self, provider: AuthProvider, profile: ExternalProfile
    ) -> AuthResult:
        """Resolve (or create) the local user for a provider profile and sign them in.

        The role is recomputed from the admin policy on every call.

        Raises:
            MissingRequiredField: If the profile lacks an email or external id.
        """
        if not profile.email:
            raise MissingRequiredField("Email is required")
        if not profile.external_id:
            raise MissingRequiredField(f"{provider.value} id is required")

        email = profile.email.strip().lower()
        user = await self._upsert_user(provider, email, profile.external_id, profile)
        await self.db.refresh(user)

        token = create_session_token({
            "sub": str(user.id),
            "email": user.email,
            "name": user.name,
            "picture": user.picture,
            "provider": user.provider.value,
            "role": user.role.value,
        })
        consent_info = await ConsentService(self.db).get_info(user.id)

        logger.info("Session issued: user=%s provider=%s", user.id, provider.value)
        return AuthResult(user=user, session_token=token, consent_info=consent_info)

    async def delete_account(self, user_id: UUID, token: str | None = None) -> bool:
        """Delete a user and everything owned by them.

        The presenting token is revoked first, then consents and stats are
        removed, any newsletter subscription for the user's email is
        deactivated, and the user row is deleted in one transaction.

        Returns:
            False if the user does not exist.
        """
        if token:
            try:
                await TokenRevocationStore(self.db).revoke(token, RevocationReason.ACCOUNT_DELETED)
            except RevocationSkipped:
                logger.warning("Could not revoke token during account deletion: user=%s", user_id)

        user = await self.get_user(user_id)
        if user is None:
            return False

        email = user.email
        await self.db.execute(delete(UserConsent).where(UserConsent.user_id == user_id))
        await self.db.execute(delete(UserStats).where(UserStats.user_id == user_id))
        await SubscriptionService(self.db).deactivate_email(email)
        await self.db.delete(user)
        await self.db.commit()

        logger.info("Account deleted: user=%s", user_id)
        return True
