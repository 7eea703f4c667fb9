"""Consent evaluation and the append-only consent ledger."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lingualetter.core.config import settings
from lingualetter.models.user_consent import UserConsent
from lingualetter.schemas.consent import (
    ConsentCreate,
    ConsentInfo,
    ConsentRecordResponse,
    PolicyVersions,
)

logger = logging.getLogger(__name__)


def current_policy_versions() -> PolicyVersions:
    """Policy versions currently in force."""
    return PolicyVersions(
        terms=settings.terms_version,
        privacy=settings.privacy_version,
        newsletter=settings.newsletter_version,
    )


def evaluate(latest: UserConsent | None, current_versions: PolicyVersions) -> ConsentInfo:
    """Decide whether the user must (re)affirm the current policies.

    Consent is required when there is no record, when either required policy
    was declined, or when the accepted terms/privacy version differs from the
    one in force. A newsletter version change alone never forces re-consent.
    """
    required = (
        latest is None
        or not latest.terms_accepted
        or not latest.privacy_accepted
        or latest.terms_version != current_versions.terms
        or latest.privacy_version != current_versions.privacy
    )
    return ConsentInfo(
        required=required,
        current_versions=current_versions,
        latest=ConsentRecordResponse.model_validate(latest) if latest else None,
    )


class ConsentService:
    """Reads and appends consent records."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def latest(self, user_id: UUID) -> UserConsent | None:
        """Most recent consent record for the user."""
        stmt = (
            select(UserConsent)
            .where(UserConsent.user_id == user_id)
            .order_by(UserConsent.created_at.desc())
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_info(self, user_id: UUID) -> ConsentInfo:
        return evaluate(await self.latest(user_id), current_policy_versions())

    async def append(self, user_id: UUID, data: ConsentCreate) -> UserConsent:
        """Record a consent submission.

        A submission that repeats the latest record's versions, where that
        record already accepted both required policies, is not stored again.
        """
        versions = current_policy_versions()
        terms_version = data.terms_version or versions.terms
        privacy_version = data.privacy_version or versions.privacy
        newsletter_version = data.newsletter_version or versions.newsletter

        latest = await self.latest(user_id)
        if (
            latest is not None
            and latest.terms_accepted
            and latest.privacy_accepted
            and latest.terms_version == terms_version
            and latest.privacy_version == privacy_version
            and latest.newsletter_version == newsletter_version
            and latest.newsletter_opt_in == data.newsletter_opt_in
            and data.terms_accepted
            and data.privacy_accepted
        ):
            logger.info("Duplicate consent submission skipped: user=%s", user_id)
            return latest

        record = UserConsent(
            user_id=user_id,
            terms_accepted=data.terms_accepted,
            privacy_accepted=data.privacy_accepted,
            newsletter_opt_in=data.newsletter_opt_in,
            terms_version=terms_version,
            privacy_version=privacy_version,
            newsletter_version=newsletter_version,
        )
        self.db.add(record)
        await self.db.commit()
        await self.db.refresh(record)
        logger.info(
            "Consent recorded: user=%s terms=%s privacy=%s",
            user_id,
            terms_version,
            privacy_version,
        )
        return record
