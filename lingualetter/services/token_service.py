"""Session token revocation store."""

import logging
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from lingualetter.core.exceptions import InvalidCredential, RevocationSkipped
from lingualetter.core.security import decode_session_token, token_id_for
from lingualetter.models.invalidated_token import InvalidatedToken, RevocationReason

logger = logging.getLogger(__name__)


class TokenRevocationStore:
    """Denylist of session tokens invalidated before their natural expiry."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def revoke(
        self,
        token: str,
        reason: RevocationReason,
        *,
        commit: bool = True,
    ) -> str:
        """Add a token to the denylist.

        Expiry is not re-validated, so an already-expired token can still be
        revoked. Revoking the same token twice is a no-op.

        Returns:
            The token id that was revoked.

        Raises:
            RevocationSkipped: If the token cannot be parsed.
        """
        try:
            claims = decode_session_token(token, verify_exp=False)
            token_id = token_id_for(claims)
            user_id = UUID(str(claims["sub"]))
            expires_at = datetime.fromtimestamp(int(claims["exp"]), tz=UTC)
        except (InvalidCredential, KeyError, ValueError, TypeError) as e:
            raise RevocationSkipped(f"Token could not be parsed: {e}") from e

        if await self.is_revoked(token_id):
            return token_id

        self.db.add(
            InvalidatedToken(
                token_id=token_id,
                user_id=user_id,
                reason=reason,
                expires_at=expires_at,
            )
        )
        try:
            await self.db.flush()
        except IntegrityError:
            # Lost a race with a concurrent revoke of the same token
            await self.db.rollback()
            return token_id

        if commit:
            await self.db.commit()
        logger.info("Token revoked: user=%s reason=%s", user_id, reason.value)
        return token_id

    async def is_revoked(self, token_id: str) -> bool:
        stmt = select(InvalidatedToken.id).where(InvalidatedToken.token_id == token_id)
        result = await self.db.execute(stmt)
        return result.first() is not None

    async def purge_expired(self, now: datetime | None = None) -> int:
        """Delete denylist entries whose tokens have expired anyway.

        Args:
            now: Reference time; defaults to the current UTC time.

        Returns:
            Number of entries removed.
        """
        cutoff = now or datetime.now(UTC)
        result = await self.db.execute(
            delete(InvalidatedToken).where(InvalidatedToken.expires_at < cutoff)
        )
        await self.db.commit()
        deleted = result.rowcount or 0  # type: ignore[attr-defined]
        if deleted:
            logger.info("Purged %d expired invalidated tokens", deleted)
        return deleted
