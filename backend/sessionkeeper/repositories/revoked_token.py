"""Revoked-token repository backing the SQL revocation ledger."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, select

from sessionkeeper.models.revoked_token import RevokedToken
from sessionkeeper.repositories.base import BaseRepository


class RevokedTokenRepository(BaseRepository[RevokedToken]):
    """Persistence-only access to :class:`RevokedToken` rows."""

    model = RevokedToken

    def _filterable_fields(self):
        return {"token_digest": RevokedToken.token_digest}

    def get_by_digest(self, digest: str) -> RevokedToken | None:
        stmt = select(RevokedToken).where(RevokedToken.token_digest == digest)
        return self.session.execute(stmt).scalars().first()

    def upsert(self, digest: str, expires_at: datetime) -> RevokedToken:
        """Insert a row for ``digest`` or extend the existing one.

        :param digest: Keyed hash of the revoked token.
        :type digest: str
        :param expires_at: Natural expiry of the token.
        :type expires_at: datetime
        :returns: The persisted row.
        :rtype: RevokedToken
        """
        row = self.get_by_digest(digest)
        if row is None:
            return self.add(RevokedToken(token_digest=digest, expires_at=expires_at))
        if expires_at > row.expires_at:
            row.expires_at = expires_at
            self.flush()
        return row

    def delete_expired(self, now: datetime) -> int:
        """Bulk-delete rows whose ``expires_at`` is not after ``now``.

        :returns: Number of rows removed.
        :rtype: int
        """
        result = self.session.execute(
            delete(RevokedToken)
            .where(RevokedToken.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        return int(result.rowcount or 0)
