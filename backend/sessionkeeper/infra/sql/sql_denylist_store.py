from __future__ import annotations

from datetime import datetime

from sessionkeeper.services._shared.base import BaseService


class SQLTokenDenylistStore(BaseService):
    """
    Denylist for **bearer tokens** stored in the ``revoked_tokens`` table.

    Each call runs in its own unit of work so a revocation is durable as soon
    as :meth:`revoke` returns, independent of the caller's transaction.
    """

    def revoke(self, digest: str, expires_at: datetime) -> None:
        with self.rw_uow() as uow:
            uow.revoked_tokens.upsert(digest, expires_at)

    def is_revoked(self, digest: str) -> bool:
        with self.ro_uow() as uow:
            return uow.revoked_tokens.exists(token_digest=digest)

    def prune(self, now: datetime) -> int:
        with self.rw_uow() as uow:
            return uow.revoked_tokens.delete_expired(now)
