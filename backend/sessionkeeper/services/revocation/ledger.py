# sessionkeeper/services/revocation/ledger.py
from __future__ import annotations

import logging
from datetime import datetime

from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy.exc import SQLAlchemyError

from sessionkeeper.services._shared.base import Clock, utcnow
from sessionkeeper.services._shared.errors import InfrastructureError
from sessionkeeper.services._shared.ports import TokenCodec, TokenDenylistStore

log = logging.getLogger(__name__)

# Backend failures that must surface as infrastructure errors, never as "not revoked"
STORE_ERRORS: tuple[type[BaseException], ...] = (RedisError, SQLAlchemyError, OSError)


class RevocationLedger:
    """
    Blacklist of bearer tokens invalidated before their natural expiry.

    Tokens are never stored raw: the ledger keys every entry by
    ``codec.hash_for_lookup(token)``. An entry only has to outlive the token
    it shadows, so pruning is purely a space concern; a missed sweep can
    never let a revoked token back in.

    :param store: Backend implementing :class:`TokenDenylistStore`.
    :param codec: Codec providing the lookup digest.
    :param clock: Source of "now" for :meth:`prune`.
    """

    def __init__(
        self, *, store: TokenDenylistStore, codec: TokenCodec, clock: Clock | None = None
    ) -> None:
        self.store = store
        self.codec = codec
        self.clock: Clock = clock or utcnow

    def revoke(self, token: str, expires_at: datetime) -> None:
        """
        Record ``token`` as invalid until ``expires_at``.

        :raises InfrastructureError: If the backend cannot persist the entry.
        """
        digest = self.codec.hash_for_lookup(token)
        try:
            self.store.revoke(digest, expires_at)
        except STORE_ERRORS as exc:
            log.error("ledger.revoke_failed", exc_info=True)
            raise InfrastructureError("Revocation store unavailable") from exc
        log.info("ledger.revoked expires_at=%s", expires_at.isoformat())

    def is_revoked(self, token: str) -> bool:
        """
        Return ``True`` when ``token`` was revoked.

        :raises InfrastructureError: If the backend cannot be read. The caller
            must treat this as a failure, not as an allow.
        """
        digest = self.codec.hash_for_lookup(token)
        try:
            return self.store.is_revoked(digest)
        except STORE_ERRORS as exc:
            log.error("ledger.lookup_failed", exc_info=True)
            raise InfrastructureError("Revocation store unavailable") from exc

    def prune(self, now: datetime | None = None) -> int:
        """
        Drop entries whose token has already expired.

        :returns: Number of entries removed (``0`` for TTL-based stores).
        """
        moment = now or self.clock()
        try:
            removed = self.store.prune(moment)
        except STORE_ERRORS as exc:
            log.error("ledger.prune_failed", exc_info=True)
            raise InfrastructureError("Revocation store unavailable") from exc
        log.info("ledger.pruned removed=%s", removed)
        return removed
