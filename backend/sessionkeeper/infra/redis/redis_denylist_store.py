import math
from datetime import UTC, datetime
from typing import cast

import redis  # type: ignore[import-untyped]


class RedisTokenDenylistStore:
    """
    Denylist for **bearer tokens** keyed by their lookup digest.

    Each entry is a small marker whose TTL matches the token's remaining
    lifetime, so Redis expires dead entries on its own and :meth:`prune`
    has nothing to do.
    """

    def __init__(self, r: redis.Redis):
        self.r = r

    @staticmethod
    def _k(digest: str) -> str:
        return f"deny:at:{digest}"

    def is_revoked(self, digest: str) -> bool:
        return cast(int, self.r.exists(self._k(digest))) == 1

    def revoke(self, digest: str, expires_at: datetime) -> None:
        now = datetime.now(UTC).timestamp()
        ttl = max(1, math.ceil(expires_at.timestamp() - now))
        # round up: the marker must outlive the token it denies
        self.r.set(self._k(digest), "1", ex=ttl)

    def prune(self, now: datetime) -> int:
        return 0
