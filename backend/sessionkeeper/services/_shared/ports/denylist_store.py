from __future__ import annotations

import threading
from datetime import datetime
from typing import Protocol


class TokenDenylistStore(Protocol):
    """
    Abstraction for a denylist store of **bearer tokens**, keyed by digest.

    Methods are expected to be idempotent. Implementations raise on backend
    failures; they never answer ``False`` when the backend could not be read.
    """

    def revoke(self, digest: str, expires_at: datetime) -> None: ...
    def is_revoked(self, digest: str) -> bool: ...
    def prune(self, now: datetime) -> int: ...


class InMemoryDenylistStore(TokenDenylistStore):
    """Simple in-memory denylist for unit tests."""

    def __init__(self) -> None:
        self._revoked: dict[str, datetime] = {}
        self._lock = threading.Lock()

    def revoke(self, digest: str, expires_at: datetime) -> None:
        with self._lock:
            current = self._revoked.get(digest)
            if current is None or expires_at > current:
                self._revoked[digest] = expires_at

    def is_revoked(self, digest: str) -> bool:
        # Entries are kept until pruned; a stale entry only rejects an already expired token.
        return digest in self._revoked

    def prune(self, now: datetime) -> int:
        with self._lock:
            dead = [d for d, exp in self._revoked.items() if exp <= now]
            for d in dead:
                del self._revoked[d]
            return len(dead)

    def __len__(self) -> int:
        return len(self._revoked)
