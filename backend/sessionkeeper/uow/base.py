"""
Unit of Work contract used by the session core.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sessionkeeper.repositories import RevokedTokenRepository, UserRepository


class UnitOfWork(ABC):
    """
    One transaction over the user aggregate and the revocation table.

    Every read-modify-write of a user (device sessions, lockout counters,
    one-time token hashes, the rotation slot) happens inside exactly one
    unit of work, so the version check covers the whole change. Leaving the
    block normally commits; an exception rolls back and propagates.
    """

    users: UserRepository
    revoked_tokens: RevokedTokenRepository

    @abstractmethod
    def __enter__(self) -> UnitOfWork: ...

    @abstractmethod
    def __exit__(self, exc_type, exc, tb) -> None: ...

    @abstractmethod
    def commit(self) -> None: ...

    @abstractmethod
    def rollback(self) -> None: ...
