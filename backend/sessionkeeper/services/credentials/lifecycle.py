# sessionkeeper/services/credentials/lifecycle.py
"""
One-time credential tokens stored as keyed hashes on the user record.

Verification tokens have no expiry of their own: they stop working once
consumed. Reset tokens additionally expire ``reset_ttl`` after issuance.
Lookups hash the presented value and search by digest; a miss and an
expired hit are reported identically.
"""

from __future__ import annotations

import secrets
from datetime import timedelta

from sessionkeeper.models.user import User
from sessionkeeper.repositories.user import UserRepository
from sessionkeeper.services._shared.base import Clock, utcnow
from sessionkeeper.services._shared.errors import InvalidOrExpiredTokenError
from sessionkeeper.services._shared.ports import TokenCodec

DEFAULT_RESET_TTL = timedelta(minutes=10)

# 20 random bytes, hex-encoded
ONE_TIME_TOKEN_BYTES = 20


class CredentialLifecycle:
    """
    Issue and consume verification and password-reset tokens.

    Methods mutate the aggregate passed in (or found through ``users``);
    persisting and version bumping are left to the caller's unit of work.
    """

    def __init__(
        self,
        *,
        codec: TokenCodec,
        reset_ttl: timedelta = DEFAULT_RESET_TTL,
        clock: Clock | None = None,
    ) -> None:
        self.codec = codec
        self.reset_ttl = reset_ttl
        self.clock: Clock = clock or utcnow

    @staticmethod
    def _new_plaintext() -> str:
        return secrets.token_hex(ONE_TIME_TOKEN_BYTES)

    def issue_verification_token(self, user: User) -> str:
        plaintext = self._new_plaintext()
        user.verification_token_hash = self.codec.hash_for_lookup(plaintext)
        return plaintext

    def issue_reset_token(self, user: User) -> str:
        plaintext = self._new_plaintext()
        user.reset_token_hash = self.codec.hash_for_lookup(plaintext)
        user.reset_expires_at = self.clock() + self.reset_ttl
        return plaintext

    def consume_reset_token(self, users: UserRepository, plaintext: str) -> User:
        """
        Find the user owning an unexpired reset token and burn the token.

        :raises InvalidOrExpiredTokenError: On any mismatch or expiry.
        """
        if not plaintext:
            raise InvalidOrExpiredTokenError()
        user = users.get_by_token_hash("reset_token_hash", self.codec.hash_for_lookup(plaintext))
        if user is None or user.reset_expires_at is None or user.reset_expires_at <= self.clock():
            raise InvalidOrExpiredTokenError()
        user.reset_token_hash = None
        user.reset_expires_at = None
        return user

    def consume_verification_token(self, users: UserRepository, plaintext: str) -> User:
        """
        Mark the owner of ``plaintext`` as verified and burn the token.

        :raises InvalidOrExpiredTokenError: If no user holds the token.
        """
        if not plaintext:
            raise InvalidOrExpiredTokenError()
        user = users.get_by_token_hash(
            "verification_token_hash", self.codec.hash_for_lookup(plaintext)
        )
        if user is None:
            raise InvalidOrExpiredTokenError()
        user.is_verified = True
        user.verification_token_hash = None
        return user
