from __future__ import annotations

import hashlib
import hmac
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Protocol

from sessionkeeper.services._shared.errors import AuthError, AuthFailure


@dataclass(frozen=True, slots=True)
class IssuedToken:
    """
    A freshly signed bearer token.

    :ivar token: Encoded token handed to the client.
    :ivar expires_at: Absolute expiry (UTC) carried in ``exp``.
    """

    token: str
    expires_at: datetime


@dataclass(frozen=True, slots=True)
class TokenClaims:
    """
    Verified content of a bearer token.

    :ivar user_id: Subject of the token.
    :ivar expires_at: Absolute expiry (UTC).
    :ivar claims: Any additional claims (``role``, ``device_id`` ...).
    """

    user_id: int
    expires_at: datetime
    claims: dict[str, Any] = field(default_factory=dict)

    @property
    def role(self) -> str | None:
        value = self.claims.get("role")
        return str(value) if value is not None else None

    @property
    def device_id(self) -> str | None:
        """Device the token was issued to, ``None`` for unbound tokens."""
        value = self.claims.get("device_id")
        return str(value) if value is not None else None


class TokenCodec(Protocol):
    """Port for signing bearer tokens and hashing opaque tokens."""

    def issue(
        self, user_id: int, ttl: timedelta, *, claims: dict[str, Any] | None = None
    ) -> IssuedToken: ...

    def verify(self, token: str) -> TokenClaims:
        """
        Check signature and expiry.

        :raises AuthError: ``EXPIRED`` for a well-formed token past ``exp``,
            ``INVALID`` for anything malformed, forged or of the wrong type.
        """

    def issue_rotation(self) -> tuple[str, str]:
        """Return ``(plaintext, digest)`` for a new opaque rotation token."""

    def hash_for_lookup(self, value: str) -> str:
        """Deterministic one-way digest used to find stored token hashes."""


def keyed_digest(key: bytes, value: str) -> str:
    """HMAC-SHA256 hex digest of ``value`` under ``key``."""
    return hmac.new(key, value.encode("utf-8"), hashlib.sha256).hexdigest()


class StubTokenCodec(TokenCodec):
    """
    Deterministic codec used in unit tests.

    Tokens are opaque counters; expiry is evaluated against an injectable
    clock so tests can move time without touching a real signer.
    """

    def __init__(self, *, clock, key: bytes = b"stub-pepper") -> None:
        self._clock = clock
        self._key = key
        self._seq = 0
        self._issued: dict[str, TokenClaims] = {}

    def issue(
        self, user_id: int, ttl: timedelta, *, claims: dict[str, Any] | None = None
    ) -> IssuedToken:
        self._seq += 1
        token = f"at.{user_id}.{self._seq}"
        expires_at = self._clock() + ttl
        self._issued[token] = TokenClaims(
            user_id=user_id, expires_at=expires_at, claims=dict(claims or {})
        )
        return IssuedToken(token=token, expires_at=expires_at)

    def verify(self, token: str) -> TokenClaims:
        decoded = self._issued.get(token)
        if decoded is None:
            raise AuthError(AuthFailure.INVALID)
        if decoded.expires_at <= self._clock():
            raise AuthError(AuthFailure.EXPIRED)
        return decoded

    def issue_rotation(self) -> tuple[str, str]:
        plaintext = secrets.token_hex(32)
        return plaintext, self.hash_for_lookup(plaintext)

    def hash_for_lookup(self, value: str) -> str:
        return keyed_digest(self._key, value)
