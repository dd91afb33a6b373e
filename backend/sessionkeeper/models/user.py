"""User aggregate: identity, credentials, lockout, rotation slot and sessions."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import Boolean, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates
from werkzeug.security import check_password_hash, generate_password_hash

from sessionkeeper.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin, UTCDateTime

if TYPE_CHECKING:
    from .session import UserSession

ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLES = frozenset({ROLE_USER, ROLE_ADMIN})


class User(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    Authentication identity and its per-device sessions.

    The row is the unit of atomic read-modify-write: every change to the
    aggregate (lockout counters, one-time token hashes, the rotation slot or
    the ``sessions`` sequence) bumps ``version`` and the resulting UPDATE is
    conditional on the previously loaded value.

    Fields
    ------
    email : str
        Login email. Stored normalized (lowercase, trimmed).
    password_hash : str
        Hashed password (write-only setter via ``password``).
    role : str
        ``"user"`` or ``"admin"``.
    is_verified : bool
        Email ownership confirmed.
    verification_token_hash / reset_token_hash / refresh_token_hash : str | None
        Keyed hashes of outstanding opaque tokens; plaintext is never stored.
    reset_expires_at / refresh_expires_at : datetime | None
        Absolute expiry of the reset and rotation tokens.
    refresh_device_id : str | None
        Device the rotation token was issued to; refreshed bearers stay bound to it.
    failed_attempts : int
        Consecutive failed password comparisons.
    locked_until : datetime | None
        Logins are refused until this instant.
    version : int
        Optimistic concurrency counter.
    sessions : list[UserSession]
        Device sessions ordered by creation, unique per device id.
    """

    __tablename__ = "users"

    # Columns
    email: Mapped[str] = mapped_column(String(254), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(254), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default=ROLE_USER)

    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    verification_token_hash: Mapped[str | None] = mapped_column(String(128), nullable=True)

    reset_token_hash: Mapped[str | None] = mapped_column(String(128), nullable=True)
    reset_expires_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    failed_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    locked_until: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    refresh_token_hash: Mapped[str | None] = mapped_column(String(128), nullable=True)
    refresh_expires_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    refresh_device_id: Mapped[str | None] = mapped_column(String(128), nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    sessions: Mapped[list[UserSession]] = relationship(
        "UserSession",
        back_populates="user",
        order_by="UserSession.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    # Constraints & indexes
    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        Index("ix_users_verification_token_hash", "verification_token_hash"),
        Index("ix_users_reset_token_hash", "reset_token_hash"),
        Index("ix_users_refresh_token_hash", "refresh_token_hash"),
    )

    # Programmatic version counter: the service layer bumps it explicitly
    __mapper_args__ = {"version_id_col": version, "version_id_generator": False}

    # -------------------- Password API --------------------
    @property
    def password(self) -> Any:  # pragma: no cover - explicit write-only contract
        """
        Disallow reading passwords.

        :raises AttributeError: Always, to ensure password is write-only.
        """
        raise AttributeError("Password is write-only.")

    @password.setter
    def password(self, raw: str) -> None:
        """
        Hash and set the password.

        :param raw: Plain text password to hash.
        :type raw: str
        """
        if not isinstance(raw, str) or not raw:
            raise ValueError("Password must be a non-empty string.")
        self.password_hash = generate_password_hash(raw)

    def verify_password(self, raw: str) -> bool:
        """
        Verify a password against the stored hash.

        :param raw: Plain text password candidate.
        :type raw: str
        :returns: ``True`` if it matches; otherwise ``False``.
        :rtype: bool
        """
        if not self.password_hash:
            return False
        return bool(check_password_hash(self.password_hash, raw))

    # -------------------- Lockout --------------------
    def is_locked(self, now: datetime) -> bool:
        """Return ``True`` while ``locked_until`` lies in the future."""
        return self.locked_until is not None and self.locked_until > now

    # -------------------- Validators --------------------
    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        """
        Normalize and validate email.

        :param key: Field name (``email``).
        :type key: str
        :param value: Email to normalize.
        :type value: str
        :returns: Normalized email (lowercased/trimmed).
        :rtype: str
        :raises ValueError: If email is missing or malformed.
        """
        if not value or not isinstance(value, str):
            raise ValueError("Email is required.")
        v = value.strip().lower()
        # Minimal sanity check; full validation happens at API layer.
        if "@" not in v or "." not in v.split("@")[-1]:
            raise ValueError("Email format looks invalid.")
        return v

    @validates("role")
    def _validate_role(self, key: str, value: str) -> str:
        if value not in ROLES:
            raise ValueError(f"Unknown role: {value!r}")
        return value
