"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and should never import or depend
on Flask or HTTP. They serve as stable contracts between repositories, the
session core and application services.

The translation to HTTP responses (RFC 7807) is handled by
``sessionkeeper/core/errors.py`` via ``BaseService.translate_exceptions()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from sqlalchemy.exc import IntegrityError


def violates(exc: IntegrityError, constraint_name: str, *, column: str | None = None) -> bool:
    """
    Check whether an IntegrityError originates from a specific constraint.

    PostgreSQL reports the constraint name; SQLite only names the column
    (``UNIQUE constraint failed: users.email``), hence the ``column`` fallback.

    Parameters
    ----------
    exc : IntegrityError
        The exception raised by SQLAlchemy during flush/commit.
    constraint_name : str
        The name of the database constraint to match (e.g., 'uq_users_email').
    column : str | None
        Qualified column (``table.column``) matched when the name is absent.

    Returns
    -------
    bool
        True if the IntegrityError matches the given constraint.
    """
    message = str(exc.orig).lower() if exc.orig else ""
    if constraint_name.lower() in message:
        return True
    return column is not None and column.lower() in message


# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - They can be safely raised from repositories or domain logic.
    - The API layer later translates them to ``APIError``.
    """

    pass


# --------------------------------------------------------------------------- #
# Client errors
# --------------------------------------------------------------------------- #


class ValidationError(ServiceError):
    """Malformed or unacceptable input (e.g., duplicated email)."""

    def __init__(self, message: str, *, code: str = "bad_request") -> None:
        super().__init__(message)
        self.code = code


class InvalidOrExpiredTokenError(ValidationError):
    """
    A one-time reset/verification token did not match or has expired.

    Both cases are reported identically to avoid account enumeration.
    """

    def __init__(self) -> None:
        super().__init__("Invalid or expired token", code="invalid_or_expired_token")


class InvalidCredentialsError(ValidationError):
    """Email/password pair rejected. Never tells which part was wrong."""

    def __init__(self) -> None:
        super().__init__("Invalid credentials", code="invalid_credentials")


class AuthFailure(str, Enum):
    """Reasons a bearer credential or device session is not accepted."""

    TOKEN_MISSING = "token_missing"
    INVALID = "token_invalid"
    EXPIRED = "token_expired"
    BLACKLISTED = "token_blacklisted"
    DEVICE_ID_REQUIRED = "device_id_required"
    INVALID_SESSION = "INVALID_SESSION"


_AUTH_MESSAGES = {
    AuthFailure.TOKEN_MISSING: "No token provided",
    AuthFailure.INVALID: "Invalid token",
    AuthFailure.EXPIRED: "Token expired",
    AuthFailure.BLACKLISTED: "Token has been invalidated",
    AuthFailure.DEVICE_ID_REQUIRED: "Device ID required",
    AuthFailure.INVALID_SESSION: "No active session found for this device",
}


class AuthError(ServiceError):
    """Authentication failed (HTTP 401)."""

    def __init__(self, reason: AuthFailure) -> None:
        super().__init__(_AUTH_MESSAGES[reason])
        self.reason = reason


class PolicyReason(str, Enum):
    """Reasons an admission policy rejects an otherwise authenticated login."""

    MAX_SESSIONS = "MAX_SESSIONS"
    ACCOUNT_LOCKED = "account_locked"
    EMAIL_NOT_VERIFIED = "email_not_verified"


_POLICY_MESSAGES = {
    PolicyReason.MAX_SESSIONS: "Maximum number of active sessions reached",
    PolicyReason.ACCOUNT_LOCKED: "Account locked",
    PolicyReason.EMAIL_NOT_VERIFIED: "Email not verified. Check your inbox.",
}


class PolicyRejected(ServiceError):
    """
    Login refused by policy (HTTP 403).

    :param reason: Machine-readable rejection reason.
    :param details: State the client needs to act (session list, lock expiry).
    """

    def __init__(self, reason: PolicyReason, details: dict[str, Any] | None = None) -> None:
        super().__init__(_POLICY_MESSAGES[reason])
        self.reason = reason
        self.details = details or {}


class AuthorizationError(ServiceError):
    """Authenticated caller lacks the required role."""

    pass


# --------------------------------------------------------------------------- #
# Resource errors
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class NotFoundError(ServiceError):
    """
    Raised when an entity is not found in the repository.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param key: Identifier or search key.
    :type key: str | int
    :param code: Stable error code for clients.
    :type code: str
    """

    entity: str
    key: str | int
    code: str = field(default="not_found")

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.entity} not found: {self.key}"


class SessionExpiredError(ServiceError):
    """The addressed device session exists but is no longer live."""

    def __init__(self, device_id: str) -> None:
        super().__init__("Session has already expired")
        self.device_id = device_id


@dataclass(slots=True)
class ConflictError(ServiceError):
    """
    Raised when a unique constraint or business rule conflict occurs.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param detail: Short human-readable explanation.
    :type detail: str
    """

    entity: str
    detail: str

    def __str__(self) -> str:  # pragma: no cover
        return f"Conflict on {self.entity}: {self.detail}"


class ConcurrencyError(ServiceError):
    """Optimistic concurrency retries were exhausted for a user record."""

    def __init__(self, message: str = "Concurrent update detected. Please retry.") -> None:
        super().__init__(message)


# --------------------------------------------------------------------------- #
# Infrastructure
# --------------------------------------------------------------------------- #


class InfrastructureError(ServiceError):
    """
    A backing store or network dependency failed.

    Raised instead of guessing: an unreadable revocation ledger must never be
    interpreted as "token not revoked".
    """

    pass
