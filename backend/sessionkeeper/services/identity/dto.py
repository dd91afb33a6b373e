"""
DTOs for IdentityService.

Data Transfer Objects (DTOs) isolate the service layer from ORM models,
ensuring clear input/output contracts and type safety.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sessionkeeper.models.user import User

# --------------------------------------------------------------------------- #
# Input DTOs
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class ProfileUpdateIn:
    """
    Input DTO for updating the caller's profile.

    :param email: Optional new email. Changing it resets verification.
    :type email: str | None
    """

    email: str | None = None


# --------------------------------------------------------------------------- #
# Output DTOs
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class UserPublicOut:
    """
    Public-safe representation of a user.

    :param id: User identifier.
    :type id: int
    :param email: Login email.
    :type email: str
    :param role: ``"user"`` or ``"admin"``.
    :type role: str
    :param is_verified: Whether the email was confirmed.
    :type is_verified: bool
    :param created_at: Registration time.
    :type created_at: datetime | None
    """

    id: int
    email: str
    role: str
    is_verified: bool
    created_at: datetime | None = None

    @classmethod
    def from_model(cls, user: User) -> UserPublicOut:
        return cls(
            id=user.id,
            email=user.email,
            role=user.role,
            is_verified=bool(user.is_verified),
            created_at=user.created_at,
        )


@dataclass(frozen=True, slots=True)
class ProfileOut:
    """
    Profile of the caller as seen from one device.

    :param user: Public user fields.
    :type user: UserPublicOut
    :param device_id: Device issuing the request.
    :type device_id: str
    :param active_sessions: Live sessions across all devices.
    :type active_sessions: int
    """

    user: UserPublicOut
    device_id: str
    active_sessions: int
