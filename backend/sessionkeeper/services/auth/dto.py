# sessionkeeper/services/auth/dto.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sessionkeeper.services.sessions.dto import SessionView

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class RegisterIn:
    """
    Input DTO for registration.

    :param email: Login email (normalized by the model).
    :type email: str
    :param password: Raw password (hashed by the model).
    :type password: str
    """

    email: str
    password: str


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param email: User email.
    :type email: str
    :param password: Raw password (to be verified).
    :type password: str
    :param device_id: Device asking for a session.
    :type device_id: str
    :param user_agent: ``User-Agent`` recorded on the session.
    :type user_agent: str
    :param force_logout: Device of the same user to evict when at capacity.
    :type force_logout: str | None
    """

    email: str
    password: str
    device_id: str
    user_agent: str = ""
    force_logout: str | None = None


@dataclass(frozen=True, slots=True)
class RefreshIn:
    """
    Input DTO for token refresh.

    :param refresh_token: Opaque rotation token issued at login.
    :type refresh_token: str
    """

    refresh_token: str


@dataclass(frozen=True, slots=True)
class BearerContext:
    """
    The credential a request was authenticated with.

    Needed by every operation that revokes the caller's own token.

    :param user_id: Authenticated user.
    :type user_id: int
    :param token: Raw bearer token.
    :type token: str
    :param expires_at: Natural expiry of ``token``.
    :type expires_at: datetime
    :param device_id: Device bound to the request.
    :type device_id: str
    """

    user_id: int
    token: str
    expires_at: datetime
    device_id: str


@dataclass(frozen=True, slots=True)
class PasswordChangeIn:
    current_password: str
    new_password: str


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class LoginOut:
    """
    Output DTO of a successful login.

    :param token: Bearer token.
    :param refresh_token: Opaque rotation token (plaintext, shown once).
    :param role: Role of the user.
    :param expires_in: Bearer lifetime in seconds.
    :param device_id: Device the session is bound to.
    :param sessions: Live sessions after admission.
    :param evicted_device_id: Device removed by a force-logout hint.
    """

    token: str
    refresh_token: str
    role: str
    expires_in: int
    device_id: str
    sessions: tuple[SessionView, ...]
    evicted_device_id: str | None = None

    @property
    def active_sessions(self) -> int:
        return len(self.sessions)


@dataclass(frozen=True, slots=True)
class TokenPairOut:
    """
    Output DTO with bearer and rotation tokens.

    :param token: New bearer token.
    :type token: str
    :param refresh_token: New rotation token; the presented one is dead.
    :type refresh_token: str
    :param expires_in: Bearer lifetime in seconds.
    :type expires_in: int
    """

    token: str
    refresh_token: str
    expires_in: int
