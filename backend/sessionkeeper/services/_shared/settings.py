# sessionkeeper/services/_shared/settings.py
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
from typing import Any


@dataclass(frozen=True, slots=True)
class AuthSettings:
    """
    Tunables of the session core, read once from the Flask config.

    :param access_ttl: Bearer token lifetime.
    :param refresh_ttl: Rotation token lifetime.
    :param session_ttl: Idle time after which a device session expires.
    :param max_sessions: Live sessions allowed per user.
    :param reset_ttl: Password reset token lifetime.
    :param lockout_threshold: Failed logins before the account locks.
    :param lockout_duration: Length of a lock.
    :param require_verified_email: Refuse logins of unverified accounts.
    :param verify_email_url: Link template with a ``{token}`` placeholder.
    :param reset_password_url: Link template with a ``{token}`` placeholder.
    """

    access_ttl: timedelta = timedelta(hours=1)
    refresh_ttl: timedelta = timedelta(days=7)
    session_ttl: timedelta = timedelta(hours=24)
    max_sessions: int = 4
    reset_ttl: timedelta = timedelta(minutes=10)
    lockout_threshold: int = 5
    lockout_duration: timedelta = timedelta(hours=2)
    require_verified_email: bool = False
    verify_email_url: str = "{token}"
    reset_password_url: str = "{token}"

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> AuthSettings:
        """Build settings from a Flask ``app.config`` mapping."""
        return cls(
            access_ttl=timedelta(seconds=int(config["ACCESS_TOKEN_TTL_SECONDS"])),
            refresh_ttl=timedelta(seconds=int(config["REFRESH_TOKEN_TTL_SECONDS"])),
            session_ttl=timedelta(seconds=int(config["SESSION_TTL_SECONDS"])),
            max_sessions=int(config["MAX_SESSIONS"]),
            reset_ttl=timedelta(seconds=int(config["RESET_TOKEN_TTL_SECONDS"])),
            lockout_threshold=int(config["LOCKOUT_THRESHOLD"]),
            lockout_duration=timedelta(seconds=int(config["LOCKOUT_SECONDS"])),
            require_verified_email=bool(config.get("AUTH_REQUIRE_VERIFIED_EMAIL", False)),
            verify_email_url=str(config["VERIFY_EMAIL_URL"]),
            reset_password_url=str(config["RESET_PASSWORD_URL"]),
        )
