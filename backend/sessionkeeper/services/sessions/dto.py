# sessionkeeper/services/sessions/dto.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

# ---------------------------- Read models --------------------------------- #


@dataclass(frozen=True, slots=True)
class SessionView:
    """
    Immutable snapshot of one device session.

    :param device_id: Device identifier (unique per user).
    :type device_id: str
    :param user_agent: Last seen ``User-Agent`` of the device.
    :type user_agent: str
    :param last_active_at: Last authenticated activity (UTC).
    :type last_active_at: datetime
    :param created_at: First login from the device (UTC).
    :type created_at: datetime
    """

    device_id: str
    user_agent: str
    last_active_at: datetime
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        """Public JSON shape, used where no schema is involved (error details)."""
        return {
            "deviceId": self.device_id,
            "userAgent": self.user_agent,
            "lastActive": self.last_active_at.isoformat(),
        }


@dataclass(frozen=True, slots=True)
class SessionListOut:
    """
    Live sessions of a user as seen from one device.

    :param sessions: Live sessions in creation order.
    :type sessions: tuple[SessionView, ...]
    :param current_device_id: Device issuing the request.
    :type current_device_id: str
    """

    sessions: tuple[SessionView, ...]
    current_device_id: str

    @property
    def total_active_sessions(self) -> int:
        return len(self.sessions)


@dataclass(frozen=True, slots=True)
class DeviceUserOut:
    """Public projection of a user holding a session on a given device."""

    id: int
    email: str
    role: str
    is_verified: bool
