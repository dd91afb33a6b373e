"""Device session rows owned by the :class:`User` aggregate."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sessionkeeper.core.extensions import db

from .base import PKMixin, ReprMixin, UTCDateTime

if TYPE_CHECKING:
    from .user import User

DEVICE_ID_MAX_LENGTH = 128
USER_AGENT_MAX_LENGTH = 512


class UserSession(PKMixin, ReprMixin, db.Model):
    """
    One live association between a user and a device.

    Rows are only created, refreshed and removed through ``User.sessions``;
    the unique constraint backs the one-session-per-device invariant even if
    two writers race past the optimistic version check.
    """

    __tablename__ = "user_sessions"

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    device_id: Mapped[str] = mapped_column(String(DEVICE_ID_MAX_LENGTH), nullable=False)
    user_agent: Mapped[str] = mapped_column(
        String(USER_AGENT_MAX_LENGTH), nullable=False, default=""
    )
    last_active_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    user: Mapped[User] = relationship("User", back_populates="sessions")

    __table_args__ = (
        UniqueConstraint("user_id", "device_id", name="uq_user_sessions_user_id_device_id"),
        Index("ix_user_sessions_device_id", "device_id"),
    )
