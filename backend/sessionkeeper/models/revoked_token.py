"""SQL-backed revocation ledger entries."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from sessionkeeper.core.extensions import db

from .base import PKMixin, ReprMixin, UTCDateTime


class RevokedToken(PKMixin, ReprMixin, db.Model):
    """
    A bearer token invalidated before its natural expiry.

    Only the keyed digest of the token is stored. Rows whose ``expires_at``
    has passed are dead weight and may be purged at any time.
    """

    __tablename__ = "revoked_tokens"

    token_digest: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    __table_args__ = (Index("ix_revoked_tokens_expires_at", "expires_at"),)
