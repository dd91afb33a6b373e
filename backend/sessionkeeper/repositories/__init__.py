"""Repository package exposing persistence-layer access for all domain models."""

from __future__ import annotations

from sessionkeeper.repositories.base import BaseRepository
from sessionkeeper.repositories.revoked_token import RevokedTokenRepository
from sessionkeeper.repositories.user import TOKEN_HASH_FIELDS, UserRepository

__all__ = [
    "TOKEN_HASH_FIELDS",
    "BaseRepository",
    "RevokedTokenRepository",
    "UserRepository",
]
