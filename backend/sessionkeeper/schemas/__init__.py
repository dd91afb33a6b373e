"""Convenience exports for application schemas."""

from __future__ import annotations

from .auth import (
    ChangePasswordSchema,
    EmailOnlySchema,
    LoginResponseSchema,
    LoginSchema,
    RefreshTokenSchema,
    RegisterSchema,
    ResetPasswordSchema,
    TokenPairSchema,
)
from .session import SessionListSchema, SessionSchema
from .user import ProfileSchema, ProfileUpdateSchema, UserSchema

__all__ = [
    "ChangePasswordSchema",
    "EmailOnlySchema",
    "LoginResponseSchema",
    "LoginSchema",
    "ProfileSchema",
    "ProfileUpdateSchema",
    "RefreshTokenSchema",
    "RegisterSchema",
    "ResetPasswordSchema",
    "SessionListSchema",
    "SessionSchema",
    "TokenPairSchema",
    "UserSchema",
]
