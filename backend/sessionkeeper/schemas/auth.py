"""Authentication-related Marshmallow schemas."""

from __future__ import annotations

from marshmallow import Schema, fields, validate

from .session import SessionSchema

PASSWORD_LENGTH = validate.Length(min=8, max=128)


class RegisterSchema(Schema):
    """Input payload for account registration."""

    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, validate=PASSWORD_LENGTH)


class LoginSchema(Schema):
    """Input payload for authenticating a user."""

    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, validate=validate.Length(min=1, max=128))


class RefreshTokenSchema(Schema):
    """Input payload carrying the opaque rotation token."""

    refresh_token = fields.String(
        required=True, data_key="refreshToken", validate=validate.Length(min=1, max=256)
    )


class EmailOnlySchema(Schema):
    """Input payload for forgot-password and resend-verification."""

    email = fields.Email(required=True, validate=validate.Length(max=254))


class ResetPasswordSchema(Schema):
    password = fields.String(required=True, validate=PASSWORD_LENGTH)


class ChangePasswordSchema(Schema):
    """Input payload for changing the password of the signed-in user."""

    current_password = fields.String(
        required=True, data_key="currentPassword", validate=validate.Length(min=1, max=128)
    )
    new_password = fields.String(required=True, data_key="newPassword", validate=PASSWORD_LENGTH)


class LoginResponseSchema(Schema):
    """Response payload of a successful login."""

    token = fields.String(required=True)
    refresh_token = fields.String(required=True, data_key="refreshToken")
    role = fields.String(required=True)
    expires_in = fields.Integer(required=True, data_key="expiresIn")
    device_id = fields.String(required=True, data_key="deviceId")
    active_sessions = fields.Integer(required=True, data_key="activeSessions")
    sessions = fields.List(fields.Nested(SessionSchema))
    evicted_device_id = fields.String(allow_none=True, data_key="evictedDeviceId")


class TokenPairSchema(Schema):
    """Response payload of a token refresh."""

    token = fields.String(required=True)
    refresh_token = fields.String(required=True, data_key="refreshToken")
    expires_in = fields.Integer(required=True, data_key="expiresIn")
