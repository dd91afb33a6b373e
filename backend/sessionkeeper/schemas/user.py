"""User resource schemas."""

from __future__ import annotations

from marshmallow import Schema, fields, validate


class UserSchema(Schema):
    """Public representation of a user entity."""

    id = fields.Integer(required=True)
    email = fields.Email(required=True)
    role = fields.String(required=True)
    is_verified = fields.Boolean(required=True, data_key="isVerified")
    created_at = fields.DateTime(data_key="createdAt")


class ProfileSchema(Schema):
    """Profile of the caller as seen from the requesting device."""

    user = fields.Nested(UserSchema, required=True)
    device_id = fields.String(required=True, data_key="deviceId")
    active_sessions = fields.Integer(required=True, data_key="activeSessions")


class ProfileUpdateSchema(Schema):
    """Payload for updating the caller's profile."""

    email = fields.Email(load_default=None, validate=validate.Length(max=254))
