"""Device session schemas."""

from __future__ import annotations

from typing import Any

from marshmallow import Schema, fields


class SessionSchema(Schema):
    """Public representation of one device session."""

    device_id = fields.String(required=True, data_key="deviceId")
    user_agent = fields.String(data_key="userAgent")
    last_active_at = fields.DateTime(required=True, data_key="lastActive")
    created_at = fields.DateTime(data_key="createdAt")


class SessionListSchema(Schema):
    """Live sessions of the caller, flagging the requesting device."""

    sessions = fields.Method("dump_sessions")
    current_device_id = fields.String(required=True, data_key="currentDeviceId")
    total_active_sessions = fields.Integer(required=True, data_key="totalActiveSessions")

    def dump_sessions(self, obj: Any) -> list[dict[str, Any]]:
        item_schema = SessionSchema()
        return [
            {**item_schema.dump(s), "isCurrentDevice": s.device_id == obj.current_device_id}
            for s in obj.sessions
        ]
