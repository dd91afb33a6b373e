"""Device session endpoints mounted beside the auth routes."""

from __future__ import annotations

from flask import Blueprint, g

from sessionkeeper.api.deps import (
    bearer_context,
    get_services,
    json_response,
    require_role,
    require_session,
    timing,
)
from sessionkeeper.models.user import ROLE_ADMIN
from sessionkeeper.schemas import SessionListSchema

bp = Blueprint("sessions", __name__)

session_list_schema = SessionListSchema()


@bp.get("/sessions")
@require_session
@timing
def list_sessions():
    """Return the caller's live sessions, flagging the requesting device."""

    out = get_services().sessions.list_sessions(g.user_id, g.device_id)
    return json_response({"data": session_list_schema.dump(out)})


@bp.delete("/sessions/<string:device_id>")
@require_session
@timing
def delete_session(device_id: str):
    """End the session of one of the caller's devices."""

    remaining = get_services().sessions.delete_session(bearer_context(), device_id)
    return json_response({"data": {"deviceId": device_id, "remainingSessions": remaining}})


@bp.get("/users/device/<string:device_id>")
@require_session
@require_role(ROLE_ADMIN)
@timing
def users_for_device(device_id: str):
    """List the users holding a session on ``device_id`` (admin only)."""

    users = get_services().sessions.users_for_device(device_id, role=g.role)
    body = [
        {"id": u.id, "email": u.email, "role": u.role, "isVerified": u.is_verified}
        for u in users
    ]
    return json_response({"data": body})
