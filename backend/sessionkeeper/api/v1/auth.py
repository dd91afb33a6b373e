"""Authentication endpoints using the service layer."""

from __future__ import annotations

from uuid import uuid4

from flask import Blueprint, current_app, g, request

from sessionkeeper.api.deps import (
    DEVICE_ID_COOKIE,
    bearer_context,
    device_id_from_request,
    force_logout_from_request,
    get_services,
    json_response,
    require_role,
    require_session,
    timing,
    user_agent_from_request,
)
from sessionkeeper.core.extensions import limiter
from sessionkeeper.models.user import ROLE_ADMIN, ROLE_USER
from sessionkeeper.schemas import (
    ChangePasswordSchema,
    EmailOnlySchema,
    LoginResponseSchema,
    LoginSchema,
    ProfileSchema,
    ProfileUpdateSchema,
    RefreshTokenSchema,
    RegisterSchema,
    ResetPasswordSchema,
    TokenPairSchema,
    UserSchema,
)
from sessionkeeper.services.auth.dto import LoginIn, PasswordChangeIn, RefreshIn, RegisterIn
from sessionkeeper.services.credentials.dto import (
    ForgotPasswordIn,
    ResendVerificationIn,
    ResetPasswordIn,
)
from sessionkeeper.services.identity.dto import ProfileUpdateIn

bp = Blueprint("auth", __name__)

register_schema = RegisterSchema()
login_schema = LoginSchema()
login_response_schema = LoginResponseSchema()
refresh_schema = RefreshTokenSchema()
token_pair_schema = TokenPairSchema()
email_only_schema = EmailOnlySchema()
reset_password_schema = ResetPasswordSchema()
change_password_schema = ChangePasswordSchema()
user_schema = UserSchema()
profile_schema = ProfileSchema()
profile_update_schema = ProfileUpdateSchema()

FORGOT_PASSWORD_MESSAGE = "If the email is registered, a reset link has been sent"
RESEND_VERIFICATION_MESSAGE = "If the account needs verification, a new email has been sent"


def _login_rate_limit() -> str:
    return str(current_app.config.get("AUTH_LOGIN_RATE_LIMIT", "10 per minute"))


def _json_body() -> dict:
    return request.get_json(silent=True) or {}


# ---------------------------------------------------------------------- #
# Registration & login
# ---------------------------------------------------------------------- #


@bp.post("/register")
@timing
def register():
    """Register a new user and return the created representation."""

    payload = register_schema.load(_json_body())
    user = get_services().auth.register(RegisterIn(**payload))
    return json_response({"data": user_schema.dump(user)}, status=201)


@bp.post("/login")
@limiter.limit(_login_rate_limit)
@timing
def login():
    """Authenticate credentials and open a session for the requesting device.

    The device is taken from the ``device-id`` header (or cookie); a fresh id
    is generated when the client sends none. A ``force-logout`` header names
    another device of the same user to evict when the session cap is reached.
    """

    data = login_schema.load(_json_body())
    device_id = device_id_from_request() or str(uuid4())
    force_logout = force_logout_from_request()
    out = get_services().auth.login(
        LoginIn(
            email=data["email"],
            password=data["password"],
            device_id=device_id,
            user_agent=user_agent_from_request(),
            force_logout=force_logout,
        )
    )
    response = json_response({"data": login_response_schema.dump(out)})
    response.set_cookie(
        DEVICE_ID_COOKIE,
        out.device_id,
        httponly=True,
        samesite="Lax",
        secure=request.is_secure,
    )
    return response


@bp.post("/refresh-token")
@timing
def refresh_token():
    """Exchange a rotation token for a new bearer and rotation token."""

    data = refresh_schema.load(_json_body())
    pair = get_services().auth.refresh(RefreshIn(refresh_token=data["refresh_token"]))
    return json_response({"data": token_pair_schema.dump(pair)})


# ---------------------------------------------------------------------- #
# Logout
# ---------------------------------------------------------------------- #


@bp.post("/logout")
@require_session
@timing
def logout():
    """End the current device session and blacklist the bearer token."""

    remaining = get_services().auth.logout(bearer_context())
    return json_response({"data": {"remainingSessions": remaining}})


@bp.post("/logout-all")
@require_session
@timing
def logout_all():
    """End every session of the caller."""

    removed = get_services().auth.logout_all(bearer_context())
    return json_response({"data": {"removedSessions": removed}})


# ---------------------------------------------------------------------- #
# Credential lifecycle
# ---------------------------------------------------------------------- #


@bp.post("/forgot-password")
@timing
def forgot_password():
    data = email_only_schema.load(_json_body())
    get_services().credentials.forgot_password(ForgotPasswordIn(email=data["email"]))
    return json_response({"data": {"message": FORGOT_PASSWORD_MESSAGE}})


@bp.put("/reset-password/<string:token>")
@timing
def reset_password(token: str):
    """Consume a reset token and set a new password. Ends all sessions."""

    data = reset_password_schema.load(_json_body())
    get_services().credentials.reset_password(
        ResetPasswordIn(token=token, password=data["password"])
    )
    return json_response({"data": {"message": "Password has been reset"}})


@bp.get("/verify-email/<string:token>")
@timing
def verify_email(token: str):
    get_services().credentials.verify_email(token)
    return json_response({"data": {"message": "Email verified"}})


@bp.post("/resend-verification-email")
@timing
def resend_verification_email():
    data = email_only_schema.load(_json_body())
    get_services().credentials.resend_verification(ResendVerificationIn(email=data["email"]))
    return json_response({"data": {"message": RESEND_VERIFICATION_MESSAGE}})


# ---------------------------------------------------------------------- #
# Account
# ---------------------------------------------------------------------- #


@bp.get("/profile")
@require_session
@timing
def profile():
    """Return the caller's profile as seen from the requesting device."""

    out = get_services().identity.profile(g.user_id, g.device_id)
    return json_response({"data": profile_schema.dump(out)})


@bp.put("/profile")
@require_session
@timing
def update_profile():
    data = profile_update_schema.load(_json_body())
    user = get_services().identity.update_profile(g.user_id, ProfileUpdateIn(email=data["email"]))
    return json_response({"data": user_schema.dump(user)})


@bp.put("/change-password")
@require_session
@timing
def change_password():
    """Replace the password. Every session ends and the bearer is blacklisted."""

    data = change_password_schema.load(_json_body())
    get_services().auth.change_password(
        bearer_context(),
        PasswordChangeIn(
            current_password=data["current_password"],
            new_password=data["new_password"],
        ),
    )
    return json_response({"data": {"message": "Password changed"}})


@bp.delete("/delete-account")
@require_session
@timing
def delete_account():
    get_services().auth.delete_account(bearer_context())
    return json_response({"data": {"message": "Account deleted"}})


# ---------------------------------------------------------------------- #
# Role gates
# ---------------------------------------------------------------------- #


@bp.get("/user")
@require_session
@require_role(ROLE_USER, ROLE_ADMIN)
@timing
def user_area():
    return json_response({"data": {"message": "Welcome", "role": g.role}})


@bp.get("/admin")
@require_session
@require_role(ROLE_ADMIN)
@timing
def admin_area():
    return json_response({"data": {"message": "Welcome, admin", "role": g.role}})
