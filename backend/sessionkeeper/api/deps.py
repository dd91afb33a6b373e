"""Shared API helpers for request parsing and cross-cutting concerns."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from typing import Any, TypeVar, cast

from flask import Response, current_app, g, jsonify, request

from sessionkeeper.models.session import DEVICE_ID_MAX_LENGTH
from sessionkeeper.services._shared.errors import AuthorizationError, ValidationError
from sessionkeeper.services.auth.dto import BearerContext
from sessionkeeper.services.container import ServiceContainer, get_container

F = TypeVar("F", bound=Callable[..., Any])

DEVICE_ID_HEADER = "device-id"
DEVICE_ID_COOKIE = "device-id"
FORCE_LOGOUT_HEADER = "force-logout"


def get_services() -> ServiceContainer:
    """Return the service container wired for the current application."""

    return get_container(current_app)


def extract_bearer() -> str | None:
    """Return the token of an ``Authorization: Bearer <token>`` header, if any."""

    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def checked_device_id(raw: str | None, *, source: str) -> str:
    """
    Strip and validate a client-supplied device id.

    :returns: The id, or ``""`` when none was sent.
    :raises ValidationError: ``invalid_device_id`` when longer than
        :data:`DEVICE_ID_MAX_LENGTH` or containing non-printable characters.
    """
    value = (raw or "").strip()
    if len(value) > DEVICE_ID_MAX_LENGTH or not value.isprintable():
        raise ValidationError(
            f"{source} must be at most {DEVICE_ID_MAX_LENGTH} printable characters",
            code="invalid_device_id",
        )
    return value


def device_id_from_request() -> str:
    """Return the device id from the ``device-id`` header, then the cookie."""

    raw = request.headers.get(DEVICE_ID_HEADER) or request.cookies.get(DEVICE_ID_COOKIE)
    return checked_device_id(raw, source=DEVICE_ID_HEADER)


def force_logout_from_request() -> str | None:
    """Return the device named by the ``force-logout`` header, if any."""

    raw = request.headers.get(FORCE_LOGOUT_HEADER)
    return checked_device_id(raw, source=FORCE_LOGOUT_HEADER) or None


def user_agent_from_request() -> str:
    return request.headers.get("User-Agent", "")


def require_auth(func: F) -> F:
    """Ensure the request carries a valid, non-revoked bearer token.

    Populates ``g.token``, ``g.claims``, ``g.user_id`` and ``g.role``.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        token = extract_bearer()
        claims = get_services().auth.authenticate(token)
        g.token = token
        g.claims = claims
        g.user_id = claims.user_id
        g.role = claims.role
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def require_session(func: F) -> F:
    """Ensure the bearer token is valid *and* its device holds a live session.

    Populates ``g.device_id`` on top of what :func:`require_auth` sets and
    refreshes the session's last-activity time.
    """

    @require_auth
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        device_id = device_id_from_request()
        get_services().sessions.ensure_active(
            g.user_id,
            device_id,
            user_agent_from_request(),
            token_device_id=g.claims.device_id,
        )
        g.device_id = device_id
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def require_role(*roles: str) -> Callable[[F], F]:
    """Ensure the authenticated caller has one of ``roles``.

    Must be applied below :func:`require_auth` or :func:`require_session`.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any):
            if getattr(g, "role", None) not in roles:
                raise AuthorizationError("Access denied")
            return func(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator


def bearer_context() -> BearerContext:
    """Build the credential context of the current session-bound request."""

    return BearerContext(
        user_id=cast(int, g.user_id),
        token=cast(str, g.token),
        expires_at=g.claims.expires_at,
        device_id=cast(str, g.device_id),
    )


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            request_endpoint = getattr(request, "endpoint", None)
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request_endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]
