"""RFC 7807 problem+json rendering for every error leaving the API."""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

from flask import Flask, Response, jsonify, request
from marshmallow import ValidationError as MarshmallowValidationError
from sqlalchemy.exc import IntegrityError, OperationalError
from werkzeug.exceptions import HTTPException

from sessionkeeper.core.logger import ensure_request_id

log = logging.getLogger(__name__)

PROBLEM_MIMETYPE = "application/problem+json"

# Stable codes for errors raised by Flask/Werkzeug rather than the services
_HTTP_CODES = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    413: "payload_too_large",
    415: "unsupported_media_type",
    429: "too_many_requests",
    500: "internal_server_error",
    503: "service_unavailable",
}


def problem(
    status: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Build a problem details body.

    :param status: HTTP status.
    :param code: Machine-readable code (``MAX_SESSIONS``, ``token_expired`` ...).
    :param message: Client-safe summary.
    :param details: Structured data the client can act on.
    """
    body: dict[str, Any] = {
        "type": "about:blank",
        "title": HTTPStatus(status).phrase,
        "status": status,
        "detail": message,
        "instance": request.path,
        "code": code,
    }
    if details:
        body["details"] = details
    body["request_id"] = ensure_request_id()
    return body


def problem_response(body: dict[str, Any]) -> tuple[Response, int]:
    status = int(body["status"])
    resp = jsonify(body)
    resp.mimetype = PROBLEM_MIMETYPE
    if status == HTTPStatus.UNAUTHORIZED:
        resp.headers["WWW-Authenticate"] = f'Bearer error="{body["code"]}"'
    level = logging.ERROR if status >= 500 else logging.WARNING
    log.log(level, "api.error status=%s code=%s", status, body["code"], extra={"reason": body["code"]})
    return resp, status


class APIError(Exception):
    """
    An error already shaped for HTTP.

    Parameters
    ----------
    message : str
        Client-safe description.
    status_code : int, optional
        HTTP status, ``400`` by default.
    code : str, optional
        Machine-readable identifier.
    details : dict[str, Any] | None, optional
        Structured payload, e.g. the caller's live sessions on a
        ``MAX_SESSIONS`` rejection or ``lockedUntil`` on ``account_locked``.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        code: str = "bad_request",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = int(status_code)
        self.code = code
        self.details = details or {}

    def to_problem(self) -> dict[str, Any]:
        return problem(self.status_code, self.code, self.message, self.details or None)


class NotFound(APIError):
    def __init__(self, message: str = "Resource not found", code: str = "not_found") -> None:
        super().__init__(message, status_code=HTTPStatus.NOT_FOUND, code=code)


class Conflict(APIError):
    def __init__(self, message: str = "Conflict", code: str = "conflict") -> None:
        super().__init__(message, status_code=HTTPStatus.CONFLICT, code=code)


class Unauthorized(APIError):
    """401: missing, invalid, expired or blacklisted token, or no live session."""

    def __init__(self, message: str = "Unauthorized", code: str = "unauthorized") -> None:
        super().__init__(message, status_code=HTTPStatus.UNAUTHORIZED, code=code)


class Forbidden(APIError):
    """403: role check failed or a login admission policy refused."""

    def __init__(
        self,
        message: str = "Forbidden",
        code: str = "forbidden",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, status_code=HTTPStatus.FORBIDDEN, code=code, details=details)


def init_app(app: Flask) -> None:
    """
    Register the error handlers.

    Service errors are mapped by
    :meth:`sessionkeeper.services._shared.base.BaseService.translate_exceptions`;
    database and unexpected errors never leak their message to clients.
    """
    from sessionkeeper.services._shared.base import BaseService
    from sessionkeeper.services._shared.errors import ServiceError

    @app.errorhandler(APIError)
    def handle_api_error(err: APIError):
        return problem_response(err.to_problem())

    @app.errorhandler(ServiceError)
    def handle_service_error(err: ServiceError):
        translated = BaseService.translate_exceptions(err)
        if translated.status_code >= 500:
            log.error("api.service_failure error=%s", type(err).__name__, exc_info=err)
        return problem_response(translated.to_problem())

    @app.errorhandler(MarshmallowValidationError)
    def handle_validation_error(err: MarshmallowValidationError):
        return problem_response(
            problem(
                HTTPStatus.BAD_REQUEST,
                "validation_error",
                "Validation failed",
                {"errors": err.messages},
            )
        )

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        status = int(err.code or HTTPStatus.INTERNAL_SERVER_ERROR)
        code = _HTTP_CODES.get(status, "error")
        if status == HTTPStatus.NOT_FOUND:
            message = f"Route '{request.path}' not found"
        elif status == HTTPStatus.TOO_MANY_REQUESTS:
            message = "Too many attempts, try again later"
        else:
            message = (err.description or code.replace("_", " ").capitalize()).strip()
        resp, status = problem_response(problem(status, code, message))
        for name, value in err.get_headers():
            if name.lower() == "retry-after":
                resp.headers[name] = value
        return resp, status

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err: IntegrityError):
        log.error("api.integrity_error", exc_info=True)
        return problem_response(problem(HTTPStatus.CONFLICT, "conflict", "Resource conflict"))

    @app.errorhandler(OperationalError)
    def handle_operational_error(err: OperationalError):
        log.error("api.database_unavailable", exc_info=True)
        return problem_response(
            problem(
                HTTPStatus.SERVICE_UNAVAILABLE,
                "service_unavailable",
                "Service temporarily unavailable",
            )
        )

    @app.errorhandler(Exception)
    def handle_unexpected_error(err: Exception):
        log.error("api.unhandled_exception", exc_info=True)
        return problem_response(
            problem(HTTPStatus.INTERNAL_SERVER_ERROR, "internal_server_error", "Unexpected error")
        )
