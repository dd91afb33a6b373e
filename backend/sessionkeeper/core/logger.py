"""JSON logging with request correlation and caller identity."""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from flask import Flask, g, has_app_context, has_request_context, request

REQUEST_ID_HEADER = "X-Request-ID"
CORRELATION_HEADERS = ("X-Request-ID", "X-Correlation-ID")
REQUEST_ID_ENVIRON_KEY = "sessionkeeper.request_id"

# Structured fields copied from ``extra=`` onto the JSON payload
EXTRA_KEYS = ("endpoint", "elapsed_ms", "user_id", "device_id", "evicted_device_id", "reason")

# Chatty third-party loggers capped at WARNING
QUIET_LOGGERS = ("werkzeug", "flask_limiter", "urllib3")


class JSONFormatter(logging.Formatter):
    """Render a record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, UTC).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        for key in EXTRA_KEYS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class RequestContextFilter(logging.Filter):
    """
    Stamp records with the request id and, once a bearer token has been
    accepted, the caller's ``user_id`` and ``device_id`` from ``flask.g``.

    Values passed explicitly through ``extra=`` win.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not has_request_context():
            record.request_id = None
            return True
        record.request_id = ensure_request_id()
        for key in ("user_id", "device_id"):
            if getattr(record, key, None) is None and has_app_context():
                setattr(record, key, g.get(key))
        return True


def ensure_request_id() -> str:
    """Return the current request id, adopting a correlation header if sent.

    The id lives in the WSGI environ of the request, not on ``flask.g``, so it
    never outlives the request even when an application context is reused.
    """

    if not has_request_context():
        return str(uuid4())
    rid = request.environ.get(REQUEST_ID_ENVIRON_KEY)
    if rid is None:
        sent = next((request.headers[h] for h in CORRELATION_HEADERS if request.headers.get(h)), None)
        rid = request.environ[REQUEST_ID_ENVIRON_KEY] = sent or str(uuid4())
    return rid


def redact_email(email: str) -> str:
    """Mask the local part of an email address for log output."""
    if "@" not in email:
        return "redacted"
    local, domain = email.split("@", 1)
    return f"{local[:2]}***@{domain}"


def configure_logging(level: str | int = "INFO") -> None:
    """Send every logger to stdout as JSON lines at ``level``."""

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(RequestContextFilter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def init_app(app: Flask) -> None:
    """Seed a request id per request and echo it in the response."""

    app.logger.addFilter(RequestContextFilter())

    @app.before_request
    def _seed_request_id() -> None:
        ensure_request_id()

    @app.after_request
    def _echo_request_id(response):
        response.headers.setdefault(REQUEST_ID_HEADER, ensure_request_id())
        return response


__all__ = [
    "JSONFormatter",
    "RequestContextFilter",
    "configure_logging",
    "ensure_request_id",
    "init_app",
    "redact_email",
]
