"""Cross-origin policy for the auth API."""

from __future__ import annotations

from flask import Flask
from flask_cors import CORS

from sessionkeeper.core.logger import REQUEST_ID_HEADER

#: Request headers browsers may send cross-origin.
ALLOWED_HEADERS = ("Authorization", "Content-Type", "device-id", "force-logout")


def allowed_origins(raw: str | None) -> list[str]:
    """Split the comma-separated ``CORS_ORIGINS`` value; empty or ``*`` means any."""
    origins = [o.strip() for o in (raw or "").split(",") if o.strip()]
    return [] if origins == ["*"] else origins


def init_app(app: Flask) -> None:
    """Apply CORS to ``/api/*``.

    With explicit origins, credentials are allowed so the ``device-id``
    cookie set at login travels back on later requests. A wildcard policy
    never allows credentials.
    """
    origins = allowed_origins(app.config.get("CORS_ORIGINS"))
    CORS(
        app,
        resources={r"/api/*": {"origins": origins or "*"}},
        supports_credentials=bool(origins),
        allow_headers=list(ALLOWED_HEADERS),
        expose_headers=[REQUEST_ID_HEADER],
        max_age=app.config.get("CORS_MAX_AGE", 600),
    )
