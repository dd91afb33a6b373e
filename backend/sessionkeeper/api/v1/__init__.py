"""Version 1 of the auth API."""

from __future__ import annotations

from flask import Blueprint

from .auth import bp as auth_bp
from .health import bp as health_bp
from .sessions import bp as sessions_bp

API_VERSION = "v1"

#: ``(blueprint, prefix relative to /api/v1)``
REGISTRY: list[tuple[Blueprint, str]] = [
    (health_bp, ""),
    (auth_bp, "/auth"),
    (sessions_bp, "/auth"),
]
