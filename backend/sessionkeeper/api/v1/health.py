"""Health check endpoint."""

from __future__ import annotations

from flask import Blueprint, current_app
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from sessionkeeper.api.deps import json_response, timing
from sessionkeeper.core.extensions import db, get_redis

bp = Blueprint("health", __name__)


def _check_database() -> str:
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError:  # pragma: no cover - depends on DB backend
        current_app.logger.exception("healthcheck.db_error")
        return "fail"
    return "ok"


def _check_revocation_store() -> str:
    """Ping Redis when it backs the revocation ledger; the SQL store shares the DB."""
    if not current_app.config.get("REDIS_URL"):
        return "sql"
    client = get_redis(current_app)
    if client is None:  # pragma: no cover - extensions always bind it with REDIS_URL
        return "fail"
    try:
        client.ping()
    except RedisError:  # pragma: no cover - requires a broken Redis
        current_app.logger.exception("healthcheck.redis_error")
        return "fail"
    return "ok"


@bp.get("/health")
@timing
def healthcheck():
    """Return application, database and revocation store health."""

    db_status = _check_database()
    ledger_status = _check_revocation_store()
    version = current_app.config.get("APP_VERSION", "dev")
    commit = current_app.config.get("APP_COMMIT", "unknown")
    overall = "ok" if "fail" not in (db_status, ledger_status) else "degraded"
    payload = {
        "status": overall,
        "db": db_status,
        "revocation": ledger_status,
        "version": version,
        "commit": commit,
    }
    return json_response(payload, status=200 if overall == "ok" else 503)
