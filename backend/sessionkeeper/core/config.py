"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Final

from dotenv import load_dotenv

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'


# Load .env in development (no-op when the file is missing)
load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: bool, optional
        Value returned when the variable is unset. Defaults to ``False``.

    Returns
    -------
    bool
        ``True`` if the value resembles ``{"1", "true", "yes", "y", "on"}``
        ignoring case; otherwise ``False`` or ``default`` when missing.
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def env_int(name: str, default: int) -> int:
    """Parse an integer from an environment variable, falling back to ``default``."""
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    return int(val)


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for registering API blueprints.
    SECRET_KEY: str
        Flask secret. Also the default pepper for opaque token hashes.
    JWT_SECRET_KEY: str
        Key used by ``flask-jwt-extended`` for signing bearer tokens.
    TOKEN_HASH_PEPPER: str
        Server-side key for the HMAC applied to rotation, reset and
        verification tokens and to revocation ledger entries.
    SQLALCHEMY_DATABASE_URI: str
        Database connection string consumed by SQLAlchemy.
    REDIS_URL: str | None
        When set, the revocation ledger is stored in Redis instead of SQL.
    ACCESS_TOKEN_TTL_SECONDS: int
        Bearer token lifetime (1 hour).
    REFRESH_TOKEN_TTL_SECONDS: int
        Rotation token lifetime (7 days).
    SESSION_TTL_SECONDS: int
        Idle time after which a device session stops being live (24 hours).
    MAX_SESSIONS: int
        Concurrent live sessions allowed per user.
    RESET_TOKEN_TTL_SECONDS: int
        Password reset token lifetime (10 minutes).
    LOCKOUT_THRESHOLD: int
        Consecutive failed logins that lock an account.
    LOCKOUT_SECONDS: int
        Lock duration (2 hours).
    AUTH_REQUIRE_VERIFIED_EMAIL: bool
        Reject logins of accounts that have not confirmed their email.
    VERIFY_EMAIL_URL / RESET_PASSWORD_URL: str
        Link templates placed in outgoing emails; ``{token}`` is substituted.
    EMAIL_ASYNC: bool
        Dispatch emails on a background executor (fire-and-forget).
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).
    CORS_ORIGINS: str
        Comma-separated list of allowed origins for CORS.
    USE_PROXYFIX / PROXY_HOPS: bool / int
        Trust ``X-Forwarded-*`` headers from this many reverse proxies.

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    API_BASE_PREFIX = "/api"
    APP_VERSION = os.getenv("APP_VERSION", "dev")

    # Secrets / security
    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "CHANGE_ME_JWT")
    JWT_ALGORITHM = "HS256"
    TOKEN_HASH_PEPPER = os.getenv("TOKEN_HASH_PEPPER", "")

    # DB
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)

    # Revocation ledger backend
    REDIS_URL = os.getenv("REDIS_URL") or None

    # Token and session lifetimes
    ACCESS_TOKEN_TTL_SECONDS = env_int("ACCESS_TOKEN_TTL_SECONDS", 3600)
    REFRESH_TOKEN_TTL_SECONDS = env_int("REFRESH_TOKEN_TTL_SECONDS", 7 * 24 * 3600)
    SESSION_TTL_SECONDS = env_int("SESSION_TTL_SECONDS", 24 * 3600)
    MAX_SESSIONS = env_int("MAX_SESSIONS", 4)
    RESET_TOKEN_TTL_SECONDS = env_int("RESET_TOKEN_TTL_SECONDS", 10 * 60)

    # Lockout
    LOCKOUT_THRESHOLD = env_int("LOCKOUT_THRESHOLD", 5)
    LOCKOUT_SECONDS = env_int("LOCKOUT_SECONDS", 2 * 3600)
    AUTH_REQUIRE_VERIFIED_EMAIL = env_bool("AUTH_REQUIRE_VERIFIED_EMAIL", False)

    # Rate limiting (Flask-Limiter)
    RATELIMIT_ENABLED = env_bool("RATELIMIT_ENABLED", True)
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    AUTH_LOGIN_RATE_LIMIT = os.getenv("AUTH_LOGIN_RATE_LIMIT", "10 per minute")

    # Email (Flask-Mail)
    MAIL_SERVER = os.getenv("MAIL_SERVER", "localhost")
    MAIL_PORT = env_int("MAIL_PORT", 587)
    MAIL_USE_TLS = env_bool("MAIL_USE_TLS", True)
    MAIL_USERNAME = os.getenv("MAIL_USERNAME")
    MAIL_PASSWORD = os.getenv("MAIL_PASSWORD")
    MAIL_DEFAULT_SENDER = os.getenv("MAIL_DEFAULT_SENDER", "no-reply@localhost")
    MAIL_SUPPRESS_SEND = env_bool("MAIL_SUPPRESS_SEND", False)
    EMAIL_ASYNC = env_bool("EMAIL_ASYNC", True)
    EMAIL_WORKERS = env_int("EMAIL_WORKERS", 2)
    VERIFY_EMAIL_URL = os.getenv(
        "VERIFY_EMAIL_URL", "http://localhost:8000/api/v1/auth/verify-email/{token}"
    )
    RESET_PASSWORD_URL = os.getenv(
        "RESET_PASSWORD_URL", "http://localhost:8000/api/v1/auth/reset-password/{token}"
    )

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging & CORS
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173")

    # Reverse proxy
    USE_PROXYFIX = env_bool("USE_PROXYFIX", True)
    PROXY_HOPS = env_int("PROXY_HOPS", 1)

    # Flask built-ins
    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development.

    Notes
    -----
    Enables debug mode by default and keeps outgoing email suppressed unless
    ``MAIL_SUPPRESS_SEND`` is explicitly disabled.
    """

    DEBUG = env_bool("FLASK_DEBUG", True)
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    MAIL_SUPPRESS_SEND = env_bool("MAIL_SUPPRESS_SEND", True)
    CORS_MAX_AGE = 600  # 10 minutes


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Forces ``TESTING`` mode and disables debug logs.
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Sends email inline and suppressed, rate limiting off, SQL denylist.
    """

    TESTING = True
    DEBUG = False
    SECRET_KEY = "testing-secret-key-with-enough-entropy-0001"
    JWT_SECRET_KEY = "testing-jwt-secret-key-with-enough-entropy-0001"
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ECHO = False
    REDIS_URL = None
    RATELIMIT_ENABLED = False
    MAIL_SUPPRESS_SEND = True
    EMAIL_ASYNC = False
    PROPAGATE_EXCEPTIONS = False
    USE_PROXYFIX = False


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments.

    Notes
    -----
    Keeps debug and SQL echoing disabled while relying on WSGI-level log
    configuration for noise control.
    """

    DEBUG = False
    SQLALCHEMY_ECHO = False
    PROPAGATE_EXCEPTIONS = False


# Map names -> classes (simple, explicit)
CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Returns
    -------
    type[BaseConfig]
        Class to pass to :meth:`flask.Config.from_object`.

    Notes
    -----
    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)
