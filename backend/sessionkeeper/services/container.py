# sessionkeeper/services/container.py
"""
Per-application wiring of the session core.

Every collaborator (codec, ledger, policy, notifier, services) is built once
in :func:`build_container` and stored on ``app.extensions``. Nothing here is
a module-level singleton, so two apps in one process (tests) never share
state.
"""

from __future__ import annotations

import atexit
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from flask import Flask

from sessionkeeper.core.extensions import get_redis
from sessionkeeper.infra.jwt.flask_jwt_token_codec import JWTTokenCodec
from sessionkeeper.infra.mail.flask_mail_sender import FlaskMailSender
from sessionkeeper.infra.redis.redis_denylist_store import RedisTokenDenylistStore
from sessionkeeper.infra.sql.sql_denylist_store import SQLTokenDenylistStore
from sessionkeeper.infra.templates.jinja_renderer import JinjaTemplateRenderer
from sessionkeeper.services._shared.ports import TokenCodec, TokenDenylistStore
from sessionkeeper.services._shared.settings import AuthSettings
from sessionkeeper.services.auth.service import AuthService
from sessionkeeper.services.credentials.lifecycle import CredentialLifecycle
from sessionkeeper.services.credentials.lockout import LockoutPolicy
from sessionkeeper.services.credentials.service import CredentialService
from sessionkeeper.services.identity.service import IdentityService
from sessionkeeper.services.notifications.notifier import EmailNotifier
from sessionkeeper.services.revocation.ledger import RevocationLedger
from sessionkeeper.services.sessions.policy import SessionPolicy
from sessionkeeper.services.sessions.service import SessionService

log = logging.getLogger(__name__)

EXTENSION_KEY = "sessionkeeper"


@dataclass(slots=True)
class ServiceContainer:
    """Collaborators shared by the request handlers of one application."""

    settings: AuthSettings
    codec: TokenCodec
    denylist: TokenDenylistStore
    ledger: RevocationLedger
    policy: SessionPolicy
    lockout: LockoutPolicy
    notifier: EmailNotifier
    auth: AuthService
    sessions: SessionService
    credentials: CredentialService
    identity: IdentityService
    executor: ThreadPoolExecutor | None = None

    def shutdown(self) -> None:
        """Drain pending email jobs."""
        if self.executor is not None:
            self.executor.shutdown(wait=True)
            self.executor = None


def _pepper(app: Flask) -> bytes:
    pepper = app.config.get("TOKEN_HASH_PEPPER") or app.config["SECRET_KEY"]
    return str(pepper).encode("utf-8")


def build_container(app: Flask) -> ServiceContainer:
    """
    Build the session core for ``app`` and register it on ``app.extensions``.

    The revocation ledger uses Redis when a client is configured and the
    ``revoked_tokens`` table otherwise.
    """
    settings = AuthSettings.from_config(app.config)
    codec = JWTTokenCodec(pepper=_pepper(app))

    redis_client = get_redis(app)
    denylist: TokenDenylistStore
    if redis_client is not None:
        denylist = RedisTokenDenylistStore(redis_client)
    else:
        denylist = SQLTokenDenylistStore()
    ledger = RevocationLedger(store=denylist, codec=codec)

    executor: ThreadPoolExecutor | None = None
    if app.config.get("EMAIL_ASYNC", True):
        executor = ThreadPoolExecutor(
            max_workers=int(app.config.get("EMAIL_WORKERS", 2)),
            thread_name_prefix="email",
        )
    notifier = EmailNotifier(
        sender=FlaskMailSender(app),
        renderer=JinjaTemplateRenderer(app),
        executor=executor,
        verify_email_url=settings.verify_email_url,
        reset_password_url=settings.reset_password_url,
        reset_ttl_minutes=int(settings.reset_ttl.total_seconds() // 60),
    )

    policy = SessionPolicy(max_sessions=settings.max_sessions)
    lockout = LockoutPolicy(
        threshold=settings.lockout_threshold, duration=settings.lockout_duration
    )
    lifecycle = CredentialLifecycle(codec=codec, reset_ttl=settings.reset_ttl)

    container = ServiceContainer(
        settings=settings,
        codec=codec,
        denylist=denylist,
        ledger=ledger,
        policy=policy,
        lockout=lockout,
        notifier=notifier,
        auth=AuthService(
            codec=codec,
            ledger=ledger,
            policy=policy,
            lockout=lockout,
            lifecycle=lifecycle,
            notifier=notifier,
            settings=settings,
        ),
        sessions=SessionService(ledger=ledger, session_ttl=settings.session_ttl),
        credentials=CredentialService(
            lifecycle=lifecycle,
            lockout=lockout,
            notifier=notifier,
            session_ttl=settings.session_ttl,
        ),
        identity=IdentityService(
            lifecycle=lifecycle, notifier=notifier, session_ttl=settings.session_ttl
        ),
        executor=executor,
    )
    if executor is not None:
        atexit.register(container.shutdown)

    app.extensions[EXTENSION_KEY] = container
    log.info(
        "container.ready ledger=%s email_async=%s",
        type(denylist).__name__,
        executor is not None,
    )
    return container


def get_container(app: Flask) -> ServiceContainer:
    """Return the container built for ``app``."""
    try:
        return app.extensions[EXTENSION_KEY]
    except KeyError as exc:
        raise RuntimeError("Service container not initialised; call build_container()") from exc
