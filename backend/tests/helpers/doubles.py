"""Hand-rolled collaborators for service-level tests."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime, timedelta
from typing import Any

from sessionkeeper.services._shared.ports import (
    InMemoryDenylistStore,
    InMemoryEmailSender,
    StubTokenCodec,
)
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

#: Instant every time-dependent test starts from.
T0 = datetime(2025, 1, 6, 9, 0, tzinfo=UTC)


class FakeClock:
    """Mutable clock injected as a service ``clock``."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class EchoRenderer:
    """Renders ``template|key=value;...`` so tests can assert on variables."""

    def render(self, template_name: str, variables: Mapping[str, Any]) -> str:
        pairs = ";".join(f"{k}={variables[k]}" for k in sorted(variables))
        return f"{template_name}|{pairs}"


class Core:
    """The session core wired with in-memory doubles around one clock."""

    def __init__(self, clock: FakeClock, **settings: Any) -> None:
        self.clock = clock
        self.settings = AuthSettings(
            verify_email_url="https://app/verify/{token}",
            reset_password_url="https://app/reset/{token}",
            **settings,
        )
        self.codec = StubTokenCodec(clock=clock)
        self.denylist = InMemoryDenylistStore()
        self.ledger = RevocationLedger(store=self.denylist, codec=self.codec, clock=clock)
        self.sender = InMemoryEmailSender()
        self.notifier = EmailNotifier(
            sender=self.sender,
            renderer=EchoRenderer(),
            verify_email_url=self.settings.verify_email_url,
            reset_password_url=self.settings.reset_password_url,
        )
        self.policy = SessionPolicy(max_sessions=self.settings.max_sessions)
        self.lockout = LockoutPolicy(
            threshold=self.settings.lockout_threshold,
            duration=self.settings.lockout_duration,
        )
        self.lifecycle = CredentialLifecycle(
            codec=self.codec, reset_ttl=self.settings.reset_ttl, clock=clock
        )
        self.auth = AuthService(
            codec=self.codec,
            ledger=self.ledger,
            policy=self.policy,
            lockout=self.lockout,
            lifecycle=self.lifecycle,
            notifier=self.notifier,
            settings=self.settings,
            clock=clock,
        )
        self.sessions = SessionService(
            ledger=self.ledger, session_ttl=self.settings.session_ttl, clock=clock
        )
        self.credentials = CredentialService(
            lifecycle=self.lifecycle,
            lockout=self.lockout,
            notifier=self.notifier,
            session_ttl=self.settings.session_ttl,
            clock=clock,
        )
        self.identity = IdentityService(
            lifecycle=self.lifecycle,
            notifier=self.notifier,
            session_ttl=self.settings.session_ttl,
            clock=clock,
        )

    def link_token(self, template: str) -> str:
        """Return the token embedded in the last ``template`` email sent."""
        for message in reversed(self.sender.outbox):
            if message.body_html.startswith(f"{template}|"):
                variables = dict(
                    pair.split("=", 1) for pair in message.body_html.split("|", 1)[1].split(";")
                )
                return variables["link"].rsplit("/", 1)[-1]
        raise AssertionError(f"No {template} email sent")
