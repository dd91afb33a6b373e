# sessionkeeper/services/notifications/notifier.py
from __future__ import annotations

import logging
from collections.abc import Mapping
from concurrent.futures import Executor
from typing import Any

from sessionkeeper.core.logger import redact_email
from sessionkeeper.services._shared.ports import EmailSender, TemplateRenderer

log = logging.getLogger(__name__)


class EmailNotifier:
    """
    Fire-and-forget transactional email.

    Rendering and delivery run on ``executor`` when one is given, inline
    otherwise. Failures are logged and never propagate: a broken mail server
    must not fail the login or registration that triggered the message.

    :param sender: Transport port.
    :param renderer: Template port (``verify_email.html`` ...).
    :param executor: Background executor owned by the application, or ``None``.
    :param verify_email_url: Link template with a ``{token}`` placeholder.
    :param reset_password_url: Link template with a ``{token}`` placeholder.
    :param reset_ttl_minutes: Shown in the reset email.
    """

    def __init__(
        self,
        *,
        sender: EmailSender,
        renderer: TemplateRenderer,
        executor: Executor | None = None,
        verify_email_url: str = "{token}",
        reset_password_url: str = "{token}",
        reset_ttl_minutes: int = 10,
    ) -> None:
        self.sender = sender
        self.renderer = renderer
        self.executor = executor
        self.verify_email_url = verify_email_url
        self.reset_password_url = reset_password_url
        self.reset_ttl_minutes = reset_ttl_minutes

    # ------------------------------------------------------------------ #
    # Messages
    # ------------------------------------------------------------------ #

    def send_verification(self, email: str, token: str) -> None:
        self._dispatch(
            email,
            "Verify your email",
            "verify_email.html",
            {"email": email, "link": self.verify_email_url.format(token=token)},
        )

    def send_password_reset(self, email: str, token: str) -> None:
        self._dispatch(
            email,
            "Password reset request",
            "reset_password.html",
            {
                "email": email,
                "link": self.reset_password_url.format(token=token),
                "expires_minutes": self.reset_ttl_minutes,
            },
        )

    def send_password_changed(self, email: str) -> None:
        self._dispatch(email, "Your password was changed", "password_changed.html", {"email": email})

    # ------------------------------------------------------------------ #
    # Delivery
    # ------------------------------------------------------------------ #

    def _dispatch(
        self, to: str, subject: str, template: str, variables: Mapping[str, Any]
    ) -> None:
        if self.executor is None:
            self._deliver(to, subject, template, variables)
            return
        try:
            self.executor.submit(self._deliver, to, subject, template, dict(variables))
        except RuntimeError:
            # Executor already shut down (process exiting)
            log.warning("email.dispatch_skipped to=%s template=%s", redact_email(to), template)

    def _deliver(
        self, to: str, subject: str, template: str, variables: Mapping[str, Any]
    ) -> None:
        try:
            html = self.renderer.render(template, variables)
            self.sender.send(to, subject, html)
        except Exception:
            log.warning(
                "email.send_failed to=%s template=%s",
                redact_email(to),
                template,
                exc_info=True,
            )
            return
        log.info("email.sent to=%s template=%s", redact_email(to), template)
