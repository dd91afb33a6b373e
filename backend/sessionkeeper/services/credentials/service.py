# sessionkeeper/services/credentials/service.py
from __future__ import annotations

import logging
from datetime import timedelta

from sessionkeeper.core.logger import redact_email
from sessionkeeper.repositories.user import UserRepository
from sessionkeeper.services._shared.base import BaseService, Clock
from sessionkeeper.services.credentials.dto import (
    ForgotPasswordIn,
    ResendVerificationIn,
    ResetPasswordIn,
)
from sessionkeeper.services.credentials.lifecycle import CredentialLifecycle
from sessionkeeper.services.credentials.lockout import LockoutPolicy
from sessionkeeper.services.notifications.notifier import EmailNotifier
from sessionkeeper.services.sessions.registry import SessionRegistry

log = logging.getLogger(__name__)


class CredentialService(BaseService):
    """
    Email verification and password reset flows.

    ``forgot_password`` and ``resend_verification`` return nothing and behave
    the same whether or not the address belongs to an account, so they
    cannot be used to enumerate users.

    :param lifecycle: One-time token issuance and consumption.
    :param lockout: Cleared on a successful reset.
    :param notifier: Sends the emails once the unit of work committed.
    :param session_ttl: TTL for the registry used to evict sessions on reset.
    """

    def __init__(
        self,
        *,
        lifecycle: CredentialLifecycle,
        lockout: LockoutPolicy,
        notifier: EmailNotifier,
        session_ttl: timedelta,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(clock=clock)
        self.lifecycle = lifecycle
        self.lockout = lockout
        self.notifier = notifier
        self.session_ttl = session_ttl

    # ------------------------------------------------------------------ #
    # Password reset
    # ------------------------------------------------------------------ #

    def forgot_password(self, dto: ForgotPasswordIn) -> None:
        """Issue a reset token and email it, if the account exists."""

        def _issue() -> str | None:
            with self.rw_uow() as uow:
                repo: UserRepository = uow.users
                user = repo.get_by_email(dto.email, for_update=True)
                if user is None:
                    return None
                token = self.lifecycle.issue_reset_token(user)
                repo.bump_version(user)
                return token

        token = self.retry_on_conflict(_issue)
        if token is None:
            log.info("credentials.reset_unknown_email email=%s", redact_email(dto.email))
            return
        log.info("credentials.reset_issued email=%s", redact_email(dto.email))
        self.notifier.send_password_reset(dto.email.strip().lower(), token)

    def reset_password(self, dto: ResetPasswordIn) -> None:
        """
        Consume a reset token and set the new password.

        Every device session is evicted and the rotation slot cleared, so
        the old password's logins cannot continue.

        :raises InvalidOrExpiredTokenError: If the token is unknown, used or expired.
        """

        def _reset() -> str:
            with self.rw_uow() as uow:
                repo: UserRepository = uow.users
                user = self.lifecycle.consume_reset_token(repo, dto.token)
                user.password = dto.password
                user.refresh_token_hash = None
                user.refresh_expires_at = None
                user.refresh_device_id = None
                self.lockout.register_success(user)
                repo.bump_version(user)
                registry = SessionRegistry(repo, ttl=self.session_ttl, clock=self.clock)
                evicted = registry.evict_all(user.id)
                log.info(
                    "credentials.password_reset user_id=%s evicted=%s",
                    user.id,
                    evicted,
                    extra={"user_id": user.id},
                )
                return user.email

        email = self.retry_on_conflict(_reset)
        self.notifier.send_password_changed(email)

    # ------------------------------------------------------------------ #
    # Email verification
    # ------------------------------------------------------------------ #

    def verify_email(self, token: str) -> None:
        """
        Mark the token owner's email as verified.

        :raises InvalidOrExpiredTokenError: If no account holds the token.
        """

        def _verify() -> int:
            with self.rw_uow() as uow:
                repo: UserRepository = uow.users
                user = self.lifecycle.consume_verification_token(repo, token)
                repo.bump_version(user)
                return user.id

        user_id = self.retry_on_conflict(_verify)
        log.info("credentials.email_verified user_id=%s", user_id, extra={"user_id": user_id})

    def resend_verification(self, dto: ResendVerificationIn) -> None:
        """Issue and send a new verification token to an unverified account."""

        def _reissue() -> str | None:
            with self.rw_uow() as uow:
                repo: UserRepository = uow.users
                user = repo.get_by_email(dto.email, for_update=True)
                if user is None or user.is_verified:
                    return None
                token = self.lifecycle.issue_verification_token(user)
                repo.bump_version(user)
                return token

        token = self.retry_on_conflict(_reissue)
        if token is None:
            log.info("credentials.verification_not_resent email=%s", redact_email(dto.email))
            return
        self.notifier.send_verification(dto.email.strip().lower(), token)
