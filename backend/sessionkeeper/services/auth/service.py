# sessionkeeper/services/auth/service.py
from __future__ import annotations

import logging
from typing import Any, cast

from sqlalchemy.exc import IntegrityError

from sessionkeeper.core.logger import redact_email
from sessionkeeper.models.user import ROLE_USER, User
from sessionkeeper.repositories.user import UserRepository
from sessionkeeper.services._shared.base import BaseService, Clock
from sessionkeeper.services._shared.errors import (
    AuthError,
    AuthFailure,
    InvalidCredentialsError,
    NotFoundError,
    PolicyReason,
    PolicyRejected,
    ValidationError,
    violates,
)
from sessionkeeper.services._shared.ports import TokenClaims, TokenCodec
from sessionkeeper.services._shared.settings import AuthSettings
from sessionkeeper.services.auth.dto import (
    BearerContext,
    LoginIn,
    LoginOut,
    PasswordChangeIn,
    RefreshIn,
    RegisterIn,
    TokenPairOut,
)
from sessionkeeper.services.credentials.lifecycle import CredentialLifecycle
from sessionkeeper.services.credentials.lockout import LockoutPolicy
from sessionkeeper.services.identity.dto import UserPublicOut
from sessionkeeper.services.notifications.notifier import EmailNotifier
from sessionkeeper.services.revocation.ledger import RevocationLedger
from sessionkeeper.services.sessions.policy import SessionPolicy
from sessionkeeper.services.sessions.registry import SessionRegistry

log = logging.getLogger(__name__)

LoginRefusal = InvalidCredentialsError | PolicyRejected


class AuthService(BaseService):
    """
    Authentication lifecycle service.

    Orchestrates the token codec, revocation ledger, session registry and
    admission policy around the user aggregate:

    * ``register``: create the account and email a verification link.
    * ``login``: lockout, password, admission, then bearer + rotation token.
    * ``authenticate``: signature/expiry check followed by the ledger lookup.
    * ``refresh``: single-slot rotation of the opaque refresh token.
    * ``logout`` / ``logout_all`` / ``change_password`` / ``delete_account``.

    Every write runs in one unit of work against the user row and is replayed
    by :meth:`retry_on_conflict` when a concurrent request won the version
    check. Failures that must still persist state (lockout counters, pruned
    sessions) are raised only after the unit of work committed.
    """

    def __init__(
        self,
        *,
        codec: TokenCodec,
        ledger: RevocationLedger,
        policy: SessionPolicy,
        lockout: LockoutPolicy,
        lifecycle: CredentialLifecycle,
        notifier: EmailNotifier,
        settings: AuthSettings,
        clock: Clock | None = None,
    ) -> None:
        """
        Initialize the service with its collaborators.

        :param codec: Bearer signing and opaque token hashing.
        :param ledger: Revoked bearer tokens.
        :param policy: Login admission rules.
        :param lockout: Failed-login lockout rules.
        :param lifecycle: Verification token issuance at registration.
        :param notifier: Outgoing email.
        :param settings: Lifetimes and limits.
        """
        super().__init__(clock=clock)
        self.codec = codec
        self.ledger = ledger
        self.policy = policy
        self.lockout = lockout
        self.lifecycle = lifecycle
        self.notifier = notifier
        self.settings = settings

    def _registry(self, repo: UserRepository) -> SessionRegistry:
        return SessionRegistry(repo, ttl=self.settings.session_ttl, clock=self.clock)

    @property
    def _expires_in(self) -> int:
        return int(self.settings.access_ttl.total_seconds())

    # ------------------------------------------------------------------ #
    # Registration
    # ------------------------------------------------------------------ #

    def register(self, dto: RegisterIn) -> UserPublicOut:
        """
        Create an unverified account and email its verification link.

        :raises ValidationError: ``email_taken`` if the email is registered.
        """
        with self.rw_uow() as uow:
            repo: UserRepository = uow.users
            if repo.exists_by_email(dto.email):
                raise ValidationError("Email already exists", code="email_taken")

            try:
                user = User(email=dto.email, role=ROLE_USER, is_verified=False, version=1)
                user.password = dto.password  # model hashes via setter
                token = self.lifecycle.issue_verification_token(user)
                repo.add(user)
            except IntegrityError as exc:
                if violates(exc, "uq_users_email", column="users.email"):
                    raise ValidationError("Email already exists", code="email_taken") from exc
                raise
            out = UserPublicOut.from_model(user)

        log.info("auth.registered user_id=%s", out.id, extra={"user_id": out.id})
        self.notifier.send_verification(out.email, token)
        return out

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn) -> LoginOut:
        """
        Authenticate credentials and admit the device.

        Order of checks: account lock, expired-lock release, password,
        verified email (when required), session admission.

        :raises InvalidCredentialsError: Unknown email or wrong password.
        :raises PolicyRejected: ``account_locked``, ``email_not_verified`` or
            ``MAX_SESSIONS`` (with the current sessions in ``details``).
        """

        def _attempt() -> tuple[LoginOut | None, LoginRefusal | None]:
            with self.rw_uow() as uow:
                repo: UserRepository = uow.users
                user = repo.get_by_email(dto.email, for_update=True)
                if user is None:
                    return None, InvalidCredentialsError()

                now = self.now_utc()
                if self.lockout.is_locked(user, now):
                    return None, PolicyRejected(
                        PolicyReason.ACCOUNT_LOCKED,
                        details={"lockedUntil": user.locked_until.isoformat()},
                    )
                if self.lockout.release_if_expired(user, now):
                    repo.bump_version(user)

                if not user.verify_password(dto.password):
                    locked = self.lockout.register_failure(user, now)
                    repo.bump_version(user)
                    if locked:
                        log.warning(
                            "auth.account_locked user_id=%s",
                            user.id,
                            extra={"user_id": user.id, "reason": "account_locked"},
                        )
                    return None, InvalidCredentialsError()

                if self.settings.require_verified_email and not user.is_verified:
                    return None, PolicyRejected(PolicyReason.EMAIL_NOT_VERIFIED)

                decision = self.policy.admit(
                    self._registry(repo),
                    user.id,
                    dto.device_id,
                    user_agent=dto.user_agent,
                    force_logout=dto.force_logout,
                )
                if not decision.admitted:
                    return None, PolicyRejected(
                        PolicyReason.MAX_SESSIONS,
                        details={
                            "activeSessions": [s.to_dict() for s in decision.sessions],
                            "maxSessions": self.policy.max_sessions,
                        },
                    )

                bearer = self.codec.issue(
                    user.id,
                    self.settings.access_ttl,
                    claims={"role": user.role, "device_id": dto.device_id},
                )
                rotation, digest = self.codec.issue_rotation()
                user.refresh_token_hash = digest
                user.refresh_expires_at = now + self.settings.refresh_ttl
                user.refresh_device_id = dto.device_id
                self.lockout.register_success(user)
                repo.bump_version(user)

                return (
                    LoginOut(
                        token=bearer.token,
                        refresh_token=rotation,
                        role=user.role,
                        expires_in=self._expires_in,
                        device_id=dto.device_id,
                        sessions=decision.sessions,
                        evicted_device_id=decision.evicted_device_id,
                    ),
                    None,
                )

        out, error = self.retry_on_conflict(_attempt)
        if error is not None:
            code = error.reason.value if isinstance(error, PolicyRejected) else error.code
            log.info(
                "auth.login_failed email=%s code=%s",
                redact_email(dto.email),
                code,
                extra={"device_id": dto.device_id, "reason": code},
            )
            raise error

        out = cast(LoginOut, out)
        log.info(
            "auth.login_succeeded active=%s",
            out.active_sessions,
            extra={
                "device_id": out.device_id,
                "evicted_device_id": out.evicted_device_id,
            },
        )
        return out

    # ------------------------------------------------------------------ #
    # Request authentication
    # ------------------------------------------------------------------ #

    def authenticate(self, token: str | None) -> TokenClaims:
        """
        Verify a bearer token and make sure it was not revoked.

        :raises AuthError: ``token_missing``, ``token_invalid``,
            ``token_expired`` or ``token_blacklisted``.
        :raises InfrastructureError: If the ledger cannot be read.
        """
        if not token:
            raise AuthError(AuthFailure.TOKEN_MISSING)
        claims = self.codec.verify(token)
        if self.ledger.is_revoked(token):
            raise AuthError(AuthFailure.BLACKLISTED)
        return claims

    # ------------------------------------------------------------------ #
    # Refresh (single-slot rotation)
    # ------------------------------------------------------------------ #

    def refresh(self, dto: RefreshIn) -> TokenPairOut:
        """
        Exchange the current rotation token for a new bearer + rotation pair.

        The presented token stops working immediately: its slot is
        overwritten by the new digest in the same unit of work.

        :raises ValidationError: ``invalid_refresh_token`` if unknown or expired.
        """
        invalid = ValidationError("Invalid refresh token", code="invalid_refresh_token")
        if not dto.refresh_token:
            raise invalid
        digest = self.codec.hash_for_lookup(dto.refresh_token)

        def _rotate() -> TokenPairOut:
            with self.rw_uow() as uow:
                repo: UserRepository = uow.users
                user = repo.get_by_token_hash("refresh_token_hash", digest)
                now = self.now_utc()
                if (
                    user is None
                    or user.refresh_expires_at is None
                    or user.refresh_expires_at <= now
                ):
                    raise invalid

                claims: dict[str, Any] = {"role": user.role}
                if user.refresh_device_id:
                    claims["device_id"] = user.refresh_device_id
                bearer = self.codec.issue(user.id, self.settings.access_ttl, claims=claims)
                rotation, new_digest = self.codec.issue_rotation()
                user.refresh_token_hash = new_digest
                user.refresh_expires_at = now + self.settings.refresh_ttl
                repo.bump_version(user)
                log.info("auth.refreshed user_id=%s", user.id, extra={"user_id": user.id})
                return TokenPairOut(
                    token=bearer.token,
                    refresh_token=rotation,
                    expires_in=self._expires_in,
                )

        return self.retry_on_conflict(_rotate)

    # ------------------------------------------------------------------ #
    # Logout
    # ------------------------------------------------------------------ #

    def logout(self, ctx: BearerContext) -> int:
        """
        End the caller's device session and blacklist its bearer token.

        The rotation slot is cleared as well.

        :returns: Live sessions remaining on other devices.
        """

        def _logout() -> int:
            with self.rw_uow() as uow:
                repo: UserRepository = uow.users
                registry = self._registry(repo)
                registry.evict(ctx.user_id, ctx.device_id)
                user = registry.load(ctx.user_id)
                self._clear_rotation(repo, user)
                return len(registry.list_live(ctx.user_id))

        remaining = self.retry_on_conflict(_logout)
        self.ledger.revoke(ctx.token, ctx.expires_at)
        log.info(
            "auth.logout user_id=%s remaining=%s",
            ctx.user_id,
            remaining,
            extra={"user_id": ctx.user_id, "device_id": ctx.device_id},
        )
        return remaining

    def logout_all(self, ctx: BearerContext) -> int:
        """
        End every session of the caller and blacklist the current token.

        Bearer tokens held by other devices stay signed but are refused by
        the session check since their sessions no longer exist.

        :returns: Number of sessions removed.
        """

        def _logout_all() -> int:
            with self.rw_uow() as uow:
                repo: UserRepository = uow.users
                registry = self._registry(repo)
                removed = registry.evict_all(ctx.user_id)
                self._clear_rotation(repo, registry.load(ctx.user_id))
                return removed

        removed = self.retry_on_conflict(_logout_all)
        self.ledger.revoke(ctx.token, ctx.expires_at)
        log.info(
            "auth.logout_all user_id=%s removed=%s",
            ctx.user_id,
            removed,
            extra={"user_id": ctx.user_id},
        )
        return removed

    # ------------------------------------------------------------------ #
    # Account
    # ------------------------------------------------------------------ #

    def change_password(self, ctx: BearerContext, dto: PasswordChangeIn) -> None:
        """
        Replace the password after checking the current one.

        All sessions end, the rotation slot is cleared and the current bearer
        token is blacklisted.

        :raises ValidationError: ``invalid_password`` if the current password is wrong.
        """

        def _change() -> str:
            with self.rw_uow() as uow:
                repo: UserRepository = uow.users
                registry = self._registry(repo)
                user = registry.load(ctx.user_id)
                if not user.verify_password(dto.current_password):
                    raise ValidationError(
                        "Current password is incorrect", code="invalid_password"
                    )
                user.password = dto.new_password
                self._clear_rotation(repo, user)
                registry.evict_all(ctx.user_id)
                return user.email

        email = self.retry_on_conflict(_change)
        self.ledger.revoke(ctx.token, ctx.expires_at)
        log.info(
            "auth.password_changed user_id=%s", ctx.user_id, extra={"user_id": ctx.user_id}
        )
        self.notifier.send_password_changed(email)

    def delete_account(self, ctx: BearerContext) -> None:
        """Delete the caller's account (sessions cascade) and blacklist its token."""
        with self.rw_uow() as uow:
            repo: UserRepository = uow.users
            user = repo.get_for_update(ctx.user_id)
            if user is None:
                raise NotFoundError("User", ctx.user_id)
            repo.delete(user)

        self.ledger.revoke(ctx.token, ctx.expires_at)
        log.info("auth.account_deleted user_id=%s", ctx.user_id, extra={"user_id": ctx.user_id})

    # ------------------------------------------------------------------ #
    # Utilities
    # ------------------------------------------------------------------ #

    @staticmethod
    def _clear_rotation(repo: UserRepository, user: User) -> None:
        if user.refresh_token_hash is None and user.refresh_expires_at is None:
            return
        user.refresh_token_hash = None
        user.refresh_expires_at = None
        user.refresh_device_id = None
        repo.bump_version(user)
