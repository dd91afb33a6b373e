"""
IdentityService
===============

Read and update the caller's own profile:
- Public fields of the ``User`` aggregate
- Email change (resets verification and sends a new link)
"""

from __future__ import annotations

import logging
from datetime import timedelta

from sqlalchemy.exc import IntegrityError

from sessionkeeper.repositories.user import UserRepository
from sessionkeeper.services._shared.base import BaseService, Clock
from sessionkeeper.services._shared.errors import NotFoundError, ValidationError, violates
from sessionkeeper.services.credentials.lifecycle import CredentialLifecycle
from sessionkeeper.services.identity.dto import ProfileOut, ProfileUpdateIn, UserPublicOut
from sessionkeeper.services.notifications.notifier import EmailNotifier
from sessionkeeper.services.sessions.registry import SessionRegistry

log = logging.getLogger(__name__)


class IdentityService(BaseService):
    """
    Application service for profile reads and updates.

    :param lifecycle: Issues the verification token after an email change.
    :param notifier: Sends the verification email.
    :param session_ttl: Used to count live sessions in the profile.
    """

    def __init__(
        self,
        *,
        lifecycle: CredentialLifecycle,
        notifier: EmailNotifier,
        session_ttl: timedelta,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(clock=clock)
        self.lifecycle = lifecycle
        self.notifier = notifier
        self.session_ttl = session_ttl

    # --------------------------------------------------------------------- #
    # Retrieval
    # --------------------------------------------------------------------- #

    def profile(self, user_id: int, device_id: str) -> ProfileOut:
        """
        Return the caller's profile.

        :raises NotFoundError: If the user does not exist.
        """
        with self.ro_uow() as uow:
            repo: UserRepository = uow.users
            user = repo.get(user_id)
            if user is None:
                raise NotFoundError("User", user_id)

            registry = SessionRegistry(repo, ttl=self.session_ttl, clock=self.clock)
            now = self.now_utc()
            live = sum(1 for s in user.sessions if registry.is_live(s, now))
            return ProfileOut(
                user=UserPublicOut.from_model(user),
                device_id=device_id,
                active_sessions=live,
            )

    # --------------------------------------------------------------------- #
    # Update
    # --------------------------------------------------------------------- #

    def update_profile(self, user_id: int, dto: ProfileUpdateIn) -> UserPublicOut:
        """
        Update the caller's email.

        A new address must be verified again: ``is_verified`` is cleared and
        a fresh verification token is emailed to the new address.

        :raises ValidationError: ``email_taken`` if another account owns it.
        """

        def _apply() -> tuple[UserPublicOut, str | None]:
            with self.rw_uow() as uow:
                repo: UserRepository = uow.users
                user = repo.get_for_update(user_id)
                if user is None:
                    raise NotFoundError("User", user_id)

                token: str | None = None
                new_email = (dto.email or "").strip().lower()
                if new_email and new_email != user.email:
                    if repo.exists_by_email(new_email):
                        raise ValidationError("Email already exists", code="email_taken")
                    try:
                        repo.assign_updates(user, {"email": new_email})
                        user.is_verified = False
                        token = self.lifecycle.issue_verification_token(user)
                        repo.bump_version(user)
                        repo.flush()
                    except IntegrityError as exc:
                        if violates(exc, "uq_users_email", column="users.email"):
                            raise ValidationError(
                                "Email already exists", code="email_taken"
                            ) from exc
                        raise
                return UserPublicOut.from_model(user), token

        out, token = self.retry_on_conflict(_apply)
        if token is not None:
            log.info("identity.email_changed user_id=%s", user_id, extra={"user_id": user_id})
            self.notifier.send_verification(out.email, token)
        return out
