# sessionkeeper/services/sessions/service.py
from __future__ import annotations

import logging
from datetime import timedelta

from sessionkeeper.models.user import ROLE_ADMIN
from sessionkeeper.repositories.user import UserRepository
from sessionkeeper.services._shared.base import BaseService, Clock
from sessionkeeper.services._shared.errors import (
    AuthError,
    AuthFailure,
    NotFoundError,
    SessionExpiredError,
)
from sessionkeeper.services.auth.dto import BearerContext
from sessionkeeper.services.revocation.ledger import RevocationLedger
from sessionkeeper.services.sessions.dto import DeviceUserOut, SessionListOut, SessionView
from sessionkeeper.services.sessions.registry import SessionRegistry

log = logging.getLogger(__name__)


class SessionService(BaseService):
    """
    Request-time session checks and session management endpoints.

    :param ledger: Used when a caller deletes its own device session.
    :param session_ttl: Idle time after which a session is no longer live.
    """

    def __init__(
        self,
        *,
        ledger: RevocationLedger,
        session_ttl: timedelta,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(clock=clock)
        self.ledger = ledger
        self.session_ttl = session_ttl

    def _registry(self, repo: UserRepository) -> SessionRegistry:
        return SessionRegistry(repo, ttl=self.session_ttl, clock=self.clock)

    # ------------------------------------------------------------------ #
    # Request-time
    # ------------------------------------------------------------------ #

    def ensure_active(
        self,
        user_id: int,
        device_id: str,
        user_agent: str = "",
        *,
        token_device_id: str | None = None,
    ) -> SessionView:
        """
        Confirm ``device_id`` holds a live session and refresh its recency.

        :param token_device_id: Device the bearer was issued to. A token bound
            to one device is not accepted for another.
        :raises AuthError: ``device_id_required`` or ``INVALID_SESSION``.
        """
        if not device_id:
            raise AuthError(AuthFailure.DEVICE_ID_REQUIRED)
        if token_device_id is not None and token_device_id != device_id:
            log.warning(
                "sessions.device_mismatch user_id=%s",
                user_id,
                extra={"user_id": user_id, "device_id": device_id, "reason": "device_mismatch"},
            )
            raise AuthError(AuthFailure.INVALID_SESSION)

        def _touch() -> SessionView:
            with self.rw_uow() as uow:
                registry = self._registry(uow.users)
                try:
                    current = registry.find(user_id, device_id)
                except NotFoundError as exc:
                    raise AuthError(AuthFailure.INVALID_SESSION) from exc
                if current is None or not registry.is_live(current):
                    raise AuthError(AuthFailure.INVALID_SESSION)
                return registry.touch(user_id, device_id, user_agent)

        return self.retry_on_conflict(_touch)

    # ------------------------------------------------------------------ #
    # Listing
    # ------------------------------------------------------------------ #

    def list_sessions(self, user_id: int, current_device_id: str) -> SessionListOut:
        """Return live sessions, pruning expired ones as a side effect."""

        def _list() -> SessionListOut:
            with self.rw_uow() as uow:
                live = self._registry(uow.users).list_live(user_id)
                return SessionListOut(sessions=tuple(live), current_device_id=current_device_id)

        return self.retry_on_conflict(_list)

    # ------------------------------------------------------------------ #
    # Deletion
    # ------------------------------------------------------------------ #

    def delete_session(self, ctx: BearerContext, device_id: str) -> int:
        """
        End the session of ``device_id`` for the caller.

        When the caller deletes its own device the current bearer token is
        blacklisted as well. An expired session is reported, not removed.

        :returns: Number of sessions left (expired ones included).
        :raises NotFoundError: ``SESSION_NOT_FOUND`` if the device has no session.
        :raises SessionExpiredError: If the session is no longer live.
        """

        def _delete() -> int:
            with self.rw_uow() as uow:
                registry = self._registry(uow.users)
                target = registry.find(ctx.user_id, device_id)
                if target is None:
                    raise NotFoundError("Session", device_id, code="SESSION_NOT_FOUND")
                if not registry.is_live(target):
                    raise SessionExpiredError(device_id)
                registry.evict(ctx.user_id, device_id)
                return len(registry.load(ctx.user_id).sessions)

        remaining = self.retry_on_conflict(_delete)
        if device_id == ctx.device_id:
            self.ledger.revoke(ctx.token, ctx.expires_at)
        log.info(
            "sessions.deleted user_id=%s remaining=%s",
            ctx.user_id,
            remaining,
            extra={"user_id": ctx.user_id, "device_id": device_id},
        )
        return remaining

    # ------------------------------------------------------------------ #
    # Admin
    # ------------------------------------------------------------------ #

    def users_for_device(self, device_id: str, *, role: str | None) -> list[DeviceUserOut]:
        """
        List users that hold a session on ``device_id`` (admin only).

        :raises AuthorizationError: If ``role`` is not ``admin``.
        :raises NotFoundError: If no user holds such a session.
        """
        self.ensure_role(role, {ROLE_ADMIN})
        with self.ro_uow() as uow:
            users = uow.users.list_by_device(device_id)
            if not users:
                raise NotFoundError("User", device_id)
            return [
                DeviceUserOut(
                    id=u.id,
                    email=u.email,
                    role=u.role,
                    is_verified=bool(u.is_verified),
                )
                for u in users
            ]
