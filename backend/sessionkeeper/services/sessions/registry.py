# sessionkeeper/services/sessions/registry.py
"""
Per-user registry of device sessions.

The registry mutates the ``User.sessions`` collection of an aggregate loaded
inside the caller's unit of work. It never commits: the enclosing UoW writes
the whole aggregate back with a version-conditional UPDATE, so two requests
racing on the same user cannot silently drop each other's changes.

Every structural change (insert, refresh, removal) bumps the aggregate
version. Removals are flushed immediately so a device pruned or evicted
earlier in the same unit of work can be re-inserted without tripping the
``(user_id, device_id)`` unique constraint.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sessionkeeper.models.session import USER_AGENT_MAX_LENGTH, UserSession
from sessionkeeper.models.user import User
from sessionkeeper.repositories.user import UserRepository
from sessionkeeper.services._shared.base import Clock, utcnow
from sessionkeeper.services._shared.errors import NotFoundError
from sessionkeeper.services.sessions.dto import SessionView

log = logging.getLogger(__name__)

DEFAULT_SESSION_TTL = timedelta(hours=24)


def to_view(session: UserSession) -> SessionView:
    return SessionView(
        device_id=session.device_id,
        user_agent=session.user_agent or "",
        last_active_at=session.last_active_at,
        created_at=session.created_at,
    )


class SessionRegistry:
    """
    Add, touch, evict and prune device sessions of one user at a time.

    :param users: User repository bound to the current unit of work.
    :param ttl: Idle time after which a session is no longer live.
    :param clock: Source of "now".
    """

    def __init__(
        self,
        users: UserRepository,
        *,
        ttl: timedelta = DEFAULT_SESSION_TTL,
        clock: Clock | None = None,
    ) -> None:
        self.users = users
        self.ttl = ttl
        self.clock: Clock = clock or utcnow
        self._loaded: dict[int, User] = {}

    # ------------------------------------------------------------------ #
    # Aggregate access
    # ------------------------------------------------------------------ #

    def load(self, user_id: int) -> User:
        """
        Return the locked user aggregate for this unit of work.

        :raises NotFoundError: If the user does not exist.
        """
        user = self._loaded.get(user_id)
        if user is None:
            user = self.users.get_for_update(user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            self._loaded[user_id] = user
        return user

    def is_live(self, session: UserSession | SessionView, now: datetime | None = None) -> bool:
        """A session is live while ``now - last_active_at < ttl``."""
        moment = now or self.clock()
        return moment - session.last_active_at < self.ttl

    def _remove(self, user: User, doomed: list[UserSession]) -> None:
        for session in doomed:
            user.sessions.remove(session)
        self.users.bump_version(user)
        self.users.flush()

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #

    def list_live(self, user_id: int) -> list[SessionView]:
        """
        Return live sessions in creation order, pruning expired ones.

        Pruned rows are removed from the aggregate and written back with the
        enclosing unit of work.
        """
        user = self.load(user_id)
        now = self.clock()
        expired = [s for s in user.sessions if not self.is_live(s, now)]
        if expired:
            self._remove(user, expired)
            log.info(
                "sessions.pruned user_id=%s count=%s",
                user_id,
                len(expired),
                extra={"user_id": user_id},
            )
        return [to_view(s) for s in user.sessions]

    def find(self, user_id: int, device_id: str) -> SessionView | None:
        """Raw lookup by device id. Expired sessions are returned as-is."""
        user = self.load(user_id)
        for session in user.sessions:
            if session.device_id == device_id:
                return to_view(session)
        return None

    def touch(self, user_id: int, device_id: str, user_agent: str = "") -> SessionView:
        """
        Refresh the session of ``device_id`` or insert a new one.

        The session cap is not enforced here; admission is the policy's job.
        """
        user = self.load(user_id)
        now = self.clock()
        agent = (user_agent or "")[:USER_AGENT_MAX_LENGTH]
        for session in user.sessions:
            if session.device_id == device_id:
                session.last_active_at = now
                if agent:
                    session.user_agent = agent
                self.users.bump_version(user)
                return to_view(session)

        session = UserSession(
            device_id=device_id,
            user_agent=agent,
            last_active_at=now,
            created_at=now,
        )
        user.sessions.append(session)
        self.users.bump_version(user)
        log.info(
            "sessions.created user_id=%s",
            user_id,
            extra={"user_id": user_id, "device_id": device_id},
        )
        return to_view(session)

    def evict(self, user_id: int, device_id: str) -> bool:
        """
        Remove the session of ``device_id``.

        :returns: ``True`` if a session was removed, ``False`` if none existed.
        """
        user = self.load(user_id)
        doomed = [s for s in user.sessions if s.device_id == device_id]
        if not doomed:
            return False
        self._remove(user, doomed)
        log.info(
            "sessions.evicted user_id=%s",
            user_id,
            extra={"user_id": user_id, "device_id": device_id},
        )
        return True

    def evict_all(self, user_id: int) -> int:
        """Remove every session of the user. :returns: Number removed."""
        user = self.load(user_id)
        doomed = list(user.sessions)
        if doomed:
            self._remove(user, doomed)
            log.info(
                "sessions.evicted_all user_id=%s count=%s",
                user_id,
                len(doomed),
                extra={"user_id": user_id},
            )
        return len(doomed)
