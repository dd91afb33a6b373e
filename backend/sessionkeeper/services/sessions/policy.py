# sessionkeeper/services/sessions/policy.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from sessionkeeper.services.sessions.dto import SessionView
from sessionkeeper.services.sessions.registry import SessionRegistry

log = logging.getLogger(__name__)

DEFAULT_MAX_SESSIONS = 4


class PolicyState(str, Enum):
    """Steps of one login admission, in the order they can be visited."""

    PRUNE = "prune"
    FORCE_EVICT = "force_evict"
    CAPACITY_CHECK = "capacity_check"
    ADMIT = "admit"
    REJECT = "reject"


@dataclass(frozen=True, slots=True)
class AdmissionDecision:
    """
    Outcome of :meth:`SessionPolicy.admit`.

    :ivar admitted: Whether the device now holds a live session.
    :ivar device_id: Device that asked for admission.
    :ivar sessions: Live sessions after the decision (the full list on reject).
    :ivar evicted_device_id: Device removed by a force-logout hint, if any.
    :ivar states: States visited, ending in ``ADMIT`` or ``REJECT``.
    """

    admitted: bool
    device_id: str
    sessions: tuple[SessionView, ...]
    evicted_device_id: str | None
    states: tuple[PolicyState, ...]

    @property
    def active_sessions(self) -> int:
        return len(self.sessions)


class SessionPolicy:
    """
    Admission rules for concurrent device sessions at login.

    ``PRUNE -> FORCE_EVICT (optional) -> CAPACITY_CHECK -> ADMIT | REJECT``

    The caller has already verified the user's credentials; the policy only
    decides whether this device may hold a session. A device that already
    has a live session is always re-admitted, whatever the count.

    :param max_sessions: Live sessions allowed per user.
    """

    def __init__(self, *, max_sessions: int = DEFAULT_MAX_SESSIONS) -> None:
        if max_sessions < 1:
            raise ValueError("max_sessions must be >= 1")
        self.max_sessions = max_sessions

    def admit(
        self,
        registry: SessionRegistry,
        user_id: int,
        device_id: str,
        *,
        user_agent: str = "",
        force_logout: str | None = None,
    ) -> AdmissionDecision:
        """
        Run the admission state machine for ``device_id``.

        Mutations (pruning, forced eviction, the touch on admit) are staged on
        the aggregate held by ``registry``; a rejection still leaves the
        pruning to be committed by the caller.

        :param registry: Registry bound to the caller's unit of work.
        :param user_id: Credential-authenticated user.
        :param device_id: Device presenting the login.
        :param user_agent: ``User-Agent`` to record on the session.
        :param force_logout: Device of the same user to evict when at capacity.
        :returns: The decision and the resulting session snapshot.
        """
        states: list[PolicyState] = [PolicyState.PRUNE]
        live = registry.list_live(user_id)

        evicted: str | None = None
        if (
            force_logout
            and force_logout != device_id
            and len(live) >= self.max_sessions
        ):
            states.append(PolicyState.FORCE_EVICT)
            if registry.evict(user_id, force_logout):
                evicted = force_logout
                log.info(
                    "policy.force_evicted user_id=%s",
                    user_id,
                    extra={"user_id": user_id, "evicted_device_id": force_logout},
                )
            live = registry.list_live(user_id)

        states.append(PolicyState.CAPACITY_CHECK)
        known = any(s.device_id == device_id for s in live)
        if not known and len(live) >= self.max_sessions:
            states.append(PolicyState.REJECT)
            log.info(
                "policy.rejected user_id=%s active=%s",
                user_id,
                len(live),
                extra={"user_id": user_id, "device_id": device_id, "reason": "MAX_SESSIONS"},
            )
            return AdmissionDecision(
                admitted=False,
                device_id=device_id,
                sessions=tuple(live),
                evicted_device_id=evicted,
                states=tuple(states),
            )

        registry.touch(user_id, device_id, user_agent)
        states.append(PolicyState.ADMIT)
        return AdmissionDecision(
            admitted=True,
            device_id=device_id,
            sessions=tuple(registry.list_live(user_id)),
            evicted_device_id=evicted,
            states=tuple(states),
        )
