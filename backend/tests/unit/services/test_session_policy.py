"""Unit tests for the login admission policy."""

from __future__ import annotations

import pytest

from sessionkeeper.services.sessions.policy import PolicyState, SessionPolicy
from sessionkeeper.services.sessions.registry import SessionRegistry
from sessionkeeper.uow import SQLAlchemyUnitOfWork
from tests.helpers.doubles import T0
from tests.factories.user import UserFactory
from tests.helpers.doubles import FakeClock


@pytest.fixture()
def clock():
    return FakeClock(T0)


@pytest.fixture()
def user_id():
    return UserFactory().id


@pytest.fixture()
def admit(clock, user_id):
    policy = SessionPolicy(max_sessions=4)

    def _admit(device_id, force_logout=None):
        with SQLAlchemyUnitOfWork() as uow:
            registry = SessionRegistry(uow.users, clock=clock)
            return policy.admit(registry, user_id, device_id, force_logout=force_logout)

    return _admit


def _devices(decision):
    return [s.device_id for s in decision.sessions]


def test_admits_until_cap_then_rejects(admit):
    for i in range(1, 5):
        decision = admit(f"device-{i}")
        assert decision.admitted
        assert decision.active_sessions == i

    rejected = admit("device-5")
    assert rejected.admitted is False
    assert _devices(rejected) == ["device-1", "device-2", "device-3", "device-4"]
    assert rejected.states[-1] is PolicyState.REJECT


def test_known_device_is_readmitted_at_capacity(admit):
    for i in range(1, 5):
        admit(f"device-{i}")

    again = admit("device-2")
    assert again.admitted
    assert again.active_sessions == 4
    assert PolicyState.FORCE_EVICT not in again.states


def test_force_logout_evicts_named_device_at_capacity(admit):
    for i in range(1, 5):
        admit(f"device-{i}")

    decision = admit("device-5", force_logout="device-1")

    assert decision.admitted
    assert decision.evicted_device_id == "device-1"
    assert _devices(decision) == ["device-2", "device-3", "device-4", "device-5"]
    assert decision.states == (
        PolicyState.PRUNE,
        PolicyState.FORCE_EVICT,
        PolicyState.CAPACITY_CHECK,
        PolicyState.ADMIT,
    )


def test_force_logout_below_capacity_is_ignored(admit):
    admit("device-1")
    decision = admit("device-2", force_logout="device-1")

    assert decision.evicted_device_id is None
    assert _devices(decision) == ["device-1", "device-2"]


def test_force_logout_of_self_is_ignored(admit):
    for i in range(1, 5):
        admit(f"device-{i}")

    decision = admit("device-5", force_logout="device-5")
    assert decision.admitted is False


def test_force_logout_of_unknown_device_still_rejects(admit):
    for i in range(1, 5):
        admit(f"device-{i}")

    decision = admit("device-5", force_logout="ghost")
    assert decision.admitted is False
    assert decision.evicted_device_id is None


def test_idle_sessions_do_not_count_towards_cap(admit, clock):
    for i in range(1, 5):
        admit(f"device-{i}")
    clock.advance(hours=24, seconds=1)

    decision = admit("device-5")
    assert decision.admitted
    assert _devices(decision) == ["device-5"]


def test_rejects_non_positive_cap():
    with pytest.raises(ValueError):
        SessionPolicy(max_sessions=0)
