"""Unit tests for the per-user session registry."""

from __future__ import annotations

import pytest

from sessionkeeper.services._shared.errors import NotFoundError
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


def _in_uow(clock, fn):
    with SQLAlchemyUnitOfWork() as uow:
        return fn(SessionRegistry(uow.users, clock=clock))


def test_touch_inserts_once_per_device(clock, user_id):
    _in_uow(clock, lambda r: r.touch(user_id, "d1", "ua/1"))
    clock.advance(hours=1)
    view = _in_uow(clock, lambda r: r.touch(user_id, "d1"))

    assert view.last_active_at == T0.replace(hour=10)
    assert view.user_agent == "ua/1"
    assert view.created_at == T0
    assert len(_in_uow(clock, lambda r: r.list_live(user_id))) == 1


def test_touch_bumps_the_aggregate_version(clock, user_id, session):
    from sessionkeeper.models import User

    _in_uow(clock, lambda r: r.touch(user_id, "d1"))
    _in_uow(clock, lambda r: r.touch(user_id, "d1"))
    assert session.get(User, user_id).version == 3


def test_list_live_prunes_idle_sessions(clock, user_id):
    _in_uow(clock, lambda r: r.touch(user_id, "old"))
    clock.advance(hours=12)
    _in_uow(clock, lambda r: r.touch(user_id, "fresh"))
    clock.advance(hours=12)

    live = _in_uow(clock, lambda r: r.list_live(user_id))

    assert [s.device_id for s in live] == ["fresh"]
    assert _in_uow(clock, lambda r: r.find(user_id, "old")) is None


def test_find_returns_expired_sessions_as_is(clock, user_id):
    _in_uow(clock, lambda r: r.touch(user_id, "d1"))
    clock.advance(hours=25)

    def _check(registry):
        found = registry.find(user_id, "d1")
        return found, registry.is_live(found)

    found, live = _in_uow(clock, _check)
    assert found is not None
    assert live is False


def test_evict_and_reinsert_same_device_in_one_unit_of_work(clock, user_id):
    _in_uow(clock, lambda r: r.touch(user_id, "d1"))

    def _cycle(registry):
        assert registry.evict(user_id, "d1") is True
        assert registry.evict(user_id, "d1") is False
        registry.touch(user_id, "d1", "ua/new")
        return registry.list_live(user_id)

    live = _in_uow(clock, _cycle)
    assert [(s.device_id, s.user_agent) for s in live] == [("d1", "ua/new")]


def test_evict_all_reports_count(clock, user_id):
    for device in ("a", "b", "c"):
        _in_uow(clock, lambda r, d=device: r.touch(user_id, d))

    assert _in_uow(clock, lambda r: r.evict_all(user_id)) == 3
    assert _in_uow(clock, lambda r: r.list_live(user_id)) == []


def test_unknown_user_raises_not_found(clock):
    with pytest.raises(NotFoundError):
        _in_uow(clock, lambda r: r.list_live(999_999))


def test_concurrent_writer_is_detected_and_replay_keeps_both_changes(
    clock, user_id, connection, session
):
    from sqlalchemy.orm import Session
    from sqlalchemy.orm.exc import StaleDataError

    from sessionkeeper.models import User
    from sessionkeeper.repositories.user import UserRepository

    # Request A reads version 1 and keeps it in memory
    slow = Session(bind=connection, join_transaction_mode="create_savepoint", expire_on_commit=False)
    slow_registry = SessionRegistry(UserRepository(session=slow), clock=clock)
    assert slow_registry.find(user_id, "d-fast") is None
    slow.commit()

    # Request B commits first and moves the version to 2
    _in_uow(clock, lambda r: r.touch(user_id, "d-fast"))

    slow_registry.touch(user_id, "d-slow")
    with pytest.raises(StaleDataError):
        slow.commit()
    slow.close()

    # The replay reads the fresh aggregate and keeps B's session
    _in_uow(clock, lambda r: r.touch(user_id, "d-slow"))

    session.expire_all()
    stored = session.get(User, user_id)
    assert sorted(s.device_id for s in stored.sessions) == ["d-fast", "d-slow"]
    assert stored.version == 3
