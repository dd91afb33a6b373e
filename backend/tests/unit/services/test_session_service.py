"""Unit tests for request-time session checks and session management."""

from __future__ import annotations

import pytest

from sessionkeeper.models import ROLE_ADMIN
from sessionkeeper.services._shared.errors import (
    AuthError,
    AuthFailure,
    AuthorizationError,
    NotFoundError,
    SessionExpiredError,
)
from sessionkeeper.services.auth.dto import BearerContext, LoginIn
from tests.helpers.doubles import T0
from tests.factories.user import DEFAULT_PASSWORD, UserFactory
from tests.helpers.doubles import Core, FakeClock


@pytest.fixture()
def clock():
    return FakeClock(T0)


@pytest.fixture()
def core(clock):
    return Core(clock)


@pytest.fixture()
def user():
    return UserFactory(email="s@x.com")


def _login(core, device):
    out = core.auth.login(LoginIn(email="s@x.com", password=DEFAULT_PASSWORD, device_id=device))
    claims = core.codec.verify(out.token)
    return BearerContext(
        user_id=claims.user_id, token=out.token, expires_at=claims.expires_at, device_id=device
    )


class TestEnsureActive:
    def test_requires_device_id(self, core, user):
        with pytest.raises(AuthError) as exc:
            core.sessions.ensure_active(user.id, "")
        assert exc.value.reason is AuthFailure.DEVICE_ID_REQUIRED

    def test_unknown_device_is_invalid_session(self, core, user):
        _login(core, "device-1")
        with pytest.raises(AuthError) as exc:
            core.sessions.ensure_active(user.id, "device-9")
        assert exc.value.reason is AuthFailure.INVALID_SESSION

    def test_idle_session_is_invalid(self, core, user, clock):
        _login(core, "device-1")
        clock.advance(hours=24)
        with pytest.raises(AuthError) as exc:
            core.sessions.ensure_active(user.id, "device-1")
        assert exc.value.reason is AuthFailure.INVALID_SESSION

    def test_activity_extends_the_session(self, core, user, clock):
        _login(core, "device-1")
        clock.advance(hours=20)
        view = core.sessions.ensure_active(user.id, "device-1", "agent/2")
        assert view.last_active_at == clock.now
        clock.advance(hours=20)
        assert core.sessions.ensure_active(user.id, "device-1").user_agent == "agent/2"

    def test_token_bound_to_another_device_is_refused(self, core, user):
        _login(core, "device-1")
        _login(core, "device-2")

        with pytest.raises(AuthError) as exc:
            core.sessions.ensure_active(user.id, "device-2", token_device_id="device-1")
        assert exc.value.reason is AuthFailure.INVALID_SESSION
        assert core.sessions.ensure_active(user.id, "device-2", token_device_id="device-2")

    def test_deleted_user_is_invalid_session(self, core):
        with pytest.raises(AuthError) as exc:
            core.sessions.ensure_active(424242, "device-1")
        assert exc.value.reason is AuthFailure.INVALID_SESSION


class TestListAndDelete:
    def test_list_flags_current_device_and_prunes(self, core, user, clock):
        _login(core, "device-1")
        clock.advance(hours=23)
        _login(core, "device-2")
        clock.advance(hours=2)

        out = core.sessions.list_sessions(user.id, "device-2")
        assert [s.device_id for s in out.sessions] == ["device-2"]
        assert out.total_active_sessions == 1
        assert out.current_device_id == "device-2"

    def test_delete_other_device(self, core, user):
        ctx = _login(core, "device-1")
        _login(core, "device-2")

        assert core.sessions.delete_session(ctx, "device-2") == 1
        assert core.auth.authenticate(ctx.token).user_id == user.id

    def test_delete_own_device_blacklists_token(self, core, user):
        ctx = _login(core, "device-1")

        assert core.sessions.delete_session(ctx, "device-1") == 0
        with pytest.raises(AuthError) as exc:
            core.auth.authenticate(ctx.token)
        assert exc.value.reason is AuthFailure.BLACKLISTED

    def test_delete_missing_session(self, core, user):
        ctx = _login(core, "device-1")
        with pytest.raises(NotFoundError) as exc:
            core.sessions.delete_session(ctx, "nope")
        assert exc.value.code == "SESSION_NOT_FOUND"

    def test_delete_pruned_session_is_not_found(self, core, user, clock):
        _login(core, "device-1")
        clock.advance(hours=25)
        ctx = _login(core, "device-2")

        with pytest.raises(NotFoundError):
            core.sessions.delete_session(ctx, "device-1")

    def test_delete_idle_but_unpruned_session(self, core, user, clock):
        ctx = _login(core, "device-1")
        _login(core, "device-2")
        clock.advance(hours=24)

        with pytest.raises(SessionExpiredError):
            core.sessions.delete_session(ctx, "device-2")


class TestUsersForDevice:
    def test_admin_only(self, core, user):
        with pytest.raises(AuthorizationError):
            core.sessions.users_for_device("device-1", role="user")

    def test_lists_users_sharing_a_device(self, core, user):
        _login(core, "kiosk")
        other = UserFactory(email="t@x.com")
        core.auth.login(LoginIn(email="t@x.com", password=DEFAULT_PASSWORD, device_id="kiosk"))

        found = core.sessions.users_for_device("kiosk", role=ROLE_ADMIN)
        assert [u.email for u in found] == ["s@x.com", "t@x.com"]
        assert found[1].id == other.id

    def test_unknown_device_is_not_found(self, core, user):
        with pytest.raises(NotFoundError):
            core.sessions.users_for_device("ghost", role=ROLE_ADMIN)
