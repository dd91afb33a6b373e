"""Profile, account management, role gates and device session endpoints."""

from __future__ import annotations

import pytest

from tests.factories.user import DEFAULT_PASSWORD, UserFactory
from tests.helpers.http import API, PASSWORD, bearer, login, problem_code, register


def _token(resp) -> str:
    assert resp.status_code == 200, resp.get_json()
    return resp.get_json()["data"]["token"]


@pytest.fixture()
def user_token(client):
    register(client, "me@x.com")
    return _token(login(client, "me@x.com", "device-1"))


@pytest.fixture()
def admin_token(client):
    UserFactory(email="admin@x.com", role="admin")
    return _token(login(client, "admin@x.com", "admin-pc", DEFAULT_PASSWORD))


class TestProfile:
    def test_get_profile(self, client, user_token):
        resp = client.get(f"{API}/profile", headers=bearer(user_token, "device-1"))

        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["user"]["email"] == "me@x.com"
        assert data["deviceId"] == "device-1"
        assert data["activeSessions"] == 1

    def test_change_email_requires_reverification(self, client, user_token, outbox):
        resp = client.put(
            f"{API}/profile",
            json={"email": "New@x.com"},
            headers=bearer(user_token, "device-1"),
        )

        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["email"] == "new@x.com"
        assert data["isVerified"] is False
        assert outbox[-1].recipients == ["new@x.com"]

    def test_change_email_to_a_taken_one(self, client, user_token):
        register(client, "other@x.com")
        resp = client.put(
            f"{API}/profile",
            json={"email": "other@x.com"},
            headers=bearer(user_token, "device-1"),
        )
        assert resp.status_code == 400
        assert problem_code(resp) == "email_taken"


class TestChangePassword:
    def test_change_password_ends_every_session(self, client, user_token, outbox):
        other = _token(login(client, "me@x.com", "device-2"))

        resp = client.put(
            f"{API}/change-password",
            json={"currentPassword": PASSWORD, "newPassword": "brand-new-password"},
            headers=bearer(user_token, "device-1"),
        )
        assert resp.status_code == 200
        assert outbox[-1].subject == "Your password was changed"

        revoked = client.get(f"{API}/profile", headers=bearer(user_token, "device-1"))
        assert problem_code(revoked) == "token_blacklisted"
        evicted = client.get(f"{API}/profile", headers=bearer(other, "device-2"))
        assert problem_code(evicted) == "INVALID_SESSION"
        assert login(client, "me@x.com", "device-1", "brand-new-password").status_code == 200

    def test_wrong_current_password(self, client, user_token):
        resp = client.put(
            f"{API}/change-password",
            json={"currentPassword": "not-it", "newPassword": "brand-new-password"},
            headers=bearer(user_token, "device-1"),
        )
        assert resp.status_code == 400
        assert problem_code(resp) == "invalid_password"


class TestDeleteAccount:
    def test_delete_account_revokes_and_frees_the_email(self, client, user_token):
        resp = client.delete(f"{API}/delete-account", headers=bearer(user_token, "device-1"))
        assert resp.status_code == 200

        again = client.get(f"{API}/profile", headers=bearer(user_token, "device-1"))
        assert problem_code(again) == "token_blacklisted"
        assert problem_code(login(client, "me@x.com", "device-1")) == "invalid_credentials"
        register(client, "me@x.com")


class TestRoleGates:
    def test_user_area_accepts_users(self, client, user_token):
        resp = client.get(f"{API}/user", headers=bearer(user_token, "device-1"))
        assert resp.status_code == 200
        assert resp.get_json()["data"]["role"] == "user"

    def test_admin_area_rejects_users(self, client, user_token):
        resp = client.get(f"{API}/admin", headers=bearer(user_token, "device-1"))
        assert resp.status_code == 403
        assert problem_code(resp) == "forbidden"

    def test_admin_reaches_both_areas(self, client, admin_token):
        headers = bearer(admin_token, "admin-pc")
        assert client.get(f"{API}/admin", headers=headers).status_code == 200
        assert client.get(f"{API}/user", headers=headers).status_code == 200


class TestDeviceSessions:
    def test_listing_flags_the_current_device(self, client, user_token):
        login(client, "me@x.com", "device-2")

        resp = client.get(f"{API}/sessions", headers=bearer(user_token, "device-1"))

        data = resp.get_json()["data"]
        assert data["currentDeviceId"] == "device-1"
        assert data["totalActiveSessions"] == 2
        flags = {s["deviceId"]: s["isCurrentDevice"] for s in data["sessions"]}
        assert flags == {"device-1": True, "device-2": False}

    def test_delete_another_device(self, client, user_token):
        other = _token(login(client, "me@x.com", "device-2"))

        resp = client.delete(f"{API}/sessions/device-2", headers=bearer(user_token, "device-1"))
        assert resp.status_code == 200
        assert resp.get_json()["data"] == {"deviceId": "device-2", "remainingSessions": 1}

        evicted = client.get(f"{API}/profile", headers=bearer(other, "device-2"))
        assert problem_code(evicted) == "INVALID_SESSION"

    def test_delete_own_device_blacklists_the_token(self, client, user_token):
        headers = bearer(user_token, "device-1")
        resp = client.delete(f"{API}/sessions/device-1", headers=headers)
        assert resp.get_json()["data"]["remainingSessions"] == 0

        assert problem_code(client.get(f"{API}/sessions", headers=headers)) == (
            "token_blacklisted"
        )

    def test_delete_unknown_device(self, client, user_token):
        resp = client.delete(f"{API}/sessions/nowhere", headers=bearer(user_token, "device-1"))
        assert resp.status_code == 404
        assert problem_code(resp) == "SESSION_NOT_FOUND"


class TestUsersForDevice:
    def test_admin_lists_users_of_a_device(self, client, admin_token):
        register(client, "u1@x.com")
        register(client, "u2@x.com")
        login(client, "u1@x.com", "shared-tablet")
        login(client, "u2@x.com", "shared-tablet")

        resp = client.get(
            f"{API}/users/device/shared-tablet", headers=bearer(admin_token, "admin-pc")
        )

        assert resp.status_code == 200
        emails = sorted(u["email"] for u in resp.get_json()["data"])
        assert emails == ["u1@x.com", "u2@x.com"]

    def test_unknown_device_is_not_found(self, client, admin_token):
        resp = client.get(f"{API}/users/device/none", headers=bearer(admin_token, "admin-pc"))
        assert resp.status_code == 404

    def test_users_are_forbidden(self, client, user_token):
        resp = client.get(
            f"{API}/users/device/device-1", headers=bearer(user_token, "device-1")
        )
        assert resp.status_code == 403
