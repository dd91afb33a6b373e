"""Health endpoint and Flask CLI maintenance commands."""

from __future__ import annotations

from datetime import timedelta

from sqlalchemy import select

from sessionkeeper.models.user import User
from tests.factories.user import UserFactory
from tests.helpers.doubles import T0


def test_health_reports_sql_revocation_store(client):
    resp = client.get("/api/v1/health")

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["status"] == "ok"
    assert body["db"] == "ok"
    assert body["revocation"] == "sql"
    assert resp.headers["X-Request-ID"]


def test_health_echoes_the_correlation_id(client):
    resp = client.get("/api/v1/health", headers={"X-Request-ID": "req-42"})
    assert resp.headers["X-Request-ID"] == "req-42"


def test_each_request_gets_its_own_request_id(client):
    first = client.get("/api/v1/health", headers={"X-Request-ID": "req-1"})
    second = client.get("/api/v1/health")

    assert first.headers["X-Request-ID"] == "req-1"
    assert second.headers["X-Request-ID"] not in ("", "req-1")


class TestTokensPrune:
    def test_prune_removes_expired_entries(self, app, services, frozen):
        services.ledger.revoke("short-lived", T0 + timedelta(minutes=5))
        services.ledger.revoke("long-lived", T0 + timedelta(hours=2))
        frozen.tick(timedelta(hours=1))

        result = app.test_cli_runner().invoke(args=["tokens", "prune"])

        assert result.exit_code == 0, result.output
        assert "Removed 1 expired revocation entries." in result.output
        assert services.ledger.is_revoked("long-lived")
        assert not services.ledger.is_revoked("short-lived")


class TestUsersSetRole:
    def test_promotes_an_account(self, app, session):
        user = UserFactory(email="promote@x.com")
        user_id = user.id

        result = app.test_cli_runner().invoke(args=["users", "set-role", "promote@x.com", "admin"])

        assert result.exit_code == 0, result.output
        assert "now has role 'admin'" in result.output
        stored = session.scalar(select(User).where(User.id == user_id))
        assert stored.role == "admin"
        assert stored.version == 2

    def test_same_role_is_a_no_op(self, app):
        UserFactory(email="same@x.com")

        result = app.test_cli_runner().invoke(args=["users", "set-role", "same@x.com", "user"])

        assert result.exit_code == 0
        assert "already has role 'user'" in result.output

    def test_unknown_email_fails(self, app):
        result = app.test_cli_runner().invoke(args=["users", "set-role", "ghost@x.com", "admin"])

        assert result.exit_code != 0
        assert "No account registered" in result.output

    def test_unknown_role_is_rejected_by_click(self, app):
        result = app.test_cli_runner().invoke(args=["users", "set-role", "a@x.com", "root"])
        assert result.exit_code == 2


def test_unknown_route_is_a_problem_document(client):
    resp = client.get("/api/v1/nowhere")

    assert resp.status_code == 404
    assert resp.mimetype == "application/problem+json"
    assert resp.get_json()["code"] == "not_found"


def test_unauthorized_responses_carry_the_bearer_challenge(client):
    resp = client.get("/api/v1/auth/sessions", headers={"device-id": "device-1"})

    assert resp.status_code == 401
    assert resp.headers["WWW-Authenticate"] == 'Bearer error="token_missing"'
