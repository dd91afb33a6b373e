"""Unit tests for the table-backed revocation store."""

from __future__ import annotations

from datetime import timedelta

from sessionkeeper.infra.sql.sql_denylist_store import SQLTokenDenylistStore
from sessionkeeper.repositories.revoked_token import RevokedTokenRepository
from tests.helpers.doubles import T0


def test_revoke_is_durable_and_queryable(session):
    store = SQLTokenDenylistStore()
    store.revoke("abc", T0 + timedelta(hours=1))

    assert store.is_revoked("abc") is True
    assert store.is_revoked("xyz") is False
    assert RevokedTokenRepository(session=session).get_by_digest("abc") is not None


def test_prune_drops_only_expired_rows(session):
    store = SQLTokenDenylistStore()
    store.revoke("gone", T0 - timedelta(minutes=1))
    store.revoke("kept", T0 + timedelta(minutes=1))

    assert store.prune(T0) == 1
    assert store.is_revoked("gone") is False
    assert store.is_revoked("kept") is True
