"""Unit tests for RevokedTokenRepository."""

from __future__ import annotations

from datetime import timedelta

import pytest

from sessionkeeper.repositories.revoked_token import RevokedTokenRepository
from tests.helpers.doubles import T0


@pytest.fixture()
def repo(session):
    return RevokedTokenRepository(session=session)


def test_upsert_inserts_then_extends(repo, session):
    repo.upsert("d1", T0)
    repo.upsert("d1", T0 - timedelta(minutes=5))
    assert repo.get_by_digest("d1").expires_at == T0

    repo.upsert("d1", T0 + timedelta(hours=1))
    session.commit()
    assert repo.get_by_digest("d1").expires_at == T0 + timedelta(hours=1)


def test_delete_expired_keeps_live_entries(repo, session):
    repo.upsert("old", T0 - timedelta(seconds=1))
    repo.upsert("edge", T0)
    repo.upsert("live", T0 + timedelta(seconds=1))
    session.commit()

    assert repo.delete_expired(T0) == 2
    assert repo.exists(token_digest="live")
    assert not repo.exists(token_digest="old")
