"""
Unit tests for RedisTokenDenylistStore using fakeredis.

They use fakeredis.FakeRedis so they run entirely in-memory and integrate with pytest.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import fakeredis
import pytest

from sessionkeeper.infra.redis.redis_denylist_store import RedisTokenDenylistStore


def _now() -> datetime:
    """Return a timezone-aware UTC "now"."""
    return datetime.now(UTC)


@pytest.fixture
def fake_redis():
    """Provide a fresh FakeRedis instance for each test."""
    r = fakeredis.FakeRedis()
    r.flushall()
    return r


@pytest.fixture
def store(fake_redis):
    return RedisTokenDenylistStore(r=fake_redis)


def test_revoke_then_is_revoked(store):
    assert store.is_revoked("digest-1") is False
    store.revoke("digest-1", _now() + timedelta(minutes=30))
    assert store.is_revoked("digest-1") is True
    assert store.is_revoked("digest-2") is False


def _remaining_ms(expires_at: datetime) -> float:
    return (expires_at - _now()).total_seconds() * 1000


@pytest.mark.parametrize("lifetime", [timedelta(seconds=120), timedelta(seconds=1, milliseconds=900)])
def test_entry_outlives_the_token(store, fake_redis, lifetime):
    expires_at = _now() + lifetime
    store.revoke("digest-ttl", expires_at)

    assert fake_redis.pttl(store._k("digest-ttl")) >= _remaining_ms(expires_at)
    assert fake_redis.ttl(store._k("digest-ttl")) <= lifetime.total_seconds() + 1


def test_already_expired_token_gets_minimal_ttl(store, fake_redis):
    store.revoke("digest-old", _now() - timedelta(seconds=30))
    assert fake_redis.ttl(store._k("digest-old")) == 1


def test_revoke_is_idempotent(store, fake_redis):
    exp = _now() + timedelta(minutes=5)
    store.revoke("digest-3", exp)
    store.revoke("digest-3", exp)
    assert fake_redis.exists(store._k("digest-3")) == 1


def test_prune_is_a_noop(store):
    store.revoke("digest-4", _now() + timedelta(minutes=5))
    assert store.prune(_now() + timedelta(days=1)) == 0
    assert store.is_revoked("digest-4") is True
