# tests/unit/infra/test_refresh_token_store.py
"""
Unit tests for RedisRefreshTokenStore using fakeredis.

These tests exercise the main flows:
- save + exists
- consume (winner, replay, expired)
- delete and subject-wide revocation
- list_for_subject cleanup of evicted hashes
- purge_expired
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from token_authority.infra.keys import token_digest
from token_authority.infra.redis.redis_refresh_token_store import RedisRefreshTokenStore
from token_authority.services.auth.dto import RefreshRecord


def _now() -> datetime:
    """Return a timezone-aware UTC "now" at second precision."""
    return datetime.now(UTC).replace(microsecond=0)


def _record(token: str, subject: str = "alice@example.com", seconds: int = 300) -> RefreshRecord:
    return RefreshRecord(token=token, subject=subject, expires_at=_now() + timedelta(seconds=seconds))


@pytest.fixture
def store(fake_redis):
    """Provide a RedisRefreshTokenStore backed by FakeRedis."""
    return RedisRefreshTokenStore(r=fake_redis)


def test_save_writes_hash_index_and_ttl(store, fake_redis):
    rec = _record("tok-1", seconds=120)
    store.save(rec)

    key = f"rt:{token_digest('tok-1')}"
    assert fake_redis.hget(key, "subject") == b"alice@example.com"
    assert 0 < fake_redis.ttl(key) <= 120
    assert fake_redis.sismember("rt:s:alice@example.com", token_digest("tok-1"))
    # raw tokens never appear in key names
    assert all(b"tok-1" not in k for k in fake_redis.keys("*"))
    assert store.exists("tok-1", now=_now())


def test_consume_once(store):
    rec = _record("tok-1")
    store.save(rec)

    got = store.consume("tok-1", now=_now())
    assert got == rec
    assert store.consume("tok-1", now=_now()) is None
    assert not store.exists("tok-1", now=_now())
    assert store.list_for_subject("alice@example.com", now=_now()) == []


def test_consume_unknown_token(store):
    assert store.consume("never-issued", now=_now()) is None


def test_consume_expired_record_is_removed(store, fake_redis):
    rec = _record("tok-1", seconds=60)
    store.save(rec)

    assert store.consume("tok-1", now=rec.expires_at) is None
    assert not fake_redis.exists(f"rt:{token_digest('tok-1')}")


def test_delete(store):
    store.save(_record("tok-1"))
    assert store.delete("tok-1") is True
    assert store.delete("tok-1") is False
    assert store.list_for_subject("alice@example.com", now=_now()) == []


def test_delete_for_subject(store):
    store.save(_record("a-1"))
    store.save(_record("a-2"))
    store.save(_record("b-1", subject="bob@example.com"))

    assert store.delete_for_subject("alice@example.com") == 2
    assert store.delete_for_subject("alice@example.com") == 0
    assert store.exists("b-1", now=_now())


def test_list_for_subject_prunes_evicted_hashes(store, fake_redis):
    store.save(_record("a-1"))
    store.save(_record("a-2"))
    fake_redis.delete(f"rt:{token_digest('a-1')}")  # simulate TTL eviction

    live = store.list_for_subject("alice@example.com", now=_now())
    assert [r.token for r in live] == ["a-2"]
    assert fake_redis.scard("rt:s:alice@example.com") == 1


def test_purge_expired(store):
    store.save(_record("a-1", seconds=30))
    store.save(_record("a-2", seconds=600))

    removed = store.purge_expired(_now() + timedelta(seconds=60))
    assert removed == 1
    assert [r.token for r in store.list_for_subject("alice@example.com", now=_now())] == ["a-2"]
