from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from token_authority.infra.db.sql_token_stores import SqlBlacklistStore, SqlRefreshTokenStore
from token_authority.infra.keys import token_digest
from token_authority.models.base import as_utc
from token_authority.models.token import BlacklistedToken, RefreshToken
from token_authority.repositories.token import BlacklistRepository
from token_authority.services.auth.dto import RefreshRecord

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


def _record(token: str, subject: str = "alice@example.com", ttl: int = 300) -> RefreshRecord:
    return RefreshRecord(token=token, subject=subject, expires_at=NOW + timedelta(seconds=ttl))


@pytest.fixture()
def store(session) -> SqlRefreshTokenStore:
    return SqlRefreshTokenStore()


@pytest.fixture()
def blacklist(session) -> SqlBlacklistStore:
    return SqlBlacklistStore()


def test_save_stores_digest_and_is_idempotent(store, session):
    store.save(_record("tok-1"))
    store.save(_record("tok-1", ttl=600))

    rows = session.query(RefreshToken).all()
    assert len(rows) == 1
    assert rows[0].token_digest == token_digest("tok-1")
    assert store.exists("tok-1", now=NOW)


def test_consume_is_single_use(store):
    rec = _record("tok-1")
    store.save(rec)

    got = store.consume("tok-1", now=NOW)
    assert got is not None
    assert got.token == "tok-1"
    assert got.subject == "alice@example.com"
    assert got.expires_at == rec.expires_at
    assert store.consume("tok-1", now=NOW) is None


def test_consume_expired(store, session):
    store.save(_record("tok-1", ttl=10))
    assert store.consume("tok-1", now=NOW + timedelta(seconds=10)) is None
    assert session.query(RefreshToken).count() == 0


def test_subject_operations(store):
    store.save(_record("a-1", ttl=100))
    store.save(_record("a-2", ttl=200))
    store.save(_record("b-1", subject="bob@example.com"))

    assert [r.token for r in store.list_for_subject("alice@example.com", now=NOW)] == ["a-1", "a-2"]
    assert store.delete_for_subject("alice@example.com") == 2
    assert store.list_for_subject("alice@example.com", now=NOW) == []
    assert store.delete("b-1") is True
    assert store.delete("b-1") is False


def test_purge_expired(store):
    store.save(_record("a-1", ttl=10))
    store.save(_record("a-2", ttl=1000))
    assert store.purge_expired(NOW + timedelta(seconds=10)) == 1
    assert store.exists("a-2", now=NOW)


def test_blacklist(blacklist, session):
    blacklist.add("access-1", expires_at=NOW + timedelta(minutes=5))
    blacklist.add("access-1", expires_at=NOW + timedelta(minutes=5))

    assert session.query(BlacklistedToken).count() == 1
    assert blacklist.contains("access-1")
    assert not blacklist.contains("access-2")
    assert blacklist.purge_expired(NOW) == 0
    assert blacklist.purge_expired(NOW + timedelta(minutes=5)) == 1
    assert not blacklist.contains("access-1")


def test_blacklist_insert_tolerates_concurrent_writer(session, monkeypatch):
    repo = BlacklistRepository(session)
    repo.add_token("tok-1", expires_at=NOW + timedelta(seconds=60))
    session.expunge_all()

    # Another writer inserted the digest after our lookup came back empty
    monkeypatch.setattr(repo, "get", lambda key: None)
    repo.add_token("tok-1", expires_at=NOW + timedelta(seconds=60))

    assert session.query(BlacklistedToken).count() == 1
    assert repo.contains("tok-1")


def test_blacklist_extends_existing_expiry(session):
    repo = BlacklistRepository(session)
    repo.add_token("tok-1", expires_at=NOW + timedelta(seconds=60))
    repo.add_token("tok-1", expires_at=NOW + timedelta(seconds=30))
    repo.add_token("tok-1", expires_at=NOW + timedelta(seconds=120))

    row = session.get(BlacklistedToken, token_digest("tok-1"))
    assert as_utc(row.expires_at) == NOW + timedelta(seconds=120)
