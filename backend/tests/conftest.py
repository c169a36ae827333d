"""Pytest fixtures configuring the app, an isolated transactional database
layer and in-memory token components.

Each database test runs inside a SAVEPOINT-backed transaction against an
in-memory SQLite database so data changes never leak between cases.
"""

from __future__ import annotations

import os
from datetime import timedelta

import fakeredis
import pytest
from flask import g
from sqlalchemy import event
from sqlalchemy.orm import scoped_session, sessionmaker

from tests.helpers.clock import MutableClock
from token_authority.core.config import TestingConfig
from token_authority.core.extensions import db as _db
from token_authority.factory import create_app
from token_authority.services._shared.ports import (
    InMemoryBlacklistStore,
    InMemoryPrincipalDirectory,
    InMemoryRefreshTokenStore,
)
from token_authority.services.auth.dto import TokenSettings
from token_authority.services.auth.issuer import TokenFactory
from token_authority.services.auth.service import AuthService
from token_authority.services.auth.signer import HmacTokenSigner

TEST_SECRET = "unit-test-secret-with-at-least-32-bytes"


@pytest.fixture(scope="session")
def app():
    """Create a Flask application configured for testing."""
    # Ensure env-based config does not leak into tests
    os.environ.pop("DATABASE_URL", None)
    app = create_app(TestingConfig, instance_relative_config=False)
    app.logger.setLevel("WARNING")
    return app


@pytest.fixture(scope="session")
def db(app):
    """Create database tables once per test session."""
    with app.app_context():
        _db.create_all()
        yield _db
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(scope="session")
def connection(db):
    """Keep a dedicated DBAPI connection open for the whole session."""
    conn = db.engine.connect()
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="function")
def session(db, connection):
    """Provide a SQLAlchemy session wrapped in a nested transaction.

    Notes
    -----
    Begins a top-level transaction, starts a SAVEPOINT per test, and reinstalls
    the SAVEPOINT whenever SQLAlchemy ends one. ``db.session`` is swapped so
    application code (Units of Work, SQL adapters) uses this session.
    """
    top_trans = connection.begin()

    SessionFactory = sessionmaker(bind=connection, future=True)
    scoped = scoped_session(SessionFactory)

    nested = connection.begin_nested()

    @event.listens_for(scoped(), "after_transaction_end")
    def _restart_savepoint(sess, trans):  # pragma: no cover
        if trans.nested and not trans._parent.nested:
            nonlocal nested
            nested = connection.begin_nested()

    original_session = db.session
    db.session.remove()
    db.session = scoped
    # The session-wide app context outlives requests; drop the cached id
    g.pop("request_id", None)

    try:
        yield scoped
    finally:
        g.pop("request_id", None)
        scoped.remove()
        db.session = original_session
        top_trans.rollback()


@pytest.fixture()
def client(app):
    """Return a Flask test client."""
    return app.test_client()


@pytest.fixture(scope="session")
def faker():
    """Provide a :class:`faker.Faker` instance seeded for deterministic tests."""
    from faker import Faker

    fk = Faker()
    Faker.seed(1337)
    return fk


@pytest.fixture()
def freeze_time():
    """Factory returning :func:`freezegun.freeze_time`."""
    from freezegun import freeze_time as _freeze_time

    def _factory(target: str | None = None):
        return _freeze_time(target or "2024-01-01 12:00:00")

    return _factory


@pytest.fixture()
def fake_redis():
    """Provide a fresh FakeRedis instance for each test."""
    r = fakeredis.FakeRedis()
    r.flushall()
    return r


# -- Token components over in-memory doubles ----------------------------------


@pytest.fixture()
def clock() -> MutableClock:
    return MutableClock()


@pytest.fixture()
def signer() -> HmacTokenSigner:
    return HmacTokenSigner(secret_key=TEST_SECRET)


@pytest.fixture()
def settings() -> TokenSettings:
    return TokenSettings(
        secret_key=TEST_SECRET,
        access_ttl=timedelta(minutes=5),
        refresh_ttl=timedelta(hours=1),
    )


@pytest.fixture()
def directory() -> InMemoryPrincipalDirectory:
    d = InMemoryPrincipalDirectory()
    d.add("alice@example.com", "wonderland", display_name="Alice")
    d.add("root@example.com", "rootpass", display_name="Root", roles=("USER", "ADMIN"))
    return d


@pytest.fixture()
def refresh_store() -> InMemoryRefreshTokenStore:
    return InMemoryRefreshTokenStore()


@pytest.fixture()
def blacklist() -> InMemoryBlacklistStore:
    return InMemoryBlacklistStore()


@pytest.fixture()
def factory(settings, clock) -> TokenFactory:
    return TokenFactory.from_settings(settings, clock=clock)


@pytest.fixture()
def auth_service(directory, refresh_store, blacklist, factory, clock) -> AuthService:
    """AuthService wired to in-memory doubles and a controllable clock."""
    return AuthService(
        principals=directory,
        refresh_store=refresh_store,
        blacklist=blacklist,
        factory=factory,
        clock=clock,
    )


# -- Hook up Factory Boy to pytest SQLAlchemy session --------------------------
@pytest.fixture(autouse=True)
def _factories_session(session):
    """Wire Factory Boy's session helper to the transactional session fixture."""
    from tests.factories import SQLAlchemySession

    SQLAlchemySession.set(session)
    yield session
