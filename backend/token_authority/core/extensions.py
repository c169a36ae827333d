"""Global Flask extension instances and initialization helpers."""

from __future__ import annotations

import redis  # type: ignore[import-untyped]
from flask import Flask, current_app
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy import MetaData

from token_authority.core.config import TOKEN_STORE_BACKENDS
from token_authority.services._shared.errors import ConfigurationError

# Global naming convention for all constraints
convention = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)

# Global singletons (import-safe)
db: SQLAlchemy = SQLAlchemy(session_options={"autoflush": False}, metadata=metadata)
migrate = Migrate(render_as_batch=True)


def init_app(app: Flask) -> None:
    """Initialize SQLAlchemy, migrations, Redis and the token components.

    Parameters
    ----------
    app: flask.Flask
        Application used to bind extension instances. This call imports the
        :mod:`token_authority.models` package to ensure SQLAlchemy metadata is
        ready for migrations.

    Raises
    ------
    ConfigurationError
        Invalid token settings or an unknown store backend.
    RuntimeError
        The ``redis`` backend is selected but Redis is unreachable.
    """
    db.init_app(app)

    # Ensure models are imported so Alembic sees metadata
    from token_authority import models as _models  # noqa: F401

    migrate.init_app(app, db)

    redis_url = app.config.get("REDIS_URL")
    if not redis_url:
        app.extensions.pop("redis_client", None)
    else:
        redis_client = redis.Redis.from_url(redis_url)
        try:
            redis_client.ping()
        except RedisError as exc:
            raise RuntimeError(f"Failed to connect to Redis at {redis_url!r}") from exc
        app.extensions["redis_client"] = redis_client

    init_token_components(app)


def build_stores(app: Flask, backend: str):
    """Return ``(refresh_store, blacklist)`` for the configured backend."""
    if backend == "memory":
        from token_authority.services._shared.ports import (
            InMemoryBlacklistStore,
            InMemoryRefreshTokenStore,
        )

        return InMemoryRefreshTokenStore(), InMemoryBlacklistStore()

    if backend == "redis":
        from token_authority.infra.redis.redis_blacklist_store import RedisBlacklistStore
        from token_authority.infra.redis.redis_refresh_token_store import (
            RedisRefreshTokenStore,
        )

        client = app.extensions.get("redis_client")
        if client is None:
            raise ConfigurationError("TOKEN_STORE_BACKEND=redis requires REDIS_URL")
        return RedisRefreshTokenStore(client), RedisBlacklistStore(client)

    from token_authority.infra.db.sql_token_stores import SqlBlacklistStore, SqlRefreshTokenStore

    return SqlRefreshTokenStore(), SqlBlacklistStore()


def init_token_components(app: Flask) -> None:
    """Build the signer, stores and :class:`AuthService` from ``app.config``.

    Tests may pre-populate ``app.extensions["auth_service"]`` to inject a
    service built over their own doubles; it is left untouched.
    """
    from token_authority.infra.db.sql_principal_directory import SqlPrincipalDirectory
    from token_authority.services.auth.dto import TokenSettings
    from token_authority.services.auth.issuer import TokenFactory
    from token_authority.services.auth.service import AuthService

    settings = TokenSettings.from_mapping(app.config)

    backend = str(app.config.get("TOKEN_STORE_BACKEND", "database")).lower()
    if backend not in TOKEN_STORE_BACKENDS:
        raise ConfigurationError(
            f"TOKEN_STORE_BACKEND must be one of {', '.join(TOKEN_STORE_BACKENDS)}"
        )

    refresh_store, blacklist = build_stores(app, backend)
    app.extensions["token_settings"] = settings
    app.extensions.setdefault(
        "auth_service",
        AuthService(
            principals=SqlPrincipalDirectory(),
            refresh_store=refresh_store,
            blacklist=blacklist,
            factory=TokenFactory.from_settings(settings),
        ),
    )


def get_auth_service():
    """Return the :class:`AuthService` bound to the current app."""
    service = current_app.extensions.get("auth_service")
    if service is None:
        raise RuntimeError("Auth service is not initialized. Call init_app() first.")
    return service
