"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Final

from dotenv import load_dotenv

# Public selector env var
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'

TOKEN_STORE_BACKENDS: Final[tuple[str, ...]] = ("memory", "redis", "database")

# Load .env in development (no-op when the file is absent)
load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: bool, optional
        Value returned when the variable is unset. Defaults to ``False``.

    Returns
    -------
    bool
        ``True`` if the value resembles ``{"1", "true", "yes", "y", "on"}``
        ignoring case; otherwise ``False`` or ``default`` when missing.
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def env_int(name: str, default: int) -> int:
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    return int(val)


def env_list(name: str, default: str = "") -> tuple[str, ...]:
    """Split a comma-separated environment variable into trimmed items."""
    raw = os.getenv(name, default)
    return tuple(item.strip() for item in raw.split(",") if item.strip())


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    SECRET_KEY: str
        Flask secret used for session signing.
    JWT_SECRET_KEY: str | None
        Shared HMAC secret for signing tokens. Required, at least 32 bytes;
        there is no default so a missing value aborts startup.
    ACCESS_TOKEN_TTL_SECONDS: int
        Lifetime of access tokens (short).
    REFRESH_TOKEN_TTL_SECONDS: int
        Lifetime of refresh tokens; must exceed the access lifetime.
    TOKEN_STORE_BACKEND: str
        Where refresh records and the blacklist live: ``memory``, ``redis``
        or ``database``.
    REDIS_URL: str | None
        Connection URL for the ``redis`` backend.
    SQLALCHEMY_DATABASE_URI: str
        Database connection string consumed by SQLAlchemy.
    AUTH_AUTHORITY_URL: str | None
        Base URL of the token service, for components that delegate.
    AUTH_DELEGATION_TIMEOUT: float
        Upper bound, in seconds, for a delegated validation call.
    EDGE_AUTH_ENABLED: bool
        Install the edge gate in front of this application.
    EDGE_PUBLIC_PREFIXES: tuple[str, ...]
        Path prefixes the edge gate lets through without a token.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).
    CORS_ORIGINS: str
        Comma-separated list of allowed origins for CORS.

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")

    # Tokens
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")
    JWT_ALGORITHM = "HS256"
    ACCESS_TOKEN_TTL_SECONDS = env_int("ACCESS_TOKEN_TTL_SECONDS", 15 * 60)
    REFRESH_TOKEN_TTL_SECONDS = env_int("REFRESH_TOKEN_TTL_SECONDS", 7 * 24 * 3600)
    TOKEN_STORE_BACKEND = os.getenv("TOKEN_STORE_BACKEND", "database").strip().lower()
    REDIS_URL = os.getenv("REDIS_URL")

    # Delegation / edge
    AUTH_AUTHORITY_URL = os.getenv("AUTH_AUTHORITY_URL")
    AUTH_DELEGATION_TIMEOUT = float(os.getenv("AUTH_DELEGATION_TIMEOUT", "2.0"))
    EDGE_AUTH_ENABLED = env_bool("EDGE_AUTH_ENABLED", False)
    EDGE_PUBLIC_PREFIXES = env_list("EDGE_PUBLIC_PREFIXES", "/auth/,/health")

    # DB
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging & CORS
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173")

    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development."""

    DEBUG = env_bool("FLASK_DEBUG", True)
    CORS_MAX_AGE = 600  # 10 minutes


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Keeps token state in process memory and carries a fixed test secret.
    - Propagates exceptions so pytest can surface tracebacks directly.
    """

    TESTING = True
    DEBUG = False
    JWT_SECRET_KEY = "test-secret-key-that-is-at-least-32-bytes!"
    ACCESS_TOKEN_TTL_SECONDS = 300
    REFRESH_TOKEN_TTL_SECONDS = 3600
    TOKEN_STORE_BACKEND = "memory"
    REDIS_URL = None
    EDGE_AUTH_ENABLED = False
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    PROPAGATE_EXCEPTIONS = True


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments."""

    DEBUG = False
    SQLALCHEMY_ECHO = False
    PROPAGATE_EXCEPTIONS = False


# Map names -> classes (simple, explicit)
CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)
