# token_authority/services/auth/dto.py
from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from token_authority.services._shared.errors import ConfigurationError

# Minimum HMAC key length for HS256 (RFC 7518 section 3.2).
MIN_SECRET_BYTES = 32


class TokenType(str, Enum):
    """Discriminator carried in the ``type`` claim of every token."""

    ACCESS = "access"
    REFRESH = "refresh"


# ---------------------------- Domain values -------------------------------- #


@dataclass(frozen=True, slots=True)
class Principal:
    """
    Identity subject as seen by the token core (read-only).

    :param id: Store identifier of the principal.
    :type id: int | str
    :param email: Unique email, used as the canonical ``sub`` claim.
    :type email: str
    :param display_name: Human-readable name.
    :type display_name: str
    :param roles: Flat set of role names embedded into access tokens.
    :type roles: frozenset[str]
    """

    id: int | str
    email: str
    display_name: str
    roles: frozenset[str] = field(default_factory=frozenset)

    @property
    def subject(self) -> str:
        return self.email

    def has_role(self, role: str) -> bool:
        return role in self.roles


@dataclass(frozen=True, slots=True)
class TokenClaims:
    """
    Claim set carried by a signed token.

    :param subject: Principal identifier (``sub``).
    :type subject: str
    :param token_type: Access or refresh (``type``).
    :type token_type: TokenType
    :param issued_at: Issue instant, UTC, second precision (``iat``).
    :type issued_at: datetime
    :param expires_at: Expiry instant, UTC, second precision (``exp``).
    :type expires_at: datetime
    :param roles: Role names; only populated on access tokens.
    :type roles: tuple[str, ...]
    :param jti: Random token identifier.
    :type jti: str | None
    """

    subject: str
    token_type: TokenType
    issued_at: datetime
    expires_at: datetime
    roles: tuple[str, ...] = ()
    jti: str | None = None

    def is_expired(self, now: datetime) -> bool:
        """A token whose ``exp`` equals ``now`` is already expired."""
        return now >= self.expires_at


@dataclass(frozen=True, slots=True)
class RefreshRecord:
    """
    Server-side record of an issued, not yet consumed refresh token.

    :param token: Encoded refresh token (unique key).
    :type token: str
    :param subject: Owning principal's subject.
    :type subject: str
    :param expires_at: Absolute expiry (UTC).
    :type expires_at: datetime
    """

    token: str
    subject: str
    expires_at: datetime

    def is_live(self, now: datetime) -> bool:
        return now < self.expires_at


# ---------------------------- Input DTOs ----------------------------------- #


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param email: Principal email.
    :type email: str
    :param password: Raw password (verified by the principal directory).
    :type password: str
    """

    email: str
    password: str


@dataclass(frozen=True, slots=True)
class RotateIn:
    """
    Input DTO for refresh rotation.

    :param refresh_token: Encoded refresh token being exchanged.
    :type refresh_token: str
    :param access_token: Access token active at rotation time, revoked when given.
    :type access_token: str | None
    """

    refresh_token: str
    access_token: str | None = None


# --------------------------- Output DTOs ----------------------------------- #


@dataclass(frozen=True, slots=True)
class TokenPair:
    """
    Output DTO with access and refresh tokens.

    :param access_token: Encoded access token.
    :type access_token: str
    :param refresh_token: Encoded refresh token.
    :type refresh_token: str
    """

    access_token: str
    refresh_token: str


# ------------------------------ Settings ----------------------------------- #


@dataclass(frozen=True, slots=True)
class TokenSettings:
    """
    Token emission configuration, injected into the signer and the issuer.

    :param secret_key: Shared HMAC secret.
    :type secret_key: str
    :param access_ttl: Access token lifetime.
    :type access_ttl: timedelta
    :param refresh_ttl: Refresh token lifetime.
    :type refresh_ttl: timedelta
    :param algorithm: JWS algorithm; only HMAC algorithms make sense here.
    :type algorithm: str
    :raises ConfigurationError: When any value is missing or inconsistent.
    """

    secret_key: str
    access_ttl: timedelta
    refresh_ttl: timedelta
    algorithm: str = "HS256"

    def __post_init__(self) -> None:
        if not self.secret_key or not isinstance(self.secret_key, str):
            raise ConfigurationError("JWT_SECRET_KEY is required.")
        if len(self.secret_key.encode("utf-8")) < MIN_SECRET_BYTES:
            raise ConfigurationError(
                f"JWT_SECRET_KEY must be at least {MIN_SECRET_BYTES} bytes long."
            )
        if self.access_ttl < timedelta(0) or self.refresh_ttl <= timedelta(0):
            raise ConfigurationError("Token lifetimes must be non-negative.")
        if self.access_ttl >= self.refresh_ttl:
            raise ConfigurationError("Access token lifetime must be shorter than refresh lifetime.")
        if not self.algorithm.startswith("HS"):
            raise ConfigurationError(f"Unsupported signing algorithm: {self.algorithm}")

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> TokenSettings:
        """
        Build settings from a Flask-style configuration mapping.

        :param config: Mapping exposing ``JWT_SECRET_KEY``, ``ACCESS_TOKEN_TTL_SECONDS``
            and ``REFRESH_TOKEN_TTL_SECONDS``.
        :returns: Validated settings.
        :raises ConfigurationError: On missing or non-numeric values.
        """
        try:
            access = int(config.get("ACCESS_TOKEN_TTL_SECONDS"))  # type: ignore[arg-type]
            refresh = int(config.get("REFRESH_TOKEN_TTL_SECONDS"))  # type: ignore[arg-type]
        except (TypeError, ValueError) as exc:
            raise ConfigurationError("Token lifetimes must be integer seconds.") from exc
        return cls(
            secret_key=config.get("JWT_SECRET_KEY") or "",
            access_ttl=timedelta(seconds=access),
            refresh_ttl=timedelta(seconds=refresh),
            algorithm=str(config.get("JWT_ALGORITHM", "HS256")),
        )


def normalize_roles(roles: Iterable[str]) -> tuple[str, ...]:
    """Return roles deduplicated and sorted, so claim sets stay deterministic."""
    return tuple(sorted({str(r) for r in roles}))
