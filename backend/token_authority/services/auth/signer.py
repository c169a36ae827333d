# token_authority/services/auth/signer.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import jwt

from token_authority.services._shared.errors import InvalidSignatureError
from token_authority.services.auth.dto import TokenClaims, TokenSettings, TokenType

# Claims every token must carry; anything else is optional.
REQUIRED_CLAIMS = ("sub", "type", "iat", "exp")


def _to_epoch(dt: datetime) -> int:
    return int(dt.timestamp())


def _from_epoch(value: Any) -> datetime:
    return datetime.fromtimestamp(int(value), tz=UTC)


@dataclass(slots=True)
class HmacTokenSigner:
    """
    Produce and check HMAC-signed JWTs over a :class:`TokenClaims` set.

    The signer is a pure primitive: it never interprets expiry or token type,
    it only guarantees that the claims were produced by a holder of the secret.

    :param secret_key: Shared secret (every validating component holds the same one).
    :param algorithm: HMAC JWS algorithm; tokens carrying any other ``alg`` are rejected.
    """

    secret_key: str
    algorithm: str = "HS256"

    @classmethod
    def from_settings(cls, settings: TokenSettings) -> HmacTokenSigner:
        return cls(secret_key=settings.secret_key, algorithm=settings.algorithm)

    def sign(self, claims: TokenClaims) -> str:
        """
        Encode and sign ``claims``.

        :param claims: Claim set to sign.
        :returns: Compact JWS string.
        """
        payload: dict[str, Any] = {
            "sub": claims.subject,
            "type": claims.token_type.value,
            "iat": _to_epoch(claims.issued_at),
            "exp": _to_epoch(claims.expires_at),
        }
        if claims.roles:
            payload["roles"] = list(claims.roles)
        if claims.jti:
            payload["jti"] = claims.jti
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        """
        Check the signature of ``token`` and return its claims.

        Expiry is deliberately *not* enforced here; the validator decides.

        :param token: Compact JWS string.
        :returns: Decoded claims.
        :raises InvalidSignatureError: Malformed token, bad signature, foreign
            algorithm or missing required claims.
        """
        if not isinstance(token, str) or not token:
            raise InvalidSignatureError("Empty token")
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                    "require": list(REQUIRED_CLAIMS),
                },
            )
        except jwt.InvalidTokenError as exc:
            raise InvalidSignatureError(str(exc)) from exc

        try:
            token_type = TokenType(payload["type"])
            roles = payload.get("roles") or []
            if not isinstance(roles, list):
                raise TypeError("roles must be a list")
            return TokenClaims(
                subject=str(payload["sub"]),
                token_type=token_type,
                issued_at=_from_epoch(payload["iat"]),
                expires_at=_from_epoch(payload["exp"]),
                roles=tuple(str(r) for r in roles),
                jti=payload.get("jti"),
            )
        except (TypeError, ValueError) as exc:
            # Signed by us but not a claim set we produce
            raise InvalidSignatureError(f"Malformed claims: {exc}") from exc

    def peek_subject(self, token: str) -> str:
        """Return the verified subject of ``token`` (expiry ignored)."""
        return self.verify(token).subject
