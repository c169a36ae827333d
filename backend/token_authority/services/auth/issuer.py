# token_authority/services/auth/issuer.py
from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from uuid import uuid4

from token_authority.services.auth.dto import (
    Principal,
    TokenClaims,
    TokenPair,
    TokenSettings,
    TokenType,
    normalize_roles,
)
from token_authority.services.auth.signer import HmacTokenSigner

log = logging.getLogger(__name__)


def utcnow() -> datetime:
    """Current instant, UTC, truncated to whole seconds (JWT precision)."""
    return datetime.now(UTC).replace(microsecond=0)


class TokenFactory:
    """
    Build and sign access and refresh claim sets for a principal.

    Pure construction plus signing: persisting the refresh half is the
    caller's responsibility (login and rotation flows).
    """

    def __init__(
        self,
        *,
        signer: HmacTokenSigner,
        access_ttl: timedelta,
        refresh_ttl: timedelta,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.signer = signer
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.clock = clock

    @classmethod
    def from_settings(
        cls, settings: TokenSettings, *, clock: Callable[[], datetime] = utcnow
    ) -> TokenFactory:
        return cls(
            signer=HmacTokenSigner.from_settings(settings),
            access_ttl=settings.access_ttl,
            refresh_ttl=settings.refresh_ttl,
            clock=clock,
        )

    def _claims(self, principal: Principal, token_type: TokenType) -> TokenClaims:
        issued_at = self.clock().replace(microsecond=0)
        ttl = self.access_ttl if token_type is TokenType.ACCESS else self.refresh_ttl
        return TokenClaims(
            subject=principal.subject,
            token_type=token_type,
            issued_at=issued_at,
            expires_at=issued_at + ttl,
            roles=normalize_roles(principal.roles) if token_type is TokenType.ACCESS else (),
            jti=uuid4().hex,
        )

    def access_claims(self, principal: Principal) -> TokenClaims:
        return self._claims(principal, TokenType.ACCESS)

    def refresh_claims(self, principal: Principal) -> TokenClaims:
        return self._claims(principal, TokenType.REFRESH)

    def issue_access_token(self, principal: Principal) -> str:
        log.debug("token.issue", extra={"subject": principal.subject, "token_type": "access"})
        return self.signer.sign(self.access_claims(principal))

    def issue_refresh_token(self, principal: Principal) -> str:
        log.debug("token.issue", extra={"subject": principal.subject, "token_type": "refresh"})
        return self.signer.sign(self.refresh_claims(principal))

    def issue_pair(self, principal: Principal) -> TokenPair:
        return TokenPair(
            access_token=self.issue_access_token(principal),
            refresh_token=self.issue_refresh_token(principal),
        )
