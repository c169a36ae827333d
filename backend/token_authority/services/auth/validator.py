"""
Local token validation.

Runs wherever the signing secret and the token stores are reachable. Each
check has a raising form that names the failing step (for logs and tests) and a
boolean form that collapses every failure to ``False`` (for callers at a trust
boundary).
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from token_authority.services._shared.errors import (
    SubjectMismatchError,
    TokenError,
    TokenExpiredError,
    TokenRevokedError,
    UnauthorizedError,
    WrongTokenTypeError,
)
from token_authority.services._shared.ports import RefreshTokenStore, TokenBlacklistStore
from token_authority.services.auth.dto import TokenClaims, TokenType
from token_authority.services.auth.issuer import utcnow
from token_authority.services.auth.signer import HmacTokenSigner

log = logging.getLogger(__name__)


class LocalTokenValidator:
    """Signature, type, expiry, subject and store checks for a presented token."""

    def __init__(
        self,
        *,
        signer: HmacTokenSigner,
        blacklist: TokenBlacklistStore,
        refresh_store: RefreshTokenStore,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.signer = signer
        self.blacklist = blacklist
        self.refresh_store = refresh_store
        self.clock = clock

    # ------------------------------------------------------------------ #
    # Shared steps 1-4
    # ------------------------------------------------------------------ #

    def _check_claims(
        self, token: str, expected_subject: str, expected_type: TokenType
    ) -> TokenClaims:
        claims = self.signer.verify(token)
        if claims.token_type is not expected_type:
            raise WrongTokenTypeError(
                f"{claims.token_type.value} token presented where "
                f"{expected_type.value} token is required"
            )
        if claims.is_expired(self.clock()):
            raise TokenExpiredError()
        if claims.subject != expected_subject:
            raise SubjectMismatchError()
        return claims

    # ------------------------------------------------------------------ #
    # Access tokens
    # ------------------------------------------------------------------ #

    def check_access(self, token: str, expected_subject: str) -> TokenClaims:
        """
        Validate an access token or raise the error of the first failing step.

        :param token: Encoded access token.
        :param expected_subject: Principal the caller expects the token to belong to.
        :returns: Verified claims.
        :raises InvalidSignatureError: Step 1.
        :raises WrongTokenTypeError: Step 2, a refresh token was presented.
        :raises TokenExpiredError: Step 3.
        :raises SubjectMismatchError: Step 4.
        :raises TokenRevokedError: Step 5, the token is blacklisted.
        """
        claims = self._check_claims(token, expected_subject, TokenType.ACCESS)
        if self.blacklist.contains(token):
            raise TokenRevokedError()
        return claims

    def validate_access(self, token: str, expected_subject: str) -> bool:
        try:
            self.check_access(token, expected_subject)
        except TokenError as exc:
            log.info(
                "token.access.rejected",
                extra={"subject": expected_subject, "reason": exc.reason},
            )
            return False
        return True

    # ------------------------------------------------------------------ #
    # Refresh tokens
    # ------------------------------------------------------------------ #

    def check_refresh_claims(self, token: str, expected_subject: str) -> TokenClaims:
        """Steps 1-4 for a refresh token, without touching the refresh store."""
        return self._check_claims(token, expected_subject, TokenType.REFRESH)

    def check_refresh_usable(self, token: str, expected_subject: str) -> TokenClaims:
        """
        Validate a refresh token, including a live record in the refresh store.

        :raises WrongTokenTypeError: An access token was presented.
        :raises UnauthorizedError: No live record: consumed, revoked or never issued.
        """
        claims = self.check_refresh_claims(token, expected_subject)
        if not self.refresh_store.exists(token, now=self.clock()):
            raise UnauthorizedError()
        return claims

    def validate_refresh_usable(self, token: str, expected_subject: str) -> bool:
        try:
            self.check_refresh_usable(token, expected_subject)
        except TokenError as exc:
            log.info(
                "token.refresh.rejected",
                extra={"subject": expected_subject, "reason": exc.reason},
            )
            return False
        return True
