# token_authority/services/auth/service.py
from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from token_authority.services._shared.base import BaseService, ServiceContext
from token_authority.services._shared.errors import (
    InvalidCredentialsError,
    InvalidSignatureError,
    PrincipalNotFoundError,
    TokenError,
    UnauthorizedError,
    WrongTokenTypeError,
)
from token_authority.services._shared.ports import (
    PrincipalDirectory,
    RefreshTokenStore,
    TokenBlacklistStore,
)
from token_authority.services.auth.dto import (
    LoginIn,
    Principal,
    RefreshRecord,
    RotateIn,
    TokenPair,
    TokenType,
)
from token_authority.services.auth.issuer import TokenFactory, utcnow
from token_authority.services.auth.validator import LocalTokenValidator

log = logging.getLogger(__name__)


class AuthService(BaseService):
    """
    Token lifecycle service (login / rotate / logout / delegated validation).

    Owns every mutation of the refresh store and the blacklist. Tokens are
    signed and checked through :class:`TokenFactory` and
    :class:`LocalTokenValidator`, which share a single signer.
    """

    def __init__(
        self,
        *,
        principals: PrincipalDirectory,
        refresh_store: RefreshTokenStore,
        blacklist: TokenBlacklistStore,
        factory: TokenFactory,
        clock: Callable[[], datetime] = utcnow,
        ctx: ServiceContext | None = None,
    ) -> None:
        """
        Initialize the service with its dependencies.

        :param principals: Read-only principal lookup and credential check.
        :param refresh_store: Persistence of issued refresh tokens.
        :param blacklist: Revoked access tokens.
        :param factory: Claim builder and signer.
        :param clock: Source of "now"; injected so expiry is testable.
        """
        super().__init__(ctx=ctx)
        self.principals = principals
        self.refresh_store = refresh_store
        self.blacklist = blacklist
        self.factory = factory
        self.signer = factory.signer
        self.clock = clock
        self.validator = LocalTokenValidator(
            signer=self.signer,
            blacklist=blacklist,
            refresh_store=refresh_store,
            clock=clock,
        )

    # ------------------------------------------------------------------ #
    # Issuance
    # ------------------------------------------------------------------ #

    def _issue(self, principal: Principal) -> tuple[TokenPair, RefreshRecord]:
        access = self.factory.issue_access_token(principal)
        refresh_claims = self.factory.refresh_claims(principal)
        refresh = self.signer.sign(refresh_claims)
        record = RefreshRecord(
            token=refresh,
            subject=principal.subject,
            expires_at=refresh_claims.expires_at,
        )
        return TokenPair(access_token=access, refresh_token=refresh), record

    def login(self, dto: LoginIn) -> TokenPair:
        """
        Authenticate credentials and issue a fresh token pair.

        The refresh record is persisted before the pair is returned, so the
        refresh token is usable as soon as the client receives it.

        :param dto: Login input.
        :returns: Access/Refresh token pair.
        :raises InvalidCredentialsError: Unknown email or wrong password.
        """
        principal = self.principals.authenticate(dto.email, dto.password)
        if principal is None:
            log.info("auth.login.failed")
            raise InvalidCredentialsError()

        pair, record = self._issue(principal)
        self.refresh_store.save(record)
        log.info("auth.login", extra={"subject": principal.subject})
        return pair

    # ------------------------------------------------------------------ #
    # Rotation
    # ------------------------------------------------------------------ #

    def rotate(self, dto: RotateIn) -> TokenPair:
        """
        Exchange a refresh token for a new pair, consuming it exactly once.

        Security
        --------
        - The refresh record is consumed by a single atomic store operation;
          of two concurrent rotations of the same token only one wins.
        - The presented access token, if any, is blacklisted best-effort.
        - Consuming the old record and saving the new one are two store
          calls. On the SQL backend each commits in its own unit of work, so
          a failure between them leaves the subject with no live refresh
          token: the rotation fails closed and the client must log in again.

        :param dto: Refresh token plus the optional access token to retire.
        :returns: New Access/Refresh token pair.
        :raises InvalidSignatureError: The refresh token does not verify.
        :raises PrincipalNotFoundError: The token subject no longer exists.
        :raises WrongTokenTypeError: An access token was presented.
        :raises UnauthorizedError: Expired, consumed, revoked or never issued.
        """
        old = dto.refresh_token

        # 1) Signature + subject extraction
        subject = self.signer.peek_subject(old)

        # 2) Principal must still exist
        principal = self.principals.get_by_subject(subject)
        if principal is None:
            raise PrincipalNotFoundError(subject)

        # 3) Claims checks, then consume-or-fail
        try:
            self.validator.check_refresh_claims(old, subject)
        except WrongTokenTypeError:
            raise
        except TokenError as exc:
            self.refresh_store.delete(old)
            raise UnauthorizedError() from exc

        consumed = self.refresh_store.consume(old, now=self.clock())
        if consumed is None or consumed.subject != subject:
            log.info("auth.rotate.rejected", extra={"subject": subject, "reason": "unauthorized"})
            raise UnauthorizedError()

        # 4) New pair
        pair, record = self._issue(principal)

        # 5) Retire the access token the client was holding
        if dto.access_token:
            self._revoke_presented_access(dto.access_token, subject)

        # 6) Old record already gone; 7) persist the new one
        self.refresh_store.save(record)
        log.info("auth.rotate", extra={"subject": subject})
        return pair

    def _revoke_presented_access(self, token: str, subject: str) -> None:
        try:
            claims = self.signer.verify(token)
        except InvalidSignatureError:
            log.info("auth.rotate.access_skipped", extra={"subject": subject, "reason": "invalid_signature"})
            return
        if claims.token_type is not TokenType.ACCESS or claims.subject != subject:
            log.info("auth.rotate.access_skipped", extra={"subject": subject, "reason": "not_owned_access"})
            return
        try:
            self.blacklist.add(token, expires_at=claims.expires_at)
        except Exception:
            # Rotation already succeeded; the token will expire on its own
            log.exception("auth.rotate.blacklist_failed", extra={"subject": subject})

    # ------------------------------------------------------------------ #
    # Logout
    # ------------------------------------------------------------------ #

    def logout(self, access_token: str) -> None:
        """
        Revoke the caller's session.

        Deletes every refresh record owned by the token's subject and
        blacklists the access token until its natural expiry. Expired access
        tokens are accepted. Unparseable and refresh tokens are a no-op.

        :param access_token: Encoded access token.
        """
        try:
            claims = self.signer.verify(access_token)
        except InvalidSignatureError:
            log.info("auth.logout.ignored", extra={"reason": "invalid_signature"})
            return
        if claims.token_type is not TokenType.ACCESS:
            log.info("auth.logout.ignored", extra={"subject": claims.subject, "reason": "wrong_token_type"})
            return

        removed = self.refresh_store.delete_for_subject(claims.subject)
        self.blacklist.add(access_token, expires_at=claims.expires_at)
        log.info("auth.logout", extra={"subject": claims.subject, "revoked_refresh": removed})

    # ------------------------------------------------------------------ #
    # Validation
    # ------------------------------------------------------------------ #

    def validate_delegated(self, token: str) -> bool:
        """
        Answer a remote "is this access token valid?" question.

        The subject is read from the token itself and must still resolve to a
        principal. Every failure, store outages included, answers ``False``.

        :param token: Encoded access token.
        :returns: ``True`` only when the token passes every access check.
        """
        try:
            subject = self.signer.peek_subject(token)
            if self.principals.get_by_subject(subject) is None:
                raise PrincipalNotFoundError(subject)
            self.validator.check_access(token, subject)
        except TokenError as exc:
            log.info("token.delegation.rejected", extra={"reason": exc.reason})
            return False
        except Exception:
            log.exception("token.delegation.error")
            return False
        return True

    def authenticate(self, token: str) -> Principal:
        """
        Resolve the principal behind a presented access token.

        :raises TokenError: Any failed access check.
        """
        subject = self.signer.peek_subject(token)
        principal = self.principals.get_by_subject(subject)
        if principal is None:
            raise PrincipalNotFoundError(subject)
        self.validator.check_access(token, subject)
        return principal

    def whoami(self, subject: str) -> Principal:
        principal = self.principals.get_by_subject(subject)
        if principal is None:
            raise PrincipalNotFoundError(subject)
        return principal

    # ------------------------------------------------------------------ #
    # Housekeeping
    # ------------------------------------------------------------------ #

    def purge_expired(self) -> tuple[int, int]:
        """
        Drop expired refresh records and blacklist entries.

        :returns: ``(refresh_removed, blacklist_removed)``.
        """
        now = self.clock()
        refresh_removed = self.refresh_store.purge_expired(now)
        blacklist_removed = self.blacklist.purge_expired(now)
        log.info(
            "tokens.purge",
            extra={"refresh_removed": refresh_removed, "blacklist_removed": blacklist_removed},
        )
        return refresh_removed, blacklist_removed
