"""Unit tests for :class:`LocalTokenValidator`."""

from __future__ import annotations

from datetime import timedelta

import pytest

from token_authority.services._shared.errors import (
    InvalidSignatureError,
    SubjectMismatchError,
    TokenExpiredError,
    TokenRevokedError,
    UnauthorizedError,
    WrongTokenTypeError,
)
from token_authority.services.auth.dto import Principal, RefreshRecord
from token_authority.services.auth.issuer import TokenFactory
from token_authority.services.auth.validator import LocalTokenValidator

ALICE = Principal(id=1, email="alice@example.com", display_name="Alice", roles=frozenset({"USER"}))
BOB = "bob@example.com"


@pytest.fixture()
def validator(signer, blacklist, refresh_store, clock) -> LocalTokenValidator:
    return LocalTokenValidator(
        signer=signer, blacklist=blacklist, refresh_store=refresh_store, clock=clock
    )


@pytest.fixture()
def stored_refresh(factory, signer, refresh_store) -> str:
    token = factory.issue_refresh_token(ALICE)
    claims = signer.verify(token)
    refresh_store.save(RefreshRecord(token=token, subject=ALICE.subject, expires_at=claims.expires_at))
    return token


class TestAccess:
    def test_valid(self, validator, factory):
        token = factory.issue_access_token(ALICE)
        assert validator.validate_access(token, ALICE.subject) is True
        assert validator.check_access(token, ALICE.subject).subject == ALICE.subject

    def test_bad_signature(self, validator):
        with pytest.raises(InvalidSignatureError):
            validator.check_access("garbage", ALICE.subject)

    def test_refresh_token_never_authorizes(self, validator, factory):
        token = factory.issue_refresh_token(ALICE)
        with pytest.raises(WrongTokenTypeError):
            validator.check_access(token, ALICE.subject)
        assert validator.validate_access(token, ALICE.subject) is False

    def test_expired(self, validator, factory, clock):
        token = factory.issue_access_token(ALICE)
        clock.advance(5 * 60)
        with pytest.raises(TokenExpiredError):
            validator.check_access(token, ALICE.subject)

    def test_zero_ttl_is_expired_not_signature(self, validator, signer, clock):
        zero = TokenFactory(
            signer=signer, access_ttl=timedelta(0), refresh_ttl=timedelta(hours=1), clock=clock
        )
        token = zero.issue_access_token(ALICE)
        with pytest.raises(TokenExpiredError):
            validator.check_access(token, ALICE.subject)

    def test_subject_mismatch(self, validator, factory):
        token = factory.issue_access_token(ALICE)
        with pytest.raises(SubjectMismatchError):
            validator.check_access(token, BOB)

    def test_blacklisted(self, validator, factory, blacklist, signer):
        token = factory.issue_access_token(ALICE)
        blacklist.add(token, expires_at=signer.verify(token).expires_at)
        with pytest.raises(TokenRevokedError):
            validator.check_access(token, ALICE.subject)
        assert validator.validate_access(token, ALICE.subject) is False

    def test_expiry_checked_before_blacklist(self, validator, factory, blacklist, signer, clock):
        token = factory.issue_access_token(ALICE)
        blacklist.add(token, expires_at=signer.verify(token).expires_at)
        clock.advance(3600)
        with pytest.raises(TokenExpiredError):
            validator.check_access(token, ALICE.subject)


class TestRefresh:
    def test_usable(self, validator, stored_refresh):
        assert validator.validate_refresh_usable(stored_refresh, ALICE.subject) is True

    def test_access_token_never_refreshes(self, validator, factory):
        token = factory.issue_access_token(ALICE)
        with pytest.raises(WrongTokenTypeError):
            validator.check_refresh_usable(token, ALICE.subject)

    def test_not_in_store(self, validator, factory):
        token = factory.issue_refresh_token(ALICE)
        with pytest.raises(UnauthorizedError):
            validator.check_refresh_usable(token, ALICE.subject)
        assert validator.validate_refresh_usable(token, ALICE.subject) is False

    def test_consumed(self, validator, stored_refresh, refresh_store, clock):
        assert refresh_store.consume(stored_refresh, now=clock()) is not None
        assert validator.validate_refresh_usable(stored_refresh, ALICE.subject) is False

    def test_expired(self, validator, stored_refresh, clock):
        clock.advance(3600)
        with pytest.raises(TokenExpiredError):
            validator.check_refresh_usable(stored_refresh, ALICE.subject)

    def test_subject_mismatch(self, validator, stored_refresh):
        with pytest.raises(SubjectMismatchError):
            validator.check_refresh_usable(stored_refresh, BOB)
