"""Unit tests for :class:`TokenFactory`."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from token_authority.services.auth.dto import Principal, TokenType
from token_authority.services.auth.issuer import TokenFactory, utcnow

ALICE = Principal(
    id=1,
    email="alice@example.com",
    display_name="Alice",
    roles=frozenset({"USER", "EDITOR"}),
)


def test_access_token_carries_type_roles_and_ttl(factory, signer, clock):
    claims = signer.verify(factory.issue_access_token(ALICE))

    assert claims.subject == "alice@example.com"
    assert claims.token_type is TokenType.ACCESS
    assert claims.roles == ("EDITOR", "USER")
    assert claims.issued_at == clock.now
    assert claims.expires_at == clock.now + timedelta(minutes=5)


def test_refresh_token_has_no_roles_and_longer_ttl(factory, signer, clock):
    claims = signer.verify(factory.issue_refresh_token(ALICE))

    assert claims.token_type is TokenType.REFRESH
    assert claims.roles == ()
    assert claims.expires_at == clock.now + timedelta(hours=1)


def test_tokens_issued_in_same_second_differ(factory):
    assert factory.issue_access_token(ALICE) != factory.issue_access_token(ALICE)


def test_pair_types(factory, signer):
    pair = factory.issue_pair(ALICE)
    assert signer.verify(pair.access_token).token_type is TokenType.ACCESS
    assert signer.verify(pair.refresh_token).token_type is TokenType.REFRESH


def test_zero_ttl_token_is_already_expired(signer, clock):
    f = TokenFactory(
        signer=signer,
        access_ttl=timedelta(0),
        refresh_ttl=timedelta(hours=1),
        clock=clock,
    )
    claims = signer.verify(f.issue_access_token(ALICE))
    assert claims.expires_at == claims.issued_at
    assert claims.is_expired(clock.now)


def test_default_clock_is_utc_whole_seconds(freeze_time):
    with freeze_time("2024-03-01 08:30:15.987"):
        now = utcnow()
    assert now == datetime(2024, 3, 1, 8, 30, 15, tzinfo=UTC)
