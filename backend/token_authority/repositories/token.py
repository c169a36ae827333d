"""Repositories for refresh-token and blacklist rows."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from token_authority.infra.keys import token_digest
from token_authority.models.base import as_utc
from token_authority.models.token import BlacklistedToken, RefreshToken
from token_authority.repositories.base import BaseRepository
from token_authority.services.auth.dto import RefreshRecord

log = logging.getLogger(__name__)


def _to_record(row: RefreshToken) -> RefreshRecord:
    return RefreshRecord(token=row.token, subject=row.subject, expires_at=as_utc(row.expires_at))


class RefreshTokenRepository(BaseRepository[RefreshToken]):
    """Persistence for :class:`RefreshToken`; rows are keyed by token digest."""

    model = RefreshToken

    def get_by_token(self, token: str) -> RefreshToken | None:
        stmt = select(RefreshToken).where(RefreshToken.token_digest == token_digest(token))
        return self.session.execute(stmt).scalars().first()

    def save(self, record: RefreshRecord) -> None:
        """Insert or refresh the row for ``record.token`` (idempotent)."""
        row = self.get_by_token(record.token)
        if row is None:
            row = RefreshToken(token_digest=token_digest(record.token), token=record.token)
            self.session.add(row)
        row.subject = record.subject
        row.expires_at = record.expires_at
        self.flush()

    def consume(self, token: str, *, now: datetime) -> RefreshRecord | None:
        """
        Delete the row for ``token`` and return it if it was live.

        The ``DELETE`` is conditional on the digest; only the caller whose
        statement removed the row (``rowcount == 1``) gets the record.
        """
        row = self.get_by_token(token)
        if row is None:
            return None
        record = _to_record(row)
        self.session.expunge(row)

        if self.delete_where(RefreshToken.token_digest == token_digest(token)) != 1:
            return None
        if record.expires_at <= now:
            return None
        return record

    def exists_live(self, token: str, *, now: datetime) -> bool:
        stmt = select(RefreshToken.id).where(
            RefreshToken.token_digest == token_digest(token),
            RefreshToken.expires_at > now,
        )
        return self.session.execute(stmt).first() is not None

    def delete_by_token(self, token: str) -> bool:
        return self.delete_where(RefreshToken.token_digest == token_digest(token)) == 1

    def list_for_subject(self, subject: str, *, now: datetime) -> list[RefreshRecord]:
        stmt = (
            select(RefreshToken)
            .where(RefreshToken.subject == subject, RefreshToken.expires_at > now)
            .order_by(RefreshToken.id.asc())
        )
        return [_to_record(row) for row in self.session.execute(stmt).scalars()]

    def delete_for_subject(self, subject: str) -> int:
        return self.delete_where(RefreshToken.subject == subject)

    def purge_expired(self, now: datetime) -> int:
        return self.delete_where(RefreshToken.expires_at <= now)


class BlacklistRepository(BaseRepository[BlacklistedToken]):
    """Persistence for :class:`BlacklistedToken`."""

    model = BlacklistedToken

    def add_token(self, token: str, *, expires_at: datetime) -> None:
        """
        Blacklist ``token`` until ``expires_at``; repeating it is a no-op.

        A concurrent writer may insert the same digest between the lookup and
        the insert, so the insert runs in a SAVEPOINT and a duplicate key is
        treated as already blacklisted.
        """
        digest = token_digest(token)
        row = self.get(digest)
        if row is not None:
            if as_utc(row.expires_at) < expires_at:
                row.expires_at = expires_at
                self.flush()
            return
        try:
            with self.session.begin_nested():
                self.session.add(BlacklistedToken(token_digest=digest, expires_at=expires_at))
        except IntegrityError:
            log.debug("blacklist.duplicate_insert")

    def contains(self, token: str) -> bool:
        stmt = select(BlacklistedToken.token_digest).where(
            BlacklistedToken.token_digest == token_digest(token)
        )
        return self.session.execute(stmt).first() is not None

    def purge_expired(self, now: datetime) -> int:
        return self.delete_where(BlacklistedToken.expires_at <= now)
