from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from token_authority.services.auth.dto import RefreshRecord
from token_authority.uow.sqlalchemy_uow import SQLAlchemyUnitOfWork


class SqlRefreshTokenStore:
    """
    Refresh store over the ``refresh_tokens`` table.

    Every call runs in its own Unit of Work so the consume step commits (or
    rolls back) before the caller continues.

    :param uow_factory: Builds the Unit of Work; tests may bind a session.
    """

    def __init__(self, uow_factory: Callable[[], SQLAlchemyUnitOfWork] = SQLAlchemyUnitOfWork):
        self.uow_factory = uow_factory

    def save(self, record: RefreshRecord) -> None:
        with self.uow_factory() as uow:
            uow.refresh_tokens.save(record)

    def consume(self, token: str, *, now: datetime) -> RefreshRecord | None:
        with self.uow_factory() as uow:
            return uow.refresh_tokens.consume(token, now=now)

    def exists(self, token: str, *, now: datetime) -> bool:
        with self.uow_factory() as uow:
            return uow.refresh_tokens.exists_live(token, now=now)

    def delete(self, token: str) -> bool:
        with self.uow_factory() as uow:
            return uow.refresh_tokens.delete_by_token(token)

    def list_for_subject(self, subject: str, *, now: datetime) -> list[RefreshRecord]:
        with self.uow_factory() as uow:
            return uow.refresh_tokens.list_for_subject(subject, now=now)

    def delete_for_subject(self, subject: str) -> int:
        with self.uow_factory() as uow:
            return uow.refresh_tokens.delete_for_subject(subject)

    def purge_expired(self, now: datetime) -> int:
        with self.uow_factory() as uow:
            return uow.refresh_tokens.purge_expired(now)


class SqlBlacklistStore:
    """Blacklist over the ``blacklisted_tokens`` table."""

    def __init__(self, uow_factory: Callable[[], SQLAlchemyUnitOfWork] = SQLAlchemyUnitOfWork):
        self.uow_factory = uow_factory

    def add(self, token: str, *, expires_at: datetime) -> None:
        with self.uow_factory() as uow:
            uow.blacklist.add_token(token, expires_at=expires_at)

    def contains(self, token: str) -> bool:
        with self.uow_factory() as uow:
            return uow.blacklist.contains(token)

    def purge_expired(self, now: datetime) -> int:
        with self.uow_factory() as uow:
            return uow.blacklist.purge_expired(now)
