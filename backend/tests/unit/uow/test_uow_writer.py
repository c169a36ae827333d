"""
Unit tests for SQLAlchemyUnitOfWork (writer), using factories.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from tests.factories.user import UserFactory

from token_authority.models import RefreshToken, User
from token_authority.services.auth.dto import RefreshRecord
from token_authority.uow import SQLAlchemyUnitOfWork


class TestSQLAlchemyUnitOfWorkWriter:
    def test_writer_uow_commits_on_success(self, app, db, session):
        """
        GIVEN a writer UoW
        WHEN we add a user inside the context and leave without exception
        THEN the transaction is committed and the row is visible afterwards.
        """
        initial = db.session.query(User).count()

        with SQLAlchemyUnitOfWork() as uow:
            uow.users.add(UserFactory.build())

        assert db.session.query(User).count() == initial + 1

    def test_writer_uow_rolls_back_on_exception(self, app, db, session):
        """
        GIVEN a writer UoW
        WHEN an exception is raised inside the context
        THEN nothing written in the block is persisted.
        """
        record = RefreshRecord(
            token="tok", subject="a@example.com", expires_at=datetime.now(UTC) + timedelta(minutes=1)
        )

        with pytest.raises(RuntimeError), SQLAlchemyUnitOfWork() as uow:
            uow.refresh_tokens.save(record)
            raise RuntimeError("boom")

        assert db.session.query(RefreshToken).count() == 0

    def test_repositories_share_the_session(self, session):
        uow = SQLAlchemyUnitOfWork(session)
        assert uow.users.session is uow.refresh_tokens.session is uow.blacklist.session is session
