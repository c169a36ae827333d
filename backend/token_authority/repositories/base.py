"""Generic repository base for SQLAlchemy 2.x.

Persistence-only concerns shared by all repositories:
- Session resolution (Unit of Work session or the Flask-scoped one).
- Staging, primary-key lookup and bulk conditional deletes.
- No business logic, no commit/rollback: the Unit of Work owns transactions.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar, cast

from sqlalchemy import ColumnElement, delete
from sqlalchemy.orm import Session

from token_authority.core.extensions import db

M = TypeVar("M")  # mapped model


class BaseRepository(Generic[M]):
    """Single-table repository. Subclasses set ``model``."""

    model: type[M]

    def __init__(self, session: Session | None = None) -> None:
        """
        :param session: Session shared across the Unit of Work scope; the
            Flask-scoped ``db.session`` is used when omitted.
        """
        self._session = session

    @property
    def session(self) -> Session:
        return cast(Session, self._session if self._session is not None else db.session)

    def add(self, obj: M) -> M:
        """Stage ``obj`` and flush so its primary key is populated."""
        self.session.add(obj)
        self.flush()
        return obj

    def get(self, key: Any) -> M | None:
        return self.session.get(self.model, key)

    def delete_where(self, *criteria: ColumnElement[bool]) -> int:
        """
        Issue a single ``DELETE ... WHERE`` and return the affected row count.

        The count is what the database reports for this statement, so two
        sessions racing on the same row see ``1`` and ``0`` respectively.
        """
        result = self.session.execute(
            delete(self.model).where(*criteria).execution_options(synchronize_session=False)
        )
        return int(result.rowcount or 0)

    def flush(self) -> None:
        self.session.flush()
