"""Unit of Work abstractions and the SQLAlchemy-backed implementation."""

from .base import UnitOfWork
from .sqlalchemy_uow import SQLAlchemyUnitOfWork

__all__ = ["UnitOfWork", "SQLAlchemyUnitOfWork"]
