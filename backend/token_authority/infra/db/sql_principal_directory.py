from __future__ import annotations

from collections.abc import Callable

from token_authority.models.user import User
from token_authority.services.auth.dto import Principal
from token_authority.uow.sqlalchemy_uow import SQLAlchemyUnitOfWork


def to_principal(user: User) -> Principal:
    return Principal(
        id=user.id,
        email=user.email,
        display_name=user.display_name,
        roles=user.role_names,
    )


class SqlPrincipalDirectory:
    """Read-only :class:`PrincipalDirectory` over the ``users`` table."""

    def __init__(self, uow_factory: Callable[[], SQLAlchemyUnitOfWork] = SQLAlchemyUnitOfWork):
        self.uow_factory = uow_factory

    def get_by_subject(self, subject: str) -> Principal | None:
        with self.uow_factory() as uow:
            user = uow.users.get_by_email(subject)
            return to_principal(user) if user else None

    def authenticate(self, email: str, password: str) -> Principal | None:
        with self.uow_factory() as uow:
            user = uow.users.authenticate(email, password)
            return to_principal(user) if user else None
