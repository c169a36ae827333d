"""User repository for principal lookup and credential checks."""

from __future__ import annotations

from collections.abc import Iterable
from typing import cast

from sqlalchemy import select

from token_authority.models.user import Role, User
from token_authority.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Persistence-only repository for :class:`User`.

    It NEVER issues or inspects tokens; only DB-level principal management.
    """

    model = User

    def get_by_email(self, email: str) -> User | None:
        """Fetch a user by email (case-insensitive).

        :param email: Email address to normalise and search.
        :type email: str
        :returns: User instance or ``None`` when not found.
        :rtype: User | None
        """
        stmt = select(User).where(User.email == email.lower().strip())
        result = self.session.execute(stmt).scalars().first()
        return cast(User | None, result)

    def exists_by_email(self, email: str) -> bool:
        stmt = select(User.id).where(User.email == email.lower().strip())
        return bool(self.session.execute(stmt).first())

    def authenticate(self, email: str, password: str) -> User | None:
        """Authenticate a user by email and password.

        :returns: Authenticated user or ``None`` when credentials fail.
        """
        user = self.get_by_email(email)
        if not user or not user.verify_password(password):
            return None
        return user

    # ---------------------------- Roles ----------------------------

    def get_or_create_role(self, name: str) -> Role:
        key = name.strip().upper()
        role = self.session.execute(select(Role).where(Role.name == key)).scalars().first()
        if role is None:
            role = Role(name=key)
            self.session.add(role)
            self.flush()
        return cast(Role, role)

    def create(
        self,
        *,
        email: str,
        password: str,
        display_name: str,
        roles: Iterable[str] = ("USER",),
    ) -> User:
        """Create a user with the given roles (created on demand)."""
        user = User(email=email, display_name=display_name)
        user.password = password
        user.roles = [self.get_or_create_role(r) for r in sorted(set(roles))]
        return self.add(user)
