from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

from werkzeug.security import check_password_hash, generate_password_hash

from token_authority.services.auth.dto import Principal


class PrincipalDirectory(Protocol):
    """
    Read-only port onto the user store owned by another bounded context.

    Credential storage and hashing live behind this interface; the token core
    only asks "who is this?" and "do these credentials match?".
    """

    def get_by_subject(self, subject: str) -> Principal | None: ...

    def authenticate(self, email: str, password: str) -> Principal | None: ...


class InMemoryPrincipalDirectory(PrincipalDirectory):
    """Dictionary-backed directory used by unit tests and local demos."""

    def __init__(self) -> None:
        self._by_email: dict[str, tuple[Principal, str]] = {}
        self._seq = 0

    def add(
        self,
        email: str,
        password: str,
        *,
        display_name: str | None = None,
        roles: Iterable[str] = ("USER",),
    ) -> Principal:
        """Register a principal and return it."""
        self._seq += 1
        key = email.strip().lower()
        principal = Principal(
            id=self._seq,
            email=key,
            display_name=display_name or key.split("@")[0],
            roles=frozenset(roles),
        )
        self._by_email[key] = (principal, generate_password_hash(password))
        return principal

    def remove(self, email: str) -> None:
        self._by_email.pop(email.strip().lower(), None)

    def get_by_subject(self, subject: str) -> Principal | None:
        entry = self._by_email.get(subject.strip().lower())
        return entry[0] if entry else None

    def authenticate(self, email: str, password: str) -> Principal | None:
        entry = self._by_email.get(email.strip().lower())
        if entry is None or not check_password_hash(entry[1], password):
            return None
        return entry[0]
