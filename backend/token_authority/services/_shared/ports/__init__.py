"""
token_authority.services._shared.ports
======================================

Collection of *ports* (hexagonal interfaces) that define the contracts
for token state and identity lookups.

These ports decouple the service layer from concrete implementations
of refresh-token persistence, revocation storage and principal lookup.

Modules
-------
- :mod:`refresh_token_store`:
    Defines :class:`~.RefreshTokenStore`: persistence of issued refresh tokens
    with an atomic consume-or-fail operation.

- :mod:`blacklist_store`:
    Defines :class:`~.TokenBlacklistStore`: set of revoked access tokens.

- :mod:`principal_directory`:
    Defines :class:`~.PrincipalDirectory`: read-only view of the user store.

- :mod:`token_authority`:
    Defines :class:`~.TokenAuthority`: local or remote validation capability.

Design Notes
------------
Concrete adapters (Redis, SQL, HTTP) implement these interfaces under
``token_authority.infra``; the in-memory doubles live next to their port.
"""

from __future__ import annotations

from .blacklist_store import InMemoryBlacklistStore, TokenBlacklistStore
from .principal_directory import InMemoryPrincipalDirectory, PrincipalDirectory
from .refresh_token_store import InMemoryRefreshTokenStore, RefreshTokenStore
from .token_authority import TokenAuthority

__all__ = [
    "RefreshTokenStore",
    "InMemoryRefreshTokenStore",
    "TokenBlacklistStore",
    "InMemoryBlacklistStore",
    "PrincipalDirectory",
    "InMemoryPrincipalDirectory",
    "TokenAuthority",
]
