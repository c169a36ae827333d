"""Repository package exposing persistence-layer access for the token tables."""

from __future__ import annotations

from token_authority.repositories.base import BaseRepository
from token_authority.repositories.token import BlacklistRepository, RefreshTokenRepository
from token_authority.repositories.user import UserRepository

__all__ = [
    "BaseRepository",
    "BlacklistRepository",
    "RefreshTokenRepository",
    "UserRepository",
]
