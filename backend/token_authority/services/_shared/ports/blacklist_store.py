from __future__ import annotations

import threading
from datetime import datetime
from typing import Protocol


class TokenBlacklistStore(Protocol):
    """
    Abstraction for the set of **access tokens** revoked before their natural expiry.

    Methods are expected to be idempotent. Entries are never removed before the
    token's own expiry.
    """

    def add(self, token: str, *, expires_at: datetime) -> None: ...
    def contains(self, token: str) -> bool: ...
    def purge_expired(self, now: datetime) -> int: ...


class InMemoryBlacklistStore(TokenBlacklistStore):
    """Simple in-memory blacklist for **access** tokens by raw value."""

    def __init__(self) -> None:
        self._revoked: dict[str, datetime] = {}
        self._lock = threading.Lock()

    def add(self, token: str, *, expires_at: datetime) -> None:
        with self._lock:
            self._revoked[token] = expires_at

    def contains(self, token: str) -> bool:
        return token in self._revoked

    def purge_expired(self, now: datetime) -> int:
        with self._lock:
            stale = [t for t, exp in self._revoked.items() if exp <= now]
            for t in stale:
                del self._revoked[t]
        return len(stale)
