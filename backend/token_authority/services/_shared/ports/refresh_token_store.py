from __future__ import annotations

import threading
from datetime import datetime
from typing import Protocol

from token_authority.services.auth.dto import RefreshRecord


class RefreshTokenStore(Protocol):
    """
    Stateful store of issued refresh tokens.

    Writes MUST be idempotent, and :meth:`consume` MUST be a single atomic
    conditional delete-and-return per token value: of several concurrent callers
    consuming the same token, exactly one receives the record.
    """

    def save(self, record: RefreshRecord) -> None:
        """Persist a freshly issued refresh token *before* it is handed out."""

    def consume(self, token: str, *, now: datetime) -> RefreshRecord | None:
        """
        Atomically remove ``token`` and return its record if it was live.

        An expired record is removed as well, but ``None`` is returned.
        """

    def exists(self, token: str, *, now: datetime) -> bool:
        """Return ``True`` when a live record exists for ``token``."""

    def delete(self, token: str) -> bool:
        """Remove the record for ``token``. :returns: True if it existed."""

    def list_for_subject(self, subject: str, *, now: datetime) -> list[RefreshRecord]:
        """List the live records owned by ``subject``."""

    def delete_for_subject(self, subject: str) -> int:
        """Remove every record owned by ``subject``. :returns: Number removed."""

    def purge_expired(self, now: datetime) -> int:
        """Housekeeping: drop records past their expiry. :returns: Number removed."""


class InMemoryRefreshTokenStore(RefreshTokenStore):
    """
    In-memory refresh store with atomic consumption.

    .. note::
       Uses a threading lock to provide atomicity; suitable for unit tests and
       single-process development servers only.
    """

    def __init__(self) -> None:
        self._by_token: dict[str, RefreshRecord] = {}
        self._lock = threading.Lock()

    def save(self, record: RefreshRecord) -> None:
        with self._lock:
            self._by_token[record.token] = record

    def consume(self, token: str, *, now: datetime) -> RefreshRecord | None:
        with self._lock:
            record = self._by_token.pop(token, None)
        if record is None or not record.is_live(now):
            return None
        return record

    def exists(self, token: str, *, now: datetime) -> bool:
        record = self._by_token.get(token)
        return record is not None and record.is_live(now)

    def delete(self, token: str) -> bool:
        with self._lock:
            return self._by_token.pop(token, None) is not None

    def list_for_subject(self, subject: str, *, now: datetime) -> list[RefreshRecord]:
        with self._lock:
            records = [r for r in self._by_token.values() if r.subject == subject]
        return sorted((r for r in records if r.is_live(now)), key=lambda r: r.expires_at)

    def delete_for_subject(self, subject: str) -> int:
        with self._lock:
            tokens = [t for t, r in self._by_token.items() if r.subject == subject]
            for t in tokens:
                del self._by_token[t]
        return len(tokens)

    def purge_expired(self, now: datetime) -> int:
        with self._lock:
            stale = [t for t, r in self._by_token.items() if not r.is_live(now)]
            for t in stale:
                del self._by_token[t]
        return len(stale)

    def __len__(self) -> int:
        return len(self._by_token)
