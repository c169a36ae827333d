from __future__ import annotations

from datetime import UTC, datetime
from typing import cast

import redis  # type: ignore[import-untyped]

from token_authority.infra.keys import token_digest


class RedisBlacklistStore:
    """
    Blacklist of revoked **access tokens**.

    Each entry is a small marker whose TTL matches the token's own expiry, so
    Redis drops it once the token could no longer be accepted anyway.
    """

    def __init__(self, r: redis.Redis):
        self.r = r

    @staticmethod
    def _k(token: str) -> str:
        return f"bl:{token_digest(token)}"

    def contains(self, token: str) -> bool:
        return cast(int, self.r.exists(self._k(token))) == 1

    def add(self, token: str, *, expires_at: datetime) -> None:
        now = datetime.now(UTC).timestamp()
        ttl = max(1, int(expires_at.timestamp() - now))
        # idempotent; re-adding only refreshes the TTL
        self.r.set(self._k(token), str(int(expires_at.timestamp())), ex=ttl)

    def purge_expired(self, now: datetime) -> int:
        # Entries carry a TTL; Redis evicts them on its own
        return 0
