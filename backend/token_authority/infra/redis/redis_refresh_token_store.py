from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import cast

import redis  # type: ignore[import-untyped]

from token_authority.infra.keys import token_digest
from token_authority.services.auth.dto import RefreshRecord


def _s(value: bytes | str | None, default: str = "") -> str:
    if value is None:
        return default
    return value.decode() if isinstance(value, bytes | bytearray) else str(value)


@dataclass(slots=True)
class RedisRefreshTokenStore:
    """
    Redis-backed refresh token store with atomic consumption.

    Layout
    ------
    - ``rt:{digest}``: hash with ``token``, ``subject`` and ``expires_at``
      (epoch seconds), TTL set to the token's remaining lifetime.
    - ``rt:s:{subject}``: set of digests owned by a subject.

    :param r: A Redis client (already connected).
    """

    r: redis.Redis

    # -------------------- helpers --------------------

    @staticmethod
    def _k(token: str) -> str:
        return f"rt:{token_digest(token)}"

    @staticmethod
    def _kd(digest: str) -> str:
        return f"rt:{digest}"

    @staticmethod
    def _ks(subject: str) -> str:
        return f"rt:s:{subject}"

    @staticmethod
    def _to_ts(dt: datetime) -> int:
        return int(dt.timestamp())

    @staticmethod
    def _record(h: dict) -> RefreshRecord:
        fields = {_s(k): _s(v) for k, v in h.items()}
        return RefreshRecord(
            token=fields.get("token", ""),
            subject=fields.get("subject", ""),
            expires_at=datetime.fromtimestamp(int(fields.get("expires_at", "0")), tz=UTC),
        )

    # -------------------- API ------------------------

    def save(self, record: RefreshRecord) -> None:
        """Insert the record *before* the token is handed to the client."""
        key = self._k(record.token)
        ttl = max(1, self._to_ts(record.expires_at) - self._to_ts(datetime.now(UTC)))

        pipe = self.r.pipeline(transaction=True)
        pipe.hset(
            key,
            mapping={
                "token": record.token,
                "subject": record.subject,
                "expires_at": str(self._to_ts(record.expires_at)),
            },
        )
        pipe.expire(key, ttl)
        pipe.sadd(self._ks(record.subject), token_digest(record.token))
        pipe.execute()

    def consume(self, token: str, *, now: datetime) -> RefreshRecord | None:
        """
        Read and delete the record in one MULTI/EXEC block.

        Only the caller whose ``DEL`` actually removed the key wins; a
        concurrent caller sees ``0`` and gets ``None``.
        """
        key = self._k(token)
        with self.r.pipeline(transaction=True) as p:
            p.hgetall(key)
            p.delete(key)
            h, deleted = cast(list, p.execute())

        if not h or int(deleted) != 1:
            return None
        record = self._record(h)
        self.r.srem(self._ks(record.subject), token_digest(token))
        if record.expires_at <= now:
            return None
        return record

    def exists(self, token: str, *, now: datetime) -> bool:
        exp = self.r.hget(self._k(token), "expires_at")
        if exp is None:
            return False
        return int(_s(exp)) > self._to_ts(now)

    def delete(self, token: str) -> bool:
        key = self._k(token)
        subject = self.r.hget(key, "subject")
        with self.r.pipeline(transaction=True) as p:
            p.delete(key)
            if subject is not None:
                p.srem(self._ks(_s(subject)), token_digest(token))
            out = cast(list[int], p.execute())
        return bool(out[0])

    def list_for_subject(self, subject: str, *, now: datetime) -> list[RefreshRecord]:
        key_s = self._ks(subject)
        digests = sorted(_s(m) for m in self.r.smembers(key_s))

        live: list[RefreshRecord] = []
        stale: list[str] = []
        for d in digests:
            h = self.r.hgetall(self._kd(d))
            if not h:
                # Underlying hash evicted by its TTL
                stale.append(d)
                continue
            record = self._record(h)
            if record.expires_at > now:
                live.append(record)

        if stale:
            self.r.srem(key_s, *stale)
        return live

    def delete_for_subject(self, subject: str) -> int:
        key_s = self._ks(subject)
        digests = [_s(m) for m in self.r.smembers(key_s)]
        if not digests:
            return 0
        pipe = self.r.pipeline(transaction=True)
        for d in digests:
            pipe.delete(self._kd(d))
        pipe.delete(key_s)
        out = cast(list[int], pipe.execute())
        return sum(int(n) for n in out[:-1])

    def purge_expired(self, now: datetime) -> int:
        """
        Drop records past ``now`` and prune subject indexes of evicted keys.

        Redis already evicts keys on TTL; this only catches records whose
        stored expiry passed before their TTL fired, plus dangling index entries.
        """
        removed = 0
        now_ts = self._to_ts(now)
        for key_s in self.r.scan_iter(match="rt:s:*"):
            stale: list[str] = []
            for m in self.r.smembers(key_s):
                d = _s(m)
                exp = self.r.hget(self._kd(d), "expires_at")
                if exp is None:
                    stale.append(d)
                elif int(_s(exp)) <= now_ts:
                    removed += int(self.r.delete(self._kd(d)))
                    stale.append(d)
            if stale:
                self.r.srem(key_s, *stale)
        return removed
