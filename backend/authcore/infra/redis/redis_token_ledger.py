# authcore/infra/redis/redis_token_ledger.py
from __future__ import annotations

import hashlib
import math
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta

import redis  # type: ignore[import-untyped]

from authcore.services._shared.errors import StorageUnavailable
from authcore.services._shared.ports import REFRESH_TOKEN_LIFETIME, LedgerRecord, TokenLedger
from authcore.services._shared.ports.token_ledger import as_utc, utcnow

logger = logging.getLogger(__name__)


def _s(value: bytes | str | None, default: str = "") -> str:
    if value is None:
        return default
    return value.decode() if isinstance(value, bytes | bytearray) else str(value)


@dataclass(slots=True)
class RedisTokenLedger(TokenLedger):
    """
    Redis-backed ledger with atomic rotation.

    Layout
    ------
    ``rt:{identity_id}:{sha256(token)}``
        Hash with ``ledger_id``, ``identity_id``, ``token``, ``expires_at``
        and ``created_at`` (ISO-8601). Carries a native ``EXPIREAT``.
    ``rt:u:{identity_id}``
        Set of record keys owned by the identity.
    ``rt:exp``
        Sorted set of record keys scored by exact expiry (float epoch seconds), used by
        :meth:`sweep_expired` to clean the indexes.
    ``rt:seq``
        Counter for ``ledger_id``.

    :param r: A Redis client (already connected).
    """

    r: redis.Redis
    lifetime: timedelta = REFRESH_TOKEN_LIFETIME

    K_EXP = "rt:exp"
    K_SEQ = "rt:seq"

    # -------------------- helpers --------------------

    @staticmethod
    def _k(identity_id: int, token_value: str) -> str:
        digest = hashlib.sha256(token_value.encode("utf-8")).hexdigest()
        return f"rt:{identity_id}:{digest}"

    @staticmethod
    def _ku(identity_id: int) -> str:
        return f"rt:u:{identity_id}"

    @staticmethod
    def _identity_from_key(key: str) -> int:
        return int(key.split(":")[1])

    @staticmethod
    def _parse(h: dict) -> LedgerRecord:
        d = {_s(k): _s(v) for k, v in h.items()}
        return LedgerRecord(
            ledger_id=int(d["ledger_id"]),
            identity_id=int(d["identity_id"]),
            token_value=d["token"],
            expires_at=as_utc(datetime.fromisoformat(d["expires_at"])),
            created_at=as_utc(datetime.fromisoformat(d["created_at"])),
        )

    def _queue_insert(self, p, identity_id: int, token_value: str, ledger_id: int) -> LedgerRecord:
        """Queue the commands creating a record on pipeline ``p`` (already in MULTI)."""
        now = utcnow()
        rec = LedgerRecord(
            ledger_id=ledger_id,
            identity_id=identity_id,
            token_value=token_value,
            expires_at=now + self.lifetime,
            created_at=now,
        )
        key = self._k(identity_id, token_value)
        exp_ts = rec.expires_at.timestamp()
        p.hset(
            key,
            mapping={
                "ledger_id": str(rec.ledger_id),
                "identity_id": str(identity_id),
                "token": token_value,
                "expires_at": rec.expires_at.isoformat(),
                "created_at": rec.created_at.isoformat(),
            },
        )
        # Native expiry never fires before expires_at
        p.expireat(key, math.ceil(exp_ts))
        p.sadd(self._ku(identity_id), key)
        p.zadd(self.K_EXP, {key: exp_ts})
        return rec

    @contextmanager
    def _guard(self, operation: str) -> Iterator[None]:
        try:
            yield
        except redis.RedisError as exc:
            logger.error("Redis %s failed: %s", operation, exc.__class__.__name__)
            raise StorageUnavailable(f"Redis {operation} failed") from exc
        except (KeyError, ValueError, TypeError) as exc:
            raise StorageUnavailable("Corrupt refresh token record") from exc

    # -------------------- API ------------------------

    def store(self, identity_id: int, token_value: str) -> LedgerRecord:
        key = self._k(identity_id, token_value)
        with self._guard("store"):
            while True:
                try:
                    with self.r.pipeline() as p:
                        p.watch(key)
                        existing = self.r.hgetall(key)
                        if existing:
                            p.unwatch()
                            return self._parse(existing)
                        ledger_id = int(self.r.incr(self.K_SEQ))
                        p.multi()
                        rec = self._queue_insert(p, identity_id, token_value, ledger_id)
                        p.execute()
                        return rec
                except redis.WatchError:
                    # Concurrent writer on the same key; re-read
                    continue

    def is_active(self, identity_id: int, token_value: str) -> bool:
        with self._guard("lookup"):
            h = self.r.hgetall(self._k(identity_id, token_value))
            return bool(h) and self._parse(h).is_active()

    def revoke(self, identity_id: int, token_value: str) -> bool:
        key = self._k(identity_id, token_value)
        with self._guard("revoke"):
            with self.r.pipeline(transaction=True) as p:
                p.delete(key)
                p.srem(self._ku(identity_id), key)
                p.zrem(self.K_EXP, key)
                out = p.execute()
            return bool(out[0])

    def rotate(self, identity_id: int, old_value: str, new_value: str) -> LedgerRecord | None:
        """
        Atomically consume ``old_value`` and create ``new_value``.

        WATCH/MULTI/EXEC optimistic locking: if another client touches the old
        record between the read and EXEC, the transaction aborts and the loop
        re-reads (and then finds the record gone).
        """
        k_old = self._k(identity_id, old_value)
        k_user = self._ku(identity_id)

        with self._guard("rotate"):
            while True:
                try:
                    with self.r.pipeline() as p:
                        p.watch(k_old)
                        h = self.r.hgetall(k_old)
                        if not h or not self._parse(h).is_active():
                            p.unwatch()
                            return None
                        ledger_id = int(self.r.incr(self.K_SEQ))

                        p.multi()
                        p.delete(k_old)
                        p.srem(k_user, k_old)
                        p.zrem(self.K_EXP, k_old)
                        rec = self._queue_insert(p, identity_id, new_value, ledger_id)
                        p.execute()
                    return rec
                except redis.WatchError:
                    # Concurrent modification detected; retry loop
                    continue

    def sweep_expired(self) -> int:
        now_ts = utcnow().timestamp()
        with self._guard("sweep"):
            members = [_s(m) for m in self.r.zrangebyscore(self.K_EXP, "-inf", now_ts)]
            if not members:
                return 0
            with self.r.pipeline(transaction=True) as p:
                for key in members:
                    p.delete(key)
                    p.srem(self._ku(self._identity_from_key(key)), key)
                    p.zrem(self.K_EXP, key)
                out = p.execute()
            # every third reply is the ZREM result
            return sum(1 for removed in out[2::3] if removed)

    def list_active(self, identity_id: int) -> list[LedgerRecord]:
        key_u = self._ku(identity_id)
        with self._guard("lookup"):
            members = sorted(_s(m) for m in self.r.smembers(key_u))
            now = utcnow()
            found: list[LedgerRecord] = []
            stale: list[str] = []
            for key in members:
                h = self.r.hgetall(key)
                if not h:
                    # Underlying hash expired natively -> drop from index
                    stale.append(key)
                    continue
                rec = self._parse(h)
                if rec.is_active(now):
                    found.append(rec)
            if stale:
                self.r.srem(key_u, *stale)
        return sorted(found, key=lambda r: r.ledger_id)
