from __future__ import annotations

import threading
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol

#: Refresh tokens and their ledger records live for a fixed 30 days.
REFRESH_TOKEN_LIFETIME = timedelta(days=30)


def utcnow() -> datetime:
    """Return a timezone-aware UTC "now"."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Label naive datetimes as UTC (SQLite drops tzinfo on round-trip)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


@dataclass(frozen=True, slots=True)
class LedgerRecord:
    """
    Durable record backing a refresh token.

    :ivar ledger_id: Store-assigned record id.
    :ivar identity_id: Owner identity.
    :ivar token_value: Encoded refresh token.
    :ivar expires_at: Absolute expiration (UTC).
    :ivar created_at: Insertion instant (UTC).
    """

    ledger_id: int
    identity_id: int
    token_value: str
    expires_at: datetime
    created_at: datetime

    def is_active(self, now: datetime | None = None) -> bool:
        return self.expires_at > (now or utcnow())

    def to_record(self) -> dict[str, Any]:
        """Serialize to the flat-file representation."""
        return {
            "id": self.ledger_id,
            "user_id": self.identity_id,
            "token": self.token_value,
            "expires_at": self.expires_at.isoformat(),
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> LedgerRecord:
        """
        Build a record from its flat-file representation.

        :raises ValueError: On missing fields or unparsable timestamps.
        """
        try:
            return cls(
                ledger_id=int(record["id"]),
                identity_id=int(record["user_id"]),
                token_value=str(record["token"]),
                expires_at=as_utc(datetime.fromisoformat(str(record["expires_at"]))),
                created_at=as_utc(datetime.fromisoformat(str(record["created_at"]))),
            )
        except KeyError as exc:
            raise ValueError(f"Ledger record is missing field {exc.args[0]!r}") from exc


class TokenLedger(Protocol):
    """
    Durable store of issued refresh tokens.

    Every operation reads current state; nothing is cached across calls.
    Storage failures raise
    :class:`~authcore.services._shared.errors.StorageUnavailable`.
    """

    def store(self, identity_id: int, token_value: str) -> LedgerRecord:
        """Insert a record expiring in 30 days; no-op for an existing value."""

    def is_active(self, identity_id: int, token_value: str) -> bool:
        """True iff a matching record exists and ``expires_at > now``."""

    def revoke(self, identity_id: int, token_value: str) -> bool:
        """Delete the matching record. :returns: True if one was removed."""

    def rotate(self, identity_id: int, old_value: str, new_value: str) -> LedgerRecord | None:
        """
        Atomically consume the active ``old_value`` record and insert ``new_value``.

        :returns: The new record, or ``None`` if the old one was not active.
        """

    def sweep_expired(self) -> int:
        """Delete every record with ``expires_at <= now``. :returns: Count removed."""

    def list_active(self, identity_id: int) -> list[LedgerRecord]:
        """List the non-expired records of an identity, oldest first."""


class InMemoryTokenLedger(TokenLedger):
    """
    In-memory ledger with atomic rotation behavior.

    .. note::
       Uses a threading lock for atomicity; intended for unit tests.
    """

    def __init__(self, *, lifetime: timedelta = REFRESH_TOKEN_LIFETIME) -> None:
        self._records: dict[tuple[int, str], LedgerRecord] = {}
        self._seq = 0
        self._lifetime = lifetime
        self._lock = threading.Lock()

    def _insert(self, identity_id: int, token_value: str) -> LedgerRecord:
        # caller holds the lock
        now = utcnow()
        self._seq += 1
        rec = LedgerRecord(
            ledger_id=self._seq,
            identity_id=identity_id,
            token_value=token_value,
            expires_at=now + self._lifetime,
            created_at=now,
        )
        self._records[(identity_id, token_value)] = rec
        return rec

    def store(self, identity_id: int, token_value: str) -> LedgerRecord:
        with self._lock:
            existing = self._records.get((identity_id, token_value))
            if existing is not None:
                return existing
            return self._insert(identity_id, token_value)

    def is_active(self, identity_id: int, token_value: str) -> bool:
        with self._lock:
            rec = self._records.get((identity_id, token_value))
            return rec is not None and rec.is_active()

    def revoke(self, identity_id: int, token_value: str) -> bool:
        with self._lock:
            return self._records.pop((identity_id, token_value), None) is not None

    def rotate(self, identity_id: int, old_value: str, new_value: str) -> LedgerRecord | None:
        with self._lock:
            old = self._records.get((identity_id, old_value))
            if old is None or not old.is_active():
                return None
            del self._records[(identity_id, old_value)]
            return self._insert(identity_id, new_value)

    def sweep_expired(self) -> int:
        with self._lock:
            now = utcnow()
            expired = [key for key, rec in self._records.items() if not rec.is_active(now)]
            for key in expired:
                del self._records[key]
            return len(expired)

    def list_active(self, identity_id: int) -> list[LedgerRecord]:
        with self._lock:
            now = utcnow()
            found = [
                rec
                for rec in self._records.values()
                if rec.identity_id == identity_id and rec.is_active(now)
            ]
        return sorted(found, key=lambda r: r.ledger_id)
