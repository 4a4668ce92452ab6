# authcore/infra/file/file_token_ledger.py
from __future__ import annotations

import os
from datetime import timedelta
from typing import Any

from authcore.infra.file.json_store import JsonFileStore
from authcore.services._shared.errors import StorageUnavailable
from authcore.services._shared.ports import REFRESH_TOKEN_LIFETIME, LedgerRecord, TokenLedger
from authcore.services._shared.ports.token_ledger import utcnow

REFRESH_TOKENS_FILE = "refresh_tokens.json"


class FileTokenLedger(TokenLedger):
    """
    Ledger persisted as ``refresh_tokens.json`` inside a data directory.

    Rotation runs inside a single locked read-modify-write, which makes the
    compare-and-delete plus insert atomic within the process.

    :param data_dir: Directory holding the JSON files.
    :param timeout: Lock acquisition timeout in seconds.
    """

    def __init__(
        self,
        data_dir: str | os.PathLike[str],
        *,
        timeout: float = 5.0,
        lifetime: timedelta = REFRESH_TOKEN_LIFETIME,
    ) -> None:
        self._file = JsonFileStore(os.path.join(data_dir, REFRESH_TOKENS_FILE), timeout=timeout)
        self._lifetime = lifetime

    # -------------------- helpers --------------------

    @staticmethod
    def _parse(rows: list[dict[str, Any]]) -> list[LedgerRecord]:
        try:
            return [LedgerRecord.from_record(r) for r in rows]
        except (ValueError, TypeError) as exc:
            raise StorageUnavailable("Corrupt refresh token record") from exc

    @staticmethod
    def _find(rows: list[dict[str, Any]], identity_id: int, token_value: str) -> int | None:
        for idx, row in enumerate(rows):
            if row.get("user_id") == identity_id and row.get("token") == token_value:
                return idx
        return None

    def _append(self, rows: list[dict[str, Any]], identity_id: int, token_value: str) -> LedgerRecord:
        now = utcnow()
        next_id = max((int(r.get("id", 0)) for r in rows), default=0) + 1
        rec = LedgerRecord(
            ledger_id=next_id,
            identity_id=identity_id,
            token_value=token_value,
            expires_at=now + self._lifetime,
            created_at=now,
        )
        rows.append(rec.to_record())
        return rec

    # -------------------- API ------------------------

    def store(self, identity_id: int, token_value: str) -> LedgerRecord:
        with self._file.transaction() as rows:
            idx = self._find(rows, identity_id, token_value)
            if idx is not None:
                return self._parse([rows[idx]])[0]
            return self._append(rows, identity_id, token_value)

    def is_active(self, identity_id: int, token_value: str) -> bool:
        rows = self._file.load()
        idx = self._find(rows, identity_id, token_value)
        if idx is None:
            return False
        return self._parse([rows[idx]])[0].is_active()

    def revoke(self, identity_id: int, token_value: str) -> bool:
        with self._file.transaction() as rows:
            idx = self._find(rows, identity_id, token_value)
            if idx is None:
                return False
            del rows[idx]
            return True

    def rotate(self, identity_id: int, old_value: str, new_value: str) -> LedgerRecord | None:
        with self._file.transaction() as rows:
            idx = self._find(rows, identity_id, old_value)
            if idx is None or not self._parse([rows[idx]])[0].is_active():
                return None
            del rows[idx]
            return self._append(rows, identity_id, new_value)

    def sweep_expired(self) -> int:
        with self._file.transaction() as rows:
            now = utcnow()
            records = self._parse(rows)
            keep = [row for row, rec in zip(rows, records, strict=True) if rec.is_active(now)]
            removed = len(rows) - len(keep)
            rows[:] = keep
            return removed

    def list_active(self, identity_id: int) -> list[LedgerRecord]:
        now = utcnow()
        return sorted(
            (
                rec
                for rec in self._parse(self._file.load())
                if rec.identity_id == identity_id and rec.is_active(now)
            ),
            key=lambda r: r.ledger_id,
        )

    def all(self) -> list[LedgerRecord]:
        """Every stored record, expired ones included, in file order."""
        return self._parse(self._file.load())
