# authcore/infra/file/file_user_directory.py
from __future__ import annotations

import os
from dataclasses import replace
from typing import Any

from authcore.infra.file.json_store import JsonFileStore
from authcore.services._shared.errors import DuplicateIdentity, StorageUnavailable
from authcore.services._shared.ports import Identity, UserDirectory, normalize_email
from authcore.services._shared.ports.token_ledger import utcnow

USERS_FILE = "users.json"

# Field name used by rows written before the hash column was renamed.
LEGACY_PASSWORD_FIELD = "password"


def _upgrade_row(row: dict[str, Any]) -> dict[str, Any]:
    """Map a legacy row onto the current layout (``password`` -> ``password_hash``)."""
    if LEGACY_PASSWORD_FIELD not in row:
        return row
    upgraded = {k: v for k, v in row.items() if k != LEGACY_PASSWORD_FIELD}
    upgraded.setdefault("password_hash", row[LEGACY_PASSWORD_FIELD])
    return upgraded


def _row_email(row: dict[str, Any]) -> str:
    return normalize_email(str(row.get("email", "")))


def _to_identity(row: dict[str, Any]) -> Identity:
    try:
        identity = Identity.from_record(_upgrade_row(row))
    except (ValueError, TypeError, KeyError) as exc:
        raise StorageUnavailable("Corrupt user record") from exc
    return replace(identity, email=normalize_email(identity.email))


class FileUserDirectory(UserDirectory):
    """
    Directory persisted as ``users.json`` inside a data directory.

    New ids are ``max(existing) + 1``; emails are stored normalized. Rows
    carrying the older ``password`` field are read as ``password_hash``.

    :param data_dir: Directory holding the JSON files.
    :param timeout: Lock acquisition timeout in seconds.
    """

    def __init__(self, data_dir: str | os.PathLike[str], *, timeout: float = 5.0) -> None:
        self._file = JsonFileStore(os.path.join(data_dir, USERS_FILE), timeout=timeout)

    def find_by_email(self, email: str) -> Identity | None:
        key = normalize_email(email)
        row = next((r for r in self._file.load() if _row_email(r) == key), None)
        return _to_identity(row) if row is not None else None

    def find_by_id(self, identity_id: int) -> Identity | None:
        row = next((r for r in self._file.load() if r.get("id") == identity_id), None)
        return _to_identity(row) if row is not None else None

    def create(
        self, *, email: str, password_hash: str, first_name: str, last_name: str
    ) -> Identity:
        key = normalize_email(email)
        with self._file.transaction() as rows:
            if any(_row_email(r) == key for r in rows):
                raise DuplicateIdentity()
            now = utcnow()
            identity = Identity(
                id=max((int(r.get("id", 0)) for r in rows), default=0) + 1,
                email=key,
                password_hash=password_hash,
                first_name=first_name,
                last_name=last_name,
                is_active=True,
                is_verified=False,
                created_at=now,
                updated_at=now,
            )
            rows.append(identity.to_record())
            return identity

    def touch_last_login(self, identity_id: int) -> None:
        with self._file.transaction() as rows:
            for idx, row in enumerate(rows):
                if row.get("id") == identity_id:
                    now = utcnow()
                    rows[idx] = replace(_to_identity(row), last_login=now, updated_at=now).to_record()
                    return

    def all(self) -> list[Identity]:
        """Every stored identity, in file order."""
        return [_to_identity(r) for r in self._file.load()]
