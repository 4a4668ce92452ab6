from __future__ import annotations

import threading
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from typing import Any, Protocol

from ..errors import DuplicateIdentity
from .token_ledger import as_utc, utcnow


def normalize_email(email: str) -> str:
    """Lower-case and trim an email address (the directory's natural key)."""
    return email.strip().lower()


def _parse_ts(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    return as_utc(datetime.fromisoformat(str(value)))


@dataclass(frozen=True, slots=True)
class Identity:
    """
    A registered account as seen by the credential core.

    :ivar id: Directory-assigned identifier.
    :ivar email: Lower-cased, trimmed email (unique).
    :ivar password_hash: bcrypt hash; excluded from ``repr``.
    :ivar first_name: Given name.
    :ivar last_name: Family name.
    :ivar is_active: Inactive identities cannot log in or authenticate.
    :ivar is_verified: Email verification flag (informational).
    :ivar created_at: Creation instant (UTC).
    :ivar updated_at: Last modification instant (UTC).
    :ivar last_login: Last successful login (UTC) or ``None``.
    """

    id: int
    email: str
    password_hash: str = field(repr=False)
    first_name: str
    last_name: str
    is_active: bool
    is_verified: bool
    created_at: datetime
    updated_at: datetime
    last_login: datetime | None = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Identity:
        """
        Validate and build an identity from a storage mapping.

        Timestamps may be ``datetime`` objects or ISO-8601 strings.

        :raises ValueError: On unknown or missing fields.
        """
        names = {f.name for f in fields(cls)}
        unknown = set(record) - names
        if unknown:
            raise ValueError(f"Unknown identity fields: {sorted(unknown)}")
        missing = names - set(record) - {"last_login"}
        if missing:
            raise ValueError(f"Missing identity fields: {sorted(missing)}")

        created_at = _parse_ts(record["created_at"])
        updated_at = _parse_ts(record["updated_at"])
        if created_at is None or updated_at is None:
            raise ValueError("Identity timestamps must be set")
        return cls(
            id=int(record["id"]),
            email=str(record["email"]),
            password_hash=str(record["password_hash"]),
            first_name=str(record["first_name"]),
            last_name=str(record["last_name"]),
            is_active=bool(record["is_active"]),
            is_verified=bool(record["is_verified"]),
            created_at=created_at,
            updated_at=updated_at,
            last_login=_parse_ts(record.get("last_login")),
        )

    def to_record(self) -> dict[str, Any]:
        """Serialize to the flat-file representation (hash included)."""
        return {
            "id": self.id,
            "email": self.email,
            "password_hash": self.password_hash,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "is_active": self.is_active,
            "is_verified": self.is_verified,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "last_login": self.last_login.isoformat() if self.last_login else None,
        }


class UserDirectory(Protocol):
    """
    Identity store consumed by the credential core.

    Lookups by email normalize the address first. Storage failures raise
    :class:`~authcore.services._shared.errors.StorageUnavailable`.
    """

    def find_by_email(self, email: str) -> Identity | None: ...

    def find_by_id(self, identity_id: int) -> Identity | None: ...

    def create(
        self, *, email: str, password_hash: str, first_name: str, last_name: str
    ) -> Identity:
        """
        Persist a new active identity.

        :raises DuplicateIdentity: If the email is already registered.
        """

    def touch_last_login(self, identity_id: int) -> None: ...


class InMemoryUserDirectory(UserDirectory):
    """
    Dictionary-backed directory.

    .. note::
       Intended for unit tests; ids are sequential starting at 1.
    """

    def __init__(self) -> None:
        self._by_id: dict[int, Identity] = {}
        self._seq = 0
        self._lock = threading.Lock()

    def find_by_email(self, email: str) -> Identity | None:
        key = normalize_email(email)
        with self._lock:
            return next((i for i in self._by_id.values() if i.email == key), None)

    def find_by_id(self, identity_id: int) -> Identity | None:
        with self._lock:
            return self._by_id.get(identity_id)

    def create(
        self, *, email: str, password_hash: str, first_name: str, last_name: str
    ) -> Identity:
        key = normalize_email(email)
        with self._lock:
            if any(i.email == key for i in self._by_id.values()):
                raise DuplicateIdentity()
            self._seq += 1
            now = utcnow()
            identity = Identity(
                id=self._seq,
                email=key,
                password_hash=password_hash,
                first_name=first_name,
                last_name=last_name,
                is_active=True,
                is_verified=False,
                created_at=now,
                updated_at=now,
            )
            self._by_id[identity.id] = identity
            return identity

    def touch_last_login(self, identity_id: int) -> None:
        with self._lock:
            current = self._by_id.get(identity_id)
            if current is None:
                return
            now = utcnow()
            self._by_id[identity_id] = replace(current, last_login=now, updated_at=now)

    def deactivate(self, identity_id: int) -> None:
        """Mark an identity inactive (test helper)."""
        with self._lock:
            current = self._by_id[identity_id]
            self._by_id[identity_id] = replace(current, is_active=False)

    def remove(self, identity_id: int) -> None:
        """Drop an identity entirely (test helper)."""
        with self._lock:
            self._by_id.pop(identity_id, None)
