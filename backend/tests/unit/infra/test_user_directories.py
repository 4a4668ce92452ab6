"""
Behavioural tests shared by every UserDirectory backend.

The in-memory, JSON file and SQL directories are checked against the same
scenarios.
"""

from __future__ import annotations

import json

import pytest
from authcore.core.extensions import db
from authcore.infra.file import FileUserDirectory
from authcore.infra.sql import SqlUserDirectory
from authcore.services._shared.errors import DuplicateIdentity
from authcore.services._shared.ports import Identity, InMemoryUserDirectory


@pytest.fixture(params=["memory", "file", "sql"])
def directory(request, tmp_path, session):
    if request.param == "memory":
        return InMemoryUserDirectory()
    if request.param == "file":
        return FileUserDirectory(tmp_path)
    return SqlUserDirectory(lambda: db.session)


def _create(directory, email: str = "ada@example.com") -> Identity:
    return directory.create(
        email=email,
        password_hash="$2b$04$hash",
        first_name="Ada",
        last_name="Lovelace",
    )


def test_create_returns_active_unverified_identity(directory):
    identity = _create(directory, "  Ada@Example.COM ")

    assert identity.id > 0
    assert identity.email == "ada@example.com"
    assert identity.is_active is True
    assert identity.is_verified is False
    assert identity.last_login is None
    assert identity.created_at.tzinfo is not None


def test_find_by_email_normalizes_lookup(directory):
    created = _create(directory)
    found = directory.find_by_email(" ADA@example.com")
    assert found is not None
    assert found.id == created.id
    assert directory.find_by_email("nobody@example.com") is None


def test_find_by_id(directory):
    created = _create(directory)
    assert directory.find_by_id(created.id).email == "ada@example.com"
    assert directory.find_by_id(created.id + 1000) is None


def test_duplicate_email_is_rejected(directory):
    _create(directory)
    with pytest.raises(DuplicateIdentity):
        _create(directory, "ADA@example.com")


def test_ids_are_distinct(directory):
    first = _create(directory, "one@example.com")
    second = _create(directory, "two@example.com")
    assert first.id != second.id


def test_touch_last_login(directory):
    created = _create(directory)
    directory.touch_last_login(created.id)
    refreshed = directory.find_by_id(created.id)
    assert refreshed.last_login is not None
    assert refreshed.last_login >= created.created_at


def test_touch_last_login_unknown_id_is_noop(directory):
    directory.touch_last_login(424242)


def test_password_hash_hidden_from_repr(directory):
    identity = _create(directory)
    assert "$2b$" not in repr(identity)


def test_file_directory_persists_flat_records(tmp_path):
    directory = FileUserDirectory(tmp_path)
    _create(directory)

    rows = json.loads((tmp_path / "users.json").read_text(encoding="utf-8"))
    assert rows[0]["email"] == "ada@example.com"
    assert rows[0]["password_hash"] == "$2b$04$hash"
    assert rows[0]["last_login"] is None
    assert [i.email for i in FileUserDirectory(tmp_path).all()] == ["ada@example.com"]


def test_file_directory_ids_follow_max_existing(tmp_path):
    directory = FileUserDirectory(tmp_path)
    first = _create(directory, "one@example.com")
    second = _create(directory, "two@example.com")
    assert (first.id, second.id) == (1, 2)


LEGACY_ROW = {
    "id": 3,
    "email": "Grace@Example.com",
    "password": "$2b$12$legacyhash",
    "first_name": "Grace",
    "last_name": "Hopper",
    "is_verified": False,
    "is_active": True,
    "created_at": "2025-06-01T10:15:30.123Z",
    "updated_at": "2025-06-02T08:00:00.000Z",
    "last_login": None,
}


def test_file_directory_reads_legacy_password_field(tmp_path):
    (tmp_path / "users.json").write_text(json.dumps([LEGACY_ROW]), encoding="utf-8")
    directory = FileUserDirectory(tmp_path)

    identity = directory.find_by_email("grace@example.com")
    assert identity is not None
    assert identity.id == 3
    assert identity.email == "grace@example.com"
    assert identity.password_hash == "$2b$12$legacyhash"
    assert identity.created_at.tzinfo is not None
    assert identity.last_login is None
    assert directory.all() == [identity]

    with pytest.raises(DuplicateIdentity):
        _create(directory, "GRACE@example.com")


def test_file_directory_rewrites_legacy_row_on_update(tmp_path):
    (tmp_path / "users.json").write_text(json.dumps([LEGACY_ROW]), encoding="utf-8")
    FileUserDirectory(tmp_path).touch_last_login(3)

    rows = json.loads((tmp_path / "users.json").read_text(encoding="utf-8"))
    assert "password" not in rows[0]
    assert rows[0]["password_hash"] == "$2b$12$legacyhash"
    assert rows[0]["last_login"] is not None
