"""Integration tests for the ``flask auth`` command group."""

from __future__ import annotations

import json
import re
from datetime import UTC, datetime, timedelta

from authcore.infra.file import FileTokenLedger, FileUserDirectory
from authcore.models import RefreshToken, User
from authcore.services._shared.ports.token_ledger import REFRESH_TOKEN_LIFETIME
from sqlalchemy import func, select
from tests.factories.refresh_token import RefreshTokenFactory
from tests.factories.user import UserFactory

HEX64 = re.compile(r"^[0-9a-f]{64}$")


def _env_values(text: str) -> dict[str, str]:
    return dict(
        line.split("=", 1) for line in text.splitlines() if line and not line.startswith("#")
    )


# ----------------------------- generate-secrets ---------------------------- #
def test_generate_secrets_prints_env(cli_runner) -> None:
    result = cli_runner.invoke(args=["auth", "generate-secrets"])
    assert result.exit_code == 0, result.output

    values = _env_values(result.output)
    assert HEX64.match(values["JWT_ACCESS_SECRET"])
    assert HEX64.match(values["JWT_REFRESH_SECRET"])
    assert values["JWT_ACCESS_SECRET"] != values["JWT_REFRESH_SECRET"]
    assert values["APP_ENV"] == "production"
    assert values["BCRYPT_ROUNDS"] == "12"


def test_generate_secrets_writes_file_and_refuses_overwrite(cli_runner, tmp_path) -> None:
    target = tmp_path / ".env"
    first = cli_runner.invoke(args=["auth", "generate-secrets", "--output", str(target)])
    assert first.exit_code == 0, first.output
    original = target.read_text(encoding="utf-8")
    assert "JWT_ACCESS_SECRET=" in original
    # Only a prefix of each key is echoed
    assert _env_values(original)["JWT_ACCESS_SECRET"] not in first.output

    refused = cli_runner.invoke(args=["auth", "generate-secrets", "--output", str(target)])
    assert refused.exit_code != 0
    assert target.read_text(encoding="utf-8") == original

    forced = cli_runner.invoke(
        args=["auth", "generate-secrets", "--output", str(target), "--force"]
    )
    assert forced.exit_code == 0
    assert target.read_text(encoding="utf-8") != original


# ------------------------------ init-db / sweep ---------------------------- #
def test_init_db_is_idempotent(cli_runner) -> None:
    result = cli_runner.invoke(args=["auth", "init-db"])
    assert result.exit_code == 0, result.output
    assert "created" in result.output


def test_sweep_tokens_removes_expired(cli_runner, session) -> None:
    now = datetime.now(UTC)
    user = UserFactory()
    RefreshTokenFactory(user=user, token="old", expires_at=now - timedelta(minutes=1))
    RefreshTokenFactory(user=user, token="live")
    session.commit()

    result = cli_runner.invoke(args=["auth", "sweep-tokens"])
    assert result.exit_code == 0, result.output
    assert "Removed 1 expired refresh token(s)." in result.output
    tokens = session.execute(select(RefreshToken.token)).scalars().all()
    assert tokens == ["live"]


# ---------------------------- migrate-to-database -------------------------- #
def _seed_file_store(data_dir) -> dict[str, int]:
    directory = FileUserDirectory(data_dir)
    ledger = FileTokenLedger(data_dir)
    alice = directory.create(
        email="alice@example.com", password_hash="$2b$04$alice", first_name="Alice", last_name="A"
    )
    taken = directory.create(
        email="taken@example.com", password_hash="$2b$04$file", first_name="Dup", last_name="D"
    )
    ledger.store(alice.id, "alice-token")
    ledger.store(taken.id, "taken-token")
    FileTokenLedger(data_dir, lifetime=timedelta(seconds=-1)).store(alice.id, "expired-token")
    return {"alice": alice.id, "taken": taken.id}


def test_migrate_to_database(cli_runner, session, tmp_path) -> None:
    # Occupy ids and one email so remapping is observable
    existing_id = UserFactory(email="taken@example.com").id
    UserFactory()
    UserFactory()
    session.commit()
    _seed_file_store(tmp_path)

    result = cli_runner.invoke(args=["auth", "migrate-to-database", "--data-dir", str(tmp_path)])
    assert result.exit_code == 0, result.output
    assert re.search(r"users_created\s+1", result.output)
    assert re.search(r"users_existing\s+1", result.output)
    assert re.search(r"tokens_created\s+2", result.output)
    assert re.search(r"tokens_skipped\s+1", result.output)

    alice = session.execute(select(User).where(User.email == "alice@example.com")).scalar_one()
    assert alice.password_hash == "$2b$04$alice"
    owners = dict(session.execute(select(RefreshToken.token, RefreshToken.user_id)).all())
    assert owners == {"alice-token": alice.id, "taken-token": existing_id}
    row = session.execute(select(RefreshToken).where(RefreshToken.token == "alice-token")).scalar_one()
    created = row.created_at.replace(tzinfo=UTC)
    expires = row.expires_at.replace(tzinfo=UTC)
    assert expires - created == REFRESH_TOKEN_LIFETIME

    rerun = cli_runner.invoke(args=["auth", "migrate-to-database", "--data-dir", str(tmp_path)])
    assert rerun.exit_code == 0
    assert re.search(r"users_created\s+0", rerun.output)
    assert session.execute(select(func.count(RefreshToken.id))).scalar_one() == 2


def test_migrate_to_database_reports_corrupt_store(cli_runner, tmp_path) -> None:
    (tmp_path / "users.json").write_text(json.dumps({"not": "a list"}), encoding="utf-8")
    result = cli_runner.invoke(args=["auth", "migrate-to-database", "--data-dir", str(tmp_path)])
    assert result.exit_code != 0
    assert "Cannot read" in result.output


def test_migrate_to_database_reads_legacy_files(cli_runner, session, tmp_path) -> None:
    users = [
        {
            "id": 1,
            "email": "Legacy@Example.com",
            "password": "$2b$12$legacyhash",
            "first_name": "Lee",
            "last_name": "Gacy",
            "is_verified": False,
            "is_active": True,
            "created_at": "2025-06-01T10:15:30.123Z",
            "updated_at": "2025-06-01T10:15:30.123Z",
            "last_login": None,
        }
    ]
    expires = (datetime.now(UTC) + timedelta(days=10)).isoformat().replace("+00:00", "Z")
    tokens = [
        {
            "id": 1,
            "user_id": 1,
            "token": "legacy-token",
            "expires_at": expires,
            "created_at": "2025-06-01T10:15:30.123Z",
        }
    ]
    (tmp_path / "users.json").write_text(json.dumps(users), encoding="utf-8")
    (tmp_path / "refresh_tokens.json").write_text(json.dumps(tokens), encoding="utf-8")

    result = cli_runner.invoke(args=["auth", "migrate-to-database", "--data-dir", str(tmp_path)])
    assert result.exit_code == 0, result.output
    assert re.search(r"users_created\s+1", result.output)
    assert re.search(r"tokens_created\s+1", result.output)

    user = session.execute(select(User).where(User.email == "legacy@example.com")).scalar_one()
    assert user.password_hash == "$2b$12$legacyhash"
    assert user.last_login is None
    owner = session.execute(
        select(RefreshToken.user_id).where(RefreshToken.token == "legacy-token")
    ).scalar_one()
    assert owner == user.id
