"""Flask CLI commands for secrets, schema and refresh-token maintenance."""

from __future__ import annotations

import logging
import secrets
from datetime import UTC, datetime
from pathlib import Path

import click
from flask import current_app
from flask.cli import with_appcontext

from authcore.api.deps import get_container
from authcore.core.extensions import db
from authcore.infra.file import FileTokenLedger, FileUserDirectory
from authcore.models import RefreshToken, User
from authcore.services._shared.errors import StorageUnavailable
from authcore.services._shared.ports.token_ledger import utcnow
from authcore.uow import SQLAlchemyUnitOfWork

LOGGER = logging.getLogger(__name__)

SECRET_BYTES = 32


def render_env(access_secret: str, refresh_secret: str) -> str:
    """Return the text of a production ``.env`` file carrying both keys."""
    stamp = datetime.now(UTC).isoformat(timespec="seconds")
    return (
        "# Generated environment configuration\n"
        f"# Generated on: {stamp}\n"
        "# Never commit this file to version control.\n"
        "\n"
        "APP_ENV=production\n"
        "\n"
        "# Token signing keys; keep them secret and distinct\n"
        f"JWT_ACCESS_SECRET={access_secret}\n"
        f"JWT_REFRESH_SECRET={refresh_secret}\n"
        "ACCESS_TOKEN_EXPIRES_MINUTES=15\n"
        "\n"
        "# Password hashing\n"
        "BCRYPT_ROUNDS=12\n"
        "\n"
        "# Storage: database | file\n"
        "STORAGE_BACKEND=database\n"
        "DATA_DIR=./data\n"
    )


def _echo_summary(title: str, counters: dict[str, int]) -> None:
    """Pretty-print a small ``name=value`` summary."""
    click.echo(f"{title}:")
    width = max(len(name) for name in counters)
    for name, value in counters.items():
        click.echo(f"  {name.ljust(width)}  {value:>4}")


@click.group("auth")
def auth_cli() -> None:
    """Credential maintenance commands."""


@auth_cli.command("generate-secrets")
@click.option(
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the .env file here instead of printing it.",
)
@click.option("--force", is_flag=True, help="Overwrite an existing output file.")
def generate_secrets_command(output: Path | None, force: bool) -> None:
    """Generate two random signing keys and a production .env."""
    access_secret = secrets.token_hex(SECRET_BYTES)
    refresh_secret = secrets.token_hex(SECRET_BYTES)
    content = render_env(access_secret, refresh_secret)

    if output is None:
        click.echo(content, nl=False)
        return
    if output.exists() and not force:
        raise click.UsageError(f"{output} already exists; pass --force to overwrite it.")
    output.write_text(content, encoding="utf-8")
    LOGGER.info("Signing keys written to %s", output)
    click.echo(f"Environment file written: {output}")
    click.echo(f"  JWT_ACCESS_SECRET:  {access_secret[:16]}...")
    click.echo(f"  JWT_REFRESH_SECRET: {refresh_secret[:16]}...")


@auth_cli.command("init-db")
@with_appcontext
def init_db_command() -> None:
    """Create the ``users`` and ``refresh_tokens`` tables when missing."""
    db.create_all()
    LOGGER.info("Database schema created")
    click.echo("Database tables created.")


@auth_cli.command("sweep-tokens")
@with_appcontext
def sweep_tokens_command() -> None:
    """Delete expired refresh tokens from the configured ledger."""
    try:
        removed = get_container().service.sweep_expired_tokens()
    except StorageUnavailable as exc:
        raise click.ClickException(f"Sweep failed: {exc}") from exc
    click.echo(f"Removed {removed} expired refresh token(s).")


@auth_cli.command("migrate-to-database")
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Folder holding users.json and refresh_tokens.json (defaults to DATA_DIR).",
)
@with_appcontext
def migrate_to_database_command(data_dir: Path | None) -> None:
    """Copy the JSON file store into the database.

    Users whose email already exists are skipped and their tokens are attached
    to the existing row. Identity ids are remapped to the database ids.
    Expired or already present refresh tokens are skipped.
    """
    source = data_dir or Path(current_app.config.get("DATA_DIR", "./data"))
    timeout = float(current_app.config.get("STORAGE_TIMEOUT_SECONDS", 5.0))
    try:
        identities = FileUserDirectory(source, timeout=timeout).all()
        records = FileTokenLedger(source, timeout=timeout).all()
    except StorageUnavailable as exc:
        raise click.ClickException(f"Cannot read {source}: {exc}") from exc

    counters = {
        "users_created": 0,
        "users_existing": 0,
        "tokens_created": 0,
        "tokens_skipped": 0,
    }
    id_map: dict[int, int] = {}
    now = utcnow()
    try:
        with SQLAlchemyUnitOfWork(lambda: db.session) as uow:
            for identity in identities:
                existing = uow.users.get_by_email(identity.email)
                if existing is not None:
                    id_map[identity.id] = existing.id
                    counters["users_existing"] += 1
                    continue
                user = uow.users.add(
                    User(
                        email=identity.email,
                        password_hash=identity.password_hash,
                        first_name=identity.first_name,
                        last_name=identity.last_name,
                        is_active=identity.is_active,
                        is_verified=identity.is_verified,
                        created_at=identity.created_at,
                        updated_at=identity.updated_at,
                        last_login=identity.last_login,
                    )
                )
                id_map[identity.id] = user.id
                counters["users_created"] += 1

            for rec in records:
                user_id = id_map.get(rec.identity_id)
                if (
                    user_id is None
                    or not rec.is_active(now)
                    or uow.refresh_tokens.get_by_token(user_id, rec.token_value) is not None
                ):
                    counters["tokens_skipped"] += 1
                    continue
                uow.refresh_tokens.add(
                    RefreshToken(
                        user_id=user_id,
                        token=rec.token_value,
                        expires_at=rec.expires_at,
                        created_at=rec.created_at,
                    )
                )
                counters["tokens_created"] += 1
    except Exception as exc:  # pragma: no cover - CLI safeguard
        raise click.ClickException(f"Migration failed: {exc}") from exc

    LOGGER.info("File store migrated from %s", source)
    _echo_summary("Migration summary", counters)
