"""Explicit wiring of the credential core collaborators."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

import redis  # type: ignore[import-untyped]

from authcore.core.config import PLACEHOLDER_ACCESS_SECRET, PLACEHOLDER_REFRESH_SECRET
from authcore.infra.crypto import BcryptPasswordHasher
from authcore.infra.file import FileTokenLedger, FileUserDirectory
from authcore.infra.jwt import JWTTokenCodec
from authcore.infra.redis import RedisTokenLedger
from authcore.infra.sql import SqlTokenLedger, SqlUserDirectory
from authcore.services._shared.ports import (
    PasswordHasher,
    TokenCodec,
    TokenLedger,
    UserDirectory,
)
from authcore.services.auth import AuthGateway, CredentialService
from authcore.uow import SessionFactory

logger = logging.getLogger(__name__)

STORAGE_BACKENDS = frozenset({"database", "file"})
LEDGER_BACKENDS = frozenset({"database", "file", "redis"})


@dataclass(slots=True)
class AuthContainer:
    """
    One instance per process, built from configuration.

    :param hasher: Password hasher.
    :param codec: Token codec.
    :param directory: User directory.
    :param ledger: Refresh-token ledger.
    :param redis_client: Client owned by the container (redis ledger only).
    """

    hasher: PasswordHasher
    codec: TokenCodec
    directory: UserDirectory
    ledger: TokenLedger
    redis_client: redis.Redis | None = None
    service: CredentialService = field(init=False)
    gateway: AuthGateway = field(init=False)

    def __post_init__(self) -> None:
        self.service = CredentialService(
            directory=self.directory,
            ledger=self.ledger,
            hasher=self.hasher,
            codec=self.codec,
        )
        self.gateway = AuthGateway(codec=self.codec, directory=self.directory)

    @classmethod
    def from_config(
        cls,
        config: Mapping[str, Any],
        *,
        session_factory: SessionFactory | None = None,
    ) -> AuthContainer:
        """
        Build every collaborator from a Flask-style config mapping.

        :param config: Mapping with the ``JWT_*``, ``BCRYPT_ROUNDS`` and
            storage keys of :class:`~authcore.core.config.BaseConfig`.
        :param session_factory: Required by the ``database`` backends.
        :raises ValueError: Invalid backend name, equal or empty signing keys,
            or placeholder keys in production.
        """
        access_secret = str(config.get("JWT_ACCESS_SECRET") or "")
        refresh_secret = str(config.get("JWT_REFRESH_SECRET") or "")
        if config.get("ENV_NAME") == "production" and (
            access_secret == PLACEHOLDER_ACCESS_SECRET
            or refresh_secret == PLACEHOLDER_REFRESH_SECRET
        ):
            raise ValueError(
                "JWT_ACCESS_SECRET and JWT_REFRESH_SECRET must be set in production "
                "(run `flask auth generate-secrets`)"
            )

        codec = JWTTokenCodec(
            access_secret=access_secret,
            refresh_secret=refresh_secret,
            algorithm=str(config.get("JWT_ALGORITHM", "HS256")),
            issuer=str(config.get("JWT_ISSUER", "user-auth-system")),
            audience=str(config.get("JWT_AUDIENCE", "user-auth-client")),
            access_ttl=timedelta(minutes=int(config.get("ACCESS_TOKEN_EXPIRES_MINUTES", 15))),
        )
        hasher = BcryptPasswordHasher(rounds=int(config.get("BCRYPT_ROUNDS", 12)))

        storage = str(config.get("STORAGE_BACKEND") or "database").lower()
        ledger_backend = str(config.get("LEDGER_BACKEND") or storage).lower()
        if storage not in STORAGE_BACKENDS:
            raise ValueError(f"Unknown STORAGE_BACKEND {storage!r}")
        if ledger_backend not in LEDGER_BACKENDS:
            raise ValueError(f"Unknown LEDGER_BACKEND {ledger_backend!r}")

        timeout = float(config.get("STORAGE_TIMEOUT_SECONDS", 5.0))
        data_dir = str(config.get("DATA_DIR", "./data"))

        directory: UserDirectory
        if storage == "file":
            directory = FileUserDirectory(data_dir, timeout=timeout)
        else:
            directory = SqlUserDirectory(_require(session_factory, storage))

        ledger: TokenLedger
        redis_client: redis.Redis | None = None
        if ledger_backend == "file":
            ledger = FileTokenLedger(data_dir, timeout=timeout)
        elif ledger_backend == "redis":
            redis_url = config.get("REDIS_URL")
            if not redis_url:
                raise ValueError("LEDGER_BACKEND=redis requires REDIS_URL")
            redis_client = redis.Redis.from_url(
                str(redis_url),
                socket_timeout=timeout,
                socket_connect_timeout=timeout,
            )
            ledger = RedisTokenLedger(redis_client)
        else:
            ledger = SqlTokenLedger(_require(session_factory, ledger_backend))

        logger.info("Auth container built: storage=%s ledger=%s", storage, ledger_backend)
        return cls(
            hasher=hasher,
            codec=codec,
            directory=directory,
            ledger=ledger,
            redis_client=redis_client,
        )

    def close(self) -> None:
        """Release connections owned by the container."""
        if self.redis_client is not None:
            self.redis_client.close()
            self.redis_client = None


def _require(session_factory: SessionFactory | None, backend: str) -> SessionFactory:
    if session_factory is None:
        raise ValueError(f"The {backend!r} backend needs a session factory")
    return session_factory
