"""
authcore.services._shared.ports
===============================

Collection of *ports* (hexagonal interfaces) that define the contracts
between the credential core and its storage and crypto infrastructure.

Modules
-------
- :mod:`password_hasher`:
    Defines :class:`~.PasswordHasher`: one-way hashing and verification.

- :mod:`token_codec`:
    Defines :class:`~.TokenCodec` and :class:`~.TokenClaims`: signing and
    verification of access and refresh tokens.

- :mod:`token_ledger`:
    Defines :class:`~.TokenLedger`, :class:`~.LedgerRecord` and the
    :class:`~.InMemoryTokenLedger` double: durable refresh-token records
    with atomic rotation.

- :mod:`user_directory`:
    Defines :class:`~.UserDirectory`, :class:`~.Identity` and the
    :class:`~.InMemoryUserDirectory` double.

Design Notes
------------
Concrete adapters (SQL, flat files, Redis, bcrypt, PyJWT) implement these
interfaces under ``authcore.infra`` and are wired by
:class:`authcore.container.AuthContainer`.
"""

from __future__ import annotations

from .password_hasher import PasswordHasher
from .token_codec import ACCESS_TOKEN_TYPE, REFRESH_TOKEN_TYPE, TokenClaims, TokenCodec
from .token_ledger import (
    REFRESH_TOKEN_LIFETIME,
    InMemoryTokenLedger,
    LedgerRecord,
    TokenLedger,
)
from .user_directory import (
    Identity,
    InMemoryUserDirectory,
    UserDirectory,
    normalize_email,
)

__all__ = [
    "PasswordHasher",
    "TokenCodec",
    "TokenClaims",
    "ACCESS_TOKEN_TYPE",
    "REFRESH_TOKEN_TYPE",
    "TokenLedger",
    "LedgerRecord",
    "InMemoryTokenLedger",
    "REFRESH_TOKEN_LIFETIME",
    "UserDirectory",
    "Identity",
    "InMemoryUserDirectory",
    "normalize_email",
]
