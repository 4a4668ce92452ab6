# authcore/infra/crypto/bcrypt_password_hasher.py
from __future__ import annotations

import logging
from dataclasses import dataclass

import bcrypt

from authcore.services._shared.ports import PasswordHasher

logger = logging.getLogger(__name__)

#: bcrypt only reads the first 72 bytes of its input.
BCRYPT_MAX_BYTES = 72


@dataclass(slots=True)
class BcryptPasswordHasher(PasswordHasher):
    """
    bcrypt adapter for :class:`PasswordHasher`.

    The salt and cost are embedded in the ``$2b$<rounds>$...`` output.

    :param rounds: Work factor (log2 iterations). 12 in production.
    """

    rounds: int = 12

    def __post_init__(self) -> None:
        if not 4 <= self.rounds <= 31:
            raise ValueError("bcrypt rounds must be between 4 and 31")

    def hash(self, plaintext: str) -> str:
        """
        Hash a password with a fresh salt.

        :raises ValueError: If the encoded password exceeds 72 bytes.
        """
        raw = plaintext.encode("utf-8")
        if len(raw) > BCRYPT_MAX_BYTES:
            raise ValueError("Password exceeds bcrypt's 72-byte limit")
        return bcrypt.hashpw(raw, bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plaintext: str, hashed: str) -> bool:
        raw = plaintext.encode("utf-8")
        if len(raw) > BCRYPT_MAX_BYTES:
            return False
        try:
            return bcrypt.checkpw(raw, hashed.encode("utf-8"))
        except ValueError:
            logger.warning("Stored password hash is malformed")
            return False
