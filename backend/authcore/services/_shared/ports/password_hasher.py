from __future__ import annotations

from typing import Protocol


class PasswordHasher(Protocol):
    """
    Port for one-way password hashing.

    Implementations embed the salt and work factor in the returned string, so
    no separate salt storage is needed. These are the only calls allowed to
    see a plaintext password.
    """

    def hash(self, plaintext: str) -> str: ...

    def verify(self, plaintext: str, hashed: str) -> bool: ...
