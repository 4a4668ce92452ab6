"""Password hashing adapters."""

from .bcrypt_password_hasher import BcryptPasswordHasher

__all__ = ["BcryptPasswordHasher"]
