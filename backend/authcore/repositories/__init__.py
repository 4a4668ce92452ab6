"""Repository package exports."""

from .base import BaseRepository
from .refresh_token import RefreshTokenRepository
from .user import UserRepository

__all__ = [
    "BaseRepository",
    "RefreshTokenRepository",
    "UserRepository",
]
