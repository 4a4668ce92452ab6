"""Marshmallow schemas for request validation and response shaping."""

from .auth import (
    AuthResultSchema,
    LoginSchema,
    LogoutSchema,
    RefreshTokenSchema,
    RegisterSchema,
    SessionSchema,
    TokenPairSchema,
)
from .user import UserSchema

__all__ = [
    "AuthResultSchema",
    "LoginSchema",
    "LogoutSchema",
    "RefreshTokenSchema",
    "RegisterSchema",
    "SessionSchema",
    "TokenPairSchema",
    "UserSchema",
]
