"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and never import Flask, HTTP, or
SQLAlchemy. Every authentication failure carries an :class:`AuthErrorKind`
so callers can branch on ``err.kind`` instead of catching broad types.

The translation to HTTP responses (RFC 7807) is handled by
``authcore/core/errors.py``.
"""

from __future__ import annotations

from enum import Enum
from typing import ClassVar


class AuthErrorKind(Enum):
    """Closed set of failure kinds surfaced by the credential core."""

    INVALID_CREDENTIALS = "invalid_credentials"
    DUPLICATE_IDENTITY = "duplicate_identity"
    INVALID_TOKEN = "invalid_token"
    UNKNOWN_IDENTITY = "unknown_identity"
    MISSING_TOKEN = "missing_token"
    STORAGE_UNAVAILABLE = "storage_unavailable"


# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - They can be safely raised from stores, codecs, or services.
    - The API layer translates them to problem responses.
    """

    pass


class AuthError(ServiceError):
    """
    Base class for the credential core failures.

    :cvar kind: Error kind bound by each subclass.
    :param message: Optional internal message (never sent to clients verbatim).
    :type message: str | None
    """

    kind: ClassVar[AuthErrorKind]
    default_message: ClassVar[str] = "Authentication failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


# --------------------------------------------------------------------------- #
# Specific errors
# --------------------------------------------------------------------------- #


class InvalidCredentials(AuthError):
    """Login failed; identical for unknown email and wrong password."""

    kind = AuthErrorKind.INVALID_CREDENTIALS
    default_message = "Invalid email or password"


class DuplicateIdentity(AuthError):
    """Registration conflict on the email natural key."""

    kind = AuthErrorKind.DUPLICATE_IDENTITY
    default_message = "User with this email already exists"


class InvalidToken(AuthError):
    """Bad signature, malformed, expired, wrong type, or revoked token."""

    kind = AuthErrorKind.INVALID_TOKEN
    default_message = "Invalid or expired token"


class UnknownIdentity(AuthError):
    """Token verified but its subject no longer exists or is inactive."""

    kind = AuthErrorKind.UNKNOWN_IDENTITY
    default_message = "User not found"


class MissingToken(AuthError):
    """No bearer credential was presented."""

    kind = AuthErrorKind.MISSING_TOKEN
    default_message = "Access token is required"


class StorageUnavailable(AuthError):
    """Ledger or directory I/O failed; the enclosing operation is aborted."""

    kind = AuthErrorKind.STORAGE_UNAVAILABLE
    default_message = "Storage temporarily unavailable"


__all__ = [
    "AuthErrorKind",
    "ServiceError",
    "AuthError",
    "InvalidCredentials",
    "DuplicateIdentity",
    "InvalidToken",
    "UnknownIdentity",
    "MissingToken",
    "StorageUnavailable",
]
