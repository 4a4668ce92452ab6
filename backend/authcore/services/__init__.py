"""Service layer public API.

This package exposes the essential building blocks for the service layer so
that callers can import from :mod:`authcore.services` without knowing the
internal structure.

Re-exports
----------
- Credential service (from ``authcore.services.auth``)
    * :class:`CredentialService`, :class:`AuthGateway`, :class:`IdentityContext`
    * DTOs: :class:`RegisterIn`, :class:`LoginIn`, :class:`RefreshIn`,
      :class:`LogoutIn`, :class:`IdentityPublicOut`, :class:`TokenPairOut`,
      :class:`AuthResultOut`
"""

from __future__ import annotations

from .auth import (
    AuthGateway,
    AuthResultOut,
    CredentialService,
    IdentityContext,
    IdentityPublicOut,
    LoginIn,
    LogoutIn,
    RefreshIn,
    RegisterIn,
    TokenPairOut,
)

__all__ = [
    "CredentialService",
    "AuthGateway",
    "IdentityContext",
    "RegisterIn",
    "LoginIn",
    "RefreshIn",
    "LogoutIn",
    "IdentityPublicOut",
    "TokenPairOut",
    "AuthResultOut",
]
