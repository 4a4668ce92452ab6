"""Credential service, request gateway and their DTOs."""

from __future__ import annotations

from .dto import (
    AuthResultOut,
    IdentityPublicOut,
    LoginIn,
    LogoutIn,
    RefreshIn,
    RegisterIn,
    TokenPairOut,
)
from .gateway import AuthGateway, IdentityContext, extract_bearer
from .service import CredentialService

__all__ = [
    "CredentialService",
    "AuthGateway",
    "IdentityContext",
    "extract_bearer",
    "RegisterIn",
    "LoginIn",
    "RefreshIn",
    "LogoutIn",
    "IdentityPublicOut",
    "TokenPairOut",
    "AuthResultOut",
]
