"""
DTOs for the credential service.

Data Transfer Objects isolate the service layer from the transport and from
storage records, giving clear input/output contracts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from authcore.services._shared.ports import Identity

# --------------------------------------------------------------------------- #
# Input DTOs
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class RegisterIn:
    """
    Input DTO for registration.

    :param email: Login email (normalized by the directory).
    :type email: str
    :param password: Raw password, hashed before it reaches any store.
    :type password: str
    :param first_name: Given name.
    :type first_name: str
    :param last_name: Family name.
    :type last_name: str
    """

    email: str
    password: str = field(repr=False)
    first_name: str
    last_name: str


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param email: User email.
    :type email: str
    :param password: Raw password (to be verified).
    :type password: str
    """

    email: str
    password: str = field(repr=False)


@dataclass(frozen=True, slots=True)
class RefreshIn:
    """
    Input DTO for token refresh.

    :param refresh_token: Encoded refresh JWT.
    :type refresh_token: str
    """

    refresh_token: str


@dataclass(frozen=True, slots=True)
class LogoutIn:
    """
    Input DTO for logout.

    :param identity_id: Authenticated caller.
    :type identity_id: int
    :param refresh_token: Encoded refresh JWT to revoke.
    :type refresh_token: str
    """

    identity_id: int
    refresh_token: str


# --------------------------------------------------------------------------- #
# Output DTOs
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class IdentityPublicOut:
    """
    Public-safe projection of an identity. Never carries the password hash.

    :param id: User identifier.
    :type id: int
    :param email: Email address.
    :type email: str
    :param first_name: Given name.
    :type first_name: str
    :param last_name: Family name.
    :type last_name: str
    :param is_verified: Email verification flag.
    :type is_verified: bool
    :param is_active: Account status.
    :type is_active: bool
    :param created_at: Creation instant.
    :type created_at: datetime
    :param last_login: Last login instant, if any.
    :type last_login: datetime | None
    """

    id: int
    email: str
    first_name: str
    last_name: str
    is_verified: bool
    is_active: bool
    created_at: datetime
    last_login: datetime | None

    @classmethod
    def from_identity(cls, identity: Identity) -> IdentityPublicOut:
        return cls(
            id=identity.id,
            email=identity.email,
            first_name=identity.first_name,
            last_name=identity.last_name,
            is_verified=identity.is_verified,
            is_active=identity.is_active,
            created_at=identity.created_at,
            last_login=identity.last_login,
        )


@dataclass(frozen=True, slots=True)
class TokenPairOut:
    """
    Output DTO with access and refresh tokens.

    :param access_token: Encoded access JWT.
    :type access_token: str
    :param refresh_token: Encoded refresh JWT.
    :type refresh_token: str
    :param token_type: Always ``"Bearer"``.
    :type token_type: str
    """

    access_token: str
    refresh_token: str
    token_type: str = "Bearer"


@dataclass(frozen=True, slots=True)
class AuthResultOut:
    """
    Output DTO for register/login: the public identity plus a fresh pair.

    :param user: Public identity projection.
    :type user: IdentityPublicOut
    :param tokens: Issued token pair.
    :type tokens: TokenPairOut
    """

    user: IdentityPublicOut
    tokens: TokenPairOut
