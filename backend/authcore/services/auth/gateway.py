# authcore/services/auth/gateway.py
from __future__ import annotations

from dataclasses import dataclass

from authcore.services._shared.errors import (
    InvalidToken,
    MissingToken,
    UnknownIdentity,
)
from authcore.services._shared.ports import TokenCodec, UserDirectory

BEARER_SCHEME = "bearer"


@dataclass(frozen=True, slots=True)
class IdentityContext:
    """
    Verified caller attached to a request.

    :param identity_id: Authenticated identity.
    :type identity_id: int
    :param email: Current email of the identity.
    :type email: str
    :param first_name: Given name.
    :type first_name: str
    :param last_name: Family name.
    :type last_name: str
    """

    identity_id: int
    email: str
    first_name: str
    last_name: str


def extract_bearer(authorization: str | None) -> str:
    """
    Pull the credential out of an ``Authorization: Bearer <token>`` header.

    The scheme is matched case-insensitively.

    :raises MissingToken: Header absent, not Bearer, or empty credential.
    """
    if not authorization:
        raise MissingToken()
    scheme, _, credential = authorization.strip().partition(" ")
    if scheme.lower() != BEARER_SCHEME or not credential.strip():
        raise MissingToken()
    return credential.strip()


class AuthGateway:
    """
    Request-time authentication gate.

    Verifies the access token and re-reads the identity from the directory on
    every call, so a deactivated account is rejected even while its access
    token is unexpired.
    """

    def __init__(self, *, codec: TokenCodec, directory: UserDirectory) -> None:
        self.codec = codec
        self.directory = directory

    def authenticate(self, authorization: str | None) -> IdentityContext:
        """
        Resolve the caller from an ``Authorization`` header value.

        :raises MissingToken: No bearer credential.
        :raises InvalidToken: Signature, expiry, issuer, audience or type failure.
        :raises UnknownIdentity: Identity absent or inactive.
        :raises StorageUnavailable: Directory failure.
        """
        token = extract_bearer(authorization)
        claims = self.codec.verify_access(token)
        identity = self.directory.find_by_id(claims.identity_id)
        if identity is None or not identity.is_active:
            raise UnknownIdentity()
        return IdentityContext(
            identity_id=identity.id,
            email=identity.email,
            first_name=identity.first_name,
            last_name=identity.last_name,
        )

    def authenticate_optional(self, authorization: str | None) -> IdentityContext | None:
        """Like :meth:`authenticate` but returns ``None`` for auth failures."""
        try:
            return self.authenticate(authorization)
        except (MissingToken, InvalidToken, UnknownIdentity):
            return None
