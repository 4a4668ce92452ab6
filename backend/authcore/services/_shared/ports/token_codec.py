from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


@dataclass(frozen=True, slots=True)
class TokenClaims:
    """
    Verified claim set of an access or refresh token.

    :ivar identity_id: Subject identifier (``sub``).
    :ivar token_type: ``"access"`` or ``"refresh"``.
    :ivar token_id: Unique token identifier (``jti``).
    :ivar issued_at: Issue instant (UTC).
    :ivar expires_at: Expiry instant (UTC).
    :ivar issuer: ``iss`` claim.
    :ivar audience: ``aud`` claim.
    :ivar email: Email snapshot; only present on access tokens.
    """

    identity_id: int
    token_type: str
    token_id: str
    issued_at: datetime
    expires_at: datetime
    issuer: str
    audience: str
    email: str | None = None


class TokenCodec(Protocol):
    """
    Port for signing and verifying self-contained tokens.

    ``verify_*`` methods raise :class:`~authcore.services._shared.errors.InvalidToken`
    on any signature, structure, expiry, issuer, audience or type problem.
    """

    def issue_access(self, identity_id: int, email: str) -> str: ...

    def issue_refresh(self, identity_id: int) -> str: ...

    def verify_access(self, token: str) -> TokenClaims: ...

    def verify_refresh(self, token: str) -> TokenClaims: ...
