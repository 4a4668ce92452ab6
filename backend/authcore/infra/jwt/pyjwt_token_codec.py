# authcore/infra/jwt/pyjwt_token_codec.py
from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

import jwt

from authcore.services._shared.errors import InvalidToken
from authcore.services._shared.ports import (
    ACCESS_TOKEN_TYPE,
    REFRESH_TOKEN_LIFETIME,
    REFRESH_TOKEN_TYPE,
    TokenClaims,
    TokenCodec,
)

_REQUIRED_CLAIMS = ["sub", "iat", "exp", "iss", "aud", "jti", "type"]


class JWTTokenCodec(TokenCodec):
    """
    PyJWT adapter for :class:`TokenCodec`.

    Access and refresh tokens are signed with *different* keys, so a refresh
    token can never pass as an access token (and vice versa) even before the
    ``type`` claim is inspected.

    :param access_secret: HMAC key for access tokens.
    :param refresh_secret: HMAC key for refresh tokens.
    :param algorithm: JWS algorithm (``HS256``).
    :param issuer: ``iss`` claim written and required.
    :param audience: ``aud`` claim written and required.
    :param access_ttl: Access token lifetime.
    :param refresh_ttl: Refresh token lifetime.
    :param leeway: Clock-skew allowance on ``exp``/``iat``.
    :raises ValueError: If a key is empty or both keys are equal.
    """

    def __init__(
        self,
        *,
        access_secret: str,
        refresh_secret: str,
        algorithm: str = "HS256",
        issuer: str = "user-auth-system",
        audience: str = "user-auth-client",
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = REFRESH_TOKEN_LIFETIME,
        leeway: timedelta = timedelta(seconds=0),
    ) -> None:
        if not access_secret or not refresh_secret:
            raise ValueError("Token signing keys must be non-empty")
        if access_secret == refresh_secret:
            raise ValueError("Access and refresh signing keys must differ")
        self._access_secret = access_secret
        self._refresh_secret = refresh_secret
        self.algorithm = algorithm
        self.issuer = issuer
        self.audience = audience
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.leeway = leeway

    # -------------------- helpers --------------------

    def _encode(self, identity_id: int, token_type: str, ttl: timedelta, extra: dict[str, Any]) -> str:
        now = datetime.now(UTC)
        payload: dict[str, Any] = {
            "sub": str(identity_id),
            "iat": now,
            "exp": now + ttl,
            "iss": self.issuer,
            "aud": self.audience,
            "jti": uuid4().hex,
            "type": token_type,
            **extra,
        }
        key = self._access_secret if token_type == ACCESS_TOKEN_TYPE else self._refresh_secret
        return jwt.encode(payload, key, algorithm=self.algorithm)

    def _decode(self, token: str, token_type: str) -> TokenClaims:
        key = self._access_secret if token_type == ACCESS_TOKEN_TYPE else self._refresh_secret
        try:
            payload = jwt.decode(
                token,
                key,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                leeway=self.leeway,
                options={"require": _REQUIRED_CLAIMS},
            )
        except jwt.PyJWTError as exc:
            raise InvalidToken() from exc

        if payload.get("type") != token_type:
            raise InvalidToken()
        sub = payload["sub"]
        if not isinstance(sub, str) or not sub.isdigit():
            raise InvalidToken()

        email = payload.get("email")
        return TokenClaims(
            identity_id=int(sub),
            token_type=token_type,
            token_id=str(payload["jti"]),
            issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=UTC),
            expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=UTC),
            issuer=str(payload["iss"]),
            audience=self.audience,
            email=str(email) if email is not None else None,
        )

    # -------------------- API ------------------------

    def issue_access(self, identity_id: int, email: str) -> str:
        return self._encode(identity_id, ACCESS_TOKEN_TYPE, self.access_ttl, {"email": email})

    def issue_refresh(self, identity_id: int) -> str:
        return self._encode(identity_id, REFRESH_TOKEN_TYPE, self.refresh_ttl, {})

    def verify_access(self, token: str) -> TokenClaims:
        return self._decode(token, ACCESS_TOKEN_TYPE)

    def verify_refresh(self, token: str) -> TokenClaims:
        return self._decode(token, REFRESH_TOKEN_TYPE)
