"""Authentication-related Marshmallow schemas."""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, pre_load, validate

from authcore.infra.crypto.bcrypt_password_hasher import BCRYPT_MAX_BYTES

from .user import UserSchema


def _password_bytes(value: str) -> None:
    """Reject passwords bcrypt would silently truncate."""
    if len(value.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise ValidationError(f"Password must be at most {BCRYPT_MAX_BYTES} bytes.")


class _TrimmedSchema(Schema):
    """Strip surrounding whitespace from string inputs except passwords."""

    @pre_load
    def _strip(self, data, **kwargs):
        if not isinstance(data, dict):
            return data
        return {
            k: v.strip() if isinstance(v, str) and k != "password" else v
            for k, v in data.items()
        }


class RegisterSchema(_TrimmedSchema):
    """Input payload for account registration."""

    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(
        required=True,
        load_only=True,
        validate=[validate.Length(min=8), _password_bytes],
    )
    first_name = fields.String(required=True, validate=validate.Length(min=1, max=50))
    last_name = fields.String(required=True, validate=validate.Length(min=1, max=50))


class LoginSchema(_TrimmedSchema):
    """Input payload for authenticating a user."""

    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=1))


class RefreshTokenSchema(_TrimmedSchema):
    """Input payload for rotating a refresh token."""

    refresh_token = fields.String(required=True, validate=validate.Length(min=1))


class LogoutSchema(_TrimmedSchema):
    """Optional refresh token to revoke on logout."""

    refresh_token = fields.String(load_default=None, allow_none=True)


class TokenPairSchema(Schema):
    """Response payload containing an access/refresh pair."""

    access_token = fields.String(required=True)
    refresh_token = fields.String(required=True)
    token_type = fields.String(dump_default="Bearer")


class AuthResultSchema(Schema):
    """Register/login response: the user plus a token pair (flattened)."""

    user = fields.Nested(UserSchema, required=True)
    access_token = fields.String(required=True)
    refresh_token = fields.String(required=True)
    token_type = fields.String(dump_default="Bearer")


class SessionSchema(Schema):
    """Optional-auth session status."""

    authenticated = fields.Boolean(required=True)
    user = fields.Nested(UserSchema, allow_none=True)
