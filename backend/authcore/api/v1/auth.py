"""Authentication endpoints using the credential service."""

from __future__ import annotations

from flask import Blueprint, request

from authcore.api.deps import (
    authenticated_identity,
    current_identity,
    get_container,
    json_response,
    optional_auth,
    require_auth,
    timing,
)
from authcore.schemas import (
    AuthResultSchema,
    LoginSchema,
    LogoutSchema,
    RefreshTokenSchema,
    RegisterSchema,
    SessionSchema,
    TokenPairSchema,
    UserSchema,
)
from authcore.services.auth import (
    AuthResultOut,
    LoginIn,
    LogoutIn,
    RefreshIn,
    RegisterIn,
)

bp = Blueprint("auth", __name__)

register_schema = RegisterSchema()
login_schema = LoginSchema()
refresh_schema = RefreshTokenSchema()
logout_schema = LogoutSchema()
auth_result_schema = AuthResultSchema()
token_schema = TokenPairSchema()
session_schema = SessionSchema()
user_schema = UserSchema()


def _auth_body(result: AuthResultOut) -> dict:
    return auth_result_schema.dump(
        {
            "user": result.user,
            "access_token": result.tokens.access_token,
            "refresh_token": result.tokens.refresh_token,
            "token_type": result.tokens.token_type,
        }
    )


@bp.post("/register")
@timing
def register():
    """Create an account and return it with a fresh token pair."""

    data = register_schema.load(request.get_json(silent=True) or {})
    result = get_container().service.register(RegisterIn(**data))
    return json_response({"data": _auth_body(result)}, status=201)


@bp.post("/login")
@timing
def login():
    """Authenticate credentials and issue a token pair."""

    data = login_schema.load(request.get_json(silent=True) or {})
    result = get_container().service.login(LoginIn(**data))
    return json_response({"data": _auth_body(result)})


@bp.post("/refresh-token")
@timing
def refresh_token():
    """Rotate a refresh token. The presented token is consumed."""

    data = refresh_schema.load(request.get_json(silent=True) or {})
    pair = get_container().service.refresh(RefreshIn(refresh_token=data["refresh_token"]))
    return json_response({"data": token_schema.dump(pair)})


@bp.post("/logout")
@require_auth
@timing
def logout():
    """Revoke the presented refresh token (if any) for the caller."""

    data = logout_schema.load(request.get_json(silent=True) or {})
    identity = authenticated_identity()
    if data.get("refresh_token"):
        get_container().service.logout(
            LogoutIn(identity_id=identity.identity_id, refresh_token=data["refresh_token"])
        )
    return json_response({"data": {"message": "Logout successful"}})


@bp.get("/profile")
@require_auth
@timing
def profile():
    """Return the authenticated user's public profile."""

    identity = authenticated_identity()
    user = get_container().service.get_profile(identity.identity_id)
    return json_response({"data": {"user": user_schema.dump(user)}})


@bp.get("/session")
@optional_auth
@timing
def session_status():
    """Report whether the request carries a valid access token."""

    identity = current_identity()
    user = get_container().service.get_profile(identity.identity_id) if identity else None
    body = session_schema.dump({"authenticated": identity is not None, "user": user})
    return json_response({"data": body})
