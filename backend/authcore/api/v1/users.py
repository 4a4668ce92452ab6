"""User resource endpoints."""

from __future__ import annotations

from flask import Blueprint

from authcore.api.deps import (
    authenticated_identity,
    get_container,
    json_response,
    require_auth,
    timing,
)
from authcore.schemas import UserSchema

bp = Blueprint("users", __name__)

user_schema = UserSchema()


@bp.get("/profile")
@require_auth
@timing
def get_profile():
    """Return the authenticated user's public profile."""

    identity = authenticated_identity()
    user = get_container().service.get_profile(identity.identity_id)
    return json_response({"data": {"user": user_schema.dump(user)}})
