"""Shared API helpers for authentication and cross-cutting concerns."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from typing import Any, TypeVar, cast

from flask import Response, current_app, g, jsonify, request

from authcore.container import AuthContainer
from authcore.services._shared.errors import MissingToken
from authcore.services.auth import IdentityContext

F = TypeVar("F", bound=Callable[..., Any])

EXTENSION_KEY = "authcore"


def get_container() -> AuthContainer:
    """Return the :class:`AuthContainer` attached by the app factory."""

    return cast(AuthContainer, current_app.extensions[EXTENSION_KEY])


def require_auth(func: F) -> F:
    """Resolve the bearer token into ``g.identity`` or fail with 401."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        g.identity = get_container().gateway.authenticate(request.headers.get("Authorization"))
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def optional_auth(func: F) -> F:
    """Like :func:`require_auth` but leaves ``g.identity`` as ``None`` for anonymous calls."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        g.identity = get_container().gateway.authenticate_optional(
            request.headers.get("Authorization")
        )
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def current_identity() -> IdentityContext | None:
    """Return the identity resolved for this request, if any."""

    return cast(IdentityContext | None, g.get("identity"))


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            request_endpoint = getattr(request, "endpoint", None)
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request_endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]


def authenticated_identity() -> IdentityContext:
    """Return the identity set by :func:`require_auth` (raises if missing)."""

    identity = current_identity()
    if identity is None:
        raise MissingToken()
    return identity
