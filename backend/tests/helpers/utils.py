"""Tiny helpers shared across test modules."""

from __future__ import annotations

from contextlib import contextmanager

REGISTER_URL = "/api/v1/auth/register"
LOGIN_URL = "/api/v1/auth/login"
REFRESH_URL = "/api/v1/auth/refresh-token"
LOGOUT_URL = "/api/v1/auth/logout"
PROFILE_URL = "/api/v1/auth/profile"
SESSION_URL = "/api/v1/auth/session"
USERS_PROFILE_URL = "/api/v1/users/profile"


def bearer(token: str) -> dict[str, str]:
    """Return an ``Authorization`` header carrying ``token``."""
    return {"Authorization": f"Bearer {token}"}


def register_payload(**overrides: str) -> dict[str, str]:
    """Build a valid registration body, optionally overriding fields."""
    payload = {
        "email": "ada@example.com",
        "password": "correct-horse",
        "first_name": "Ada",
        "last_name": "Lovelace",
    }
    payload.update(overrides)
    return payload


@contextmanager
def not_raises(exception: type[BaseException]):
    """Context manager asserting that an exception is *not* raised.

    Parameters
    ----------
    exception: type[BaseException]
        Exception type that should not be raised within the context.
    """
    try:
        yield
    except exception as exc:  # pragma: no cover
        raise AssertionError(f"Did raise {exception}: {exc}") from exc
