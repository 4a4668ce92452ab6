"""Integration tests for the authentication endpoints (database backends)."""

from __future__ import annotations

from authcore.infra.sql import SqlUserDirectory
from authcore.models import User
from authcore.services._shared.errors import StorageUnavailable
from authcore.services.auth import CredentialService
from sqlalchemy import update
from tests.factories.user import DEFAULT_PASSWORD, UserFactory
from tests.helpers.utils import (
    LOGIN_URL,
    LOGOUT_URL,
    PROFILE_URL,
    REFRESH_URL,
    REGISTER_URL,
    SESSION_URL,
    USERS_PROFILE_URL,
    bearer,
    not_raises,
    register_payload,
)


def _register(client, **overrides):
    resp = client.post(REGISTER_URL, json=register_payload(**overrides))
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["data"]


def _assert_problem(resp, status: int, code: str) -> dict:
    assert resp.status_code == status
    assert resp.mimetype == "application/problem+json"
    body = resp.get_json()
    assert body["status"] == status
    assert body["code"] == code
    assert body["request_id"]
    return body


# -------------------------------- Register -------------------------------- #
def test_register_returns_user_and_tokens(client) -> None:
    data = _register(client, email="  Ada@Example.com ")

    assert data["token_type"] == "Bearer"
    assert data["access_token"] and data["refresh_token"]
    user = data["user"]
    assert user["email"] == "ada@example.com"
    assert user["first_name"] == "Ada"
    assert user["is_active"] is True
    assert user["is_verified"] is False
    assert user["last_login"] is None
    assert "password" not in user and "password_hash" not in user


def test_register_duplicate_email_conflicts(client) -> None:
    _register(client)
    resp = client.post(REGISTER_URL, json=register_payload(email="ADA@example.com"))
    _assert_problem(resp, 409, "duplicate_identity")


def test_register_validation_errors(client) -> None:
    resp = client.post(REGISTER_URL, json=register_payload(password="short", email="bad"))
    body = _assert_problem(resp, 422, "validation_error")
    assert set(body["details"]["errors"]) == {"password", "email"}


def test_register_rejects_non_json_body(client) -> None:
    resp = client.post(REGISTER_URL, data="email=a", content_type="text/plain")
    _assert_problem(resp, 422, "validation_error")


# --------------------------------- Login ---------------------------------- #
def test_login_existing_user(client) -> None:
    user_id = UserFactory(email="grace@example.com").id
    resp = client.post(LOGIN_URL, json={"email": "GRACE@example.com", "password": DEFAULT_PASSWORD})

    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["user"]["id"] == user_id
    assert data["user"]["last_login"] is not None


def test_login_failures_share_one_response(client) -> None:
    UserFactory(email="grace@example.com")
    wrong_pw = client.post(LOGIN_URL, json={"email": "grace@example.com", "password": "nope-nope"})
    unknown = client.post(LOGIN_URL, json={"email": "ghost@example.com", "password": "nope-nope"})

    first = _assert_problem(wrong_pw, 401, "invalid_credentials")
    second = _assert_problem(unknown, 401, "invalid_credentials")
    assert first["detail"] == second["detail"]
    assert wrong_pw.headers["WWW-Authenticate"] == 'Bearer error="invalid_credentials"'


def test_login_inactive_user_is_rejected(client) -> None:
    UserFactory(email="off@example.com", is_active=False)
    resp = client.post(LOGIN_URL, json={"email": "off@example.com", "password": DEFAULT_PASSWORD})
    _assert_problem(resp, 401, "invalid_credentials")


# -------------------------------- Refresh --------------------------------- #
def test_refresh_rotates_tokens(client) -> None:
    tokens = _register(client)
    resp = client.post(REFRESH_URL, json={"refresh_token": tokens["refresh_token"]})

    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["refresh_token"] != tokens["refresh_token"]
    assert data["token_type"] == "Bearer"
    assert client.get(PROFILE_URL, headers=bearer(data["access_token"])).status_code == 200

    replay = client.post(REFRESH_URL, json={"refresh_token": tokens["refresh_token"]})
    _assert_problem(replay, 401, "invalid_token")


def test_refresh_with_access_token_is_invalid(client) -> None:
    tokens = _register(client)
    resp = client.post(REFRESH_URL, json={"refresh_token": tokens["access_token"]})
    _assert_problem(resp, 401, "invalid_token")


def test_refresh_requires_body(client) -> None:
    _assert_problem(client.post(REFRESH_URL, json={}), 422, "validation_error")


# --------------------------------- Logout --------------------------------- #
def test_logout_revokes_presented_refresh_token(client) -> None:
    tokens = _register(client)
    other = client.post(
        LOGIN_URL, json={"email": "ada@example.com", "password": "correct-horse"}
    ).get_json()["data"]

    resp = client.post(
        LOGOUT_URL,
        json={"refresh_token": tokens["refresh_token"]},
        headers=bearer(tokens["access_token"]),
    )
    assert resp.status_code == 200
    assert resp.get_json() == {"data": {"message": "Logout successful"}}

    dead = client.post(REFRESH_URL, json={"refresh_token": tokens["refresh_token"]})
    _assert_problem(dead, 401, "invalid_token")
    alive = client.post(REFRESH_URL, json={"refresh_token": other["refresh_token"]})
    assert alive.status_code == 200


def test_logout_without_refresh_token_still_succeeds(client) -> None:
    tokens = _register(client)
    with not_raises(KeyError):
        resp = client.post(LOGOUT_URL, headers=bearer(tokens["access_token"]))
    assert resp.status_code == 200


def test_logout_requires_bearer(client) -> None:
    resp = client.post(LOGOUT_URL, json={"refresh_token": "x"})
    _assert_problem(resp, 401, "missing_token")
    assert resp.headers["WWW-Authenticate"] == 'Bearer error="missing_token"'


# ----------------------------- Profile / session --------------------------- #
def test_profile_endpoints(client) -> None:
    tokens = _register(client)
    for url in (PROFILE_URL, USERS_PROFILE_URL):
        resp = client.get(url, headers=bearer(tokens["access_token"]))
        assert resp.status_code == 200
        assert resp.get_json()["data"]["user"]["email"] == "ada@example.com"


def test_profile_rejects_bad_tokens(client) -> None:
    tokens = _register(client)
    _assert_problem(client.get(PROFILE_URL), 401, "missing_token")
    _assert_problem(
        client.get(PROFILE_URL, headers={"Authorization": "Basic abc"}), 401, "missing_token"
    )
    _assert_problem(client.get(PROFILE_URL, headers=bearer("garbage")), 401, "invalid_token")
    _assert_problem(
        client.get(PROFILE_URL, headers=bearer(tokens["refresh_token"])), 401, "invalid_token"
    )


def test_profile_of_deactivated_user(client, session) -> None:
    user_id = UserFactory(email="gone@example.com").id
    login = client.post(LOGIN_URL, json={"email": "gone@example.com", "password": DEFAULT_PASSWORD})
    access = login.get_json()["data"]["access_token"]

    session.execute(update(User).where(User.id == user_id).values(is_active=False))
    session.commit()

    resp = client.get(PROFILE_URL, headers=bearer(access))
    _assert_problem(resp, 401, "unknown_identity")


def test_session_endpoint(client) -> None:
    anonymous = client.get(SESSION_URL)
    assert anonymous.status_code == 200
    assert anonymous.get_json()["data"] == {"authenticated": False, "user": None}

    garbage = client.get(SESSION_URL, headers=bearer("garbage"))
    assert garbage.get_json()["data"]["authenticated"] is False

    tokens = _register(client)
    authed = client.get(SESSION_URL, headers=bearer(tokens["access_token"])).get_json()["data"]
    assert authed["authenticated"] is True
    assert authed["user"]["email"] == "ada@example.com"


# ------------------------------- Cross-cutting ----------------------------- #
def test_request_id_is_echoed(client) -> None:
    resp = client.get(SESSION_URL, headers={"X-Request-ID": "req-123"})
    assert resp.headers["X-Request-ID"] == "req-123"

    problem = client.get(PROFILE_URL, headers={"X-Request-ID": "req-456"}).get_json()
    assert problem["request_id"] == "req-456"


def test_unknown_route_is_problem_json(client) -> None:
    _assert_problem(client.get("/api/v1/nope"), 404, "not_found")


def test_storage_outage_is_503(client, monkeypatch) -> None:
    def unavailable(*args, **kwargs):
        raise StorageUnavailable("Database lookup failed")

    monkeypatch.setattr(SqlUserDirectory, "find_by_email", unavailable)
    resp = client.post(LOGIN_URL, json={"email": "a@example.com", "password": "whatever1"})
    body = _assert_problem(resp, 503, "service_unavailable")
    assert "Database" not in body["detail"]


def test_health(client) -> None:
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["status"] == "ok"
    assert body["storage"] == "database"
    assert body["db"] == "ok"


def test_wrong_method_is_problem_json(client) -> None:
    _assert_problem(client.get(LOGIN_URL), 405, "method_not_allowed")


def test_unexpected_error_hides_detail(client, monkeypatch) -> None:
    def boom(*args, **kwargs):
        raise RuntimeError("connection string postgres://secret")

    monkeypatch.setattr(CredentialService, "login", boom)
    resp = client.post(LOGIN_URL, json={"email": "a@example.com", "password": "whatever1"})
    body = _assert_problem(resp, 500, "internal_server_error")
    assert body["detail"] == "Unexpected error"
    assert "secret" not in resp.get_data(as_text=True)
