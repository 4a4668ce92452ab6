"""Unit tests for the authentication request schemas."""

from __future__ import annotations

import pytest
from authcore.schemas import LoginSchema, LogoutSchema, RefreshTokenSchema, RegisterSchema
from marshmallow import ValidationError


def _register(**overrides):
    payload = {
        "email": "ada@example.com",
        "password": "correct-horse",
        "first_name": "Ada",
        "last_name": "Lovelace",
    }
    payload.update(overrides)
    return payload


def test_register_trims_everything_but_password():
    data = RegisterSchema().load(
        _register(email="  ada@example.com ", first_name=" Ada ", password="  padded pw  ")
    )
    assert data["email"] == "ada@example.com"
    assert data["first_name"] == "Ada"
    assert data["password"] == "  padded pw  "


@pytest.mark.parametrize(
    ("field", "value"),
    [
        ("email", "not-an-email"),
        ("password", "short"),
        ("password", "é" * 37),
        ("first_name", ""),
        ("first_name", "   "),
        ("last_name", "x" * 51),
    ],
)
def test_register_rejects_invalid_fields(field, value):
    with pytest.raises(ValidationError) as exc_info:
        RegisterSchema().load(_register(**{field: value}))
    assert field in exc_info.value.messages


def test_register_requires_all_fields():
    with pytest.raises(ValidationError) as exc_info:
        RegisterSchema().load({})
    assert set(exc_info.value.messages) == {"email", "password", "first_name", "last_name"}


def test_register_accepts_72_byte_password():
    data = RegisterSchema().load(_register(password="é" * 36))
    assert len(data["password"].encode("utf-8")) == 72


def test_login_requires_email_and_password():
    with pytest.raises(ValidationError) as exc_info:
        LoginSchema().load({"email": "ada@example.com"})
    assert "password" in exc_info.value.messages


def test_refresh_requires_token():
    with pytest.raises(ValidationError):
        RefreshTokenSchema().load({"refresh_token": ""})


def test_logout_token_is_optional():
    assert LogoutSchema().load({}) == {"refresh_token": None}
