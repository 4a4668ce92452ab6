"""Centralized JSON (RFC 7807) error handling for the API."""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

from flask import Flask, Response, jsonify, request
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException

from authcore.core.logger import ensure_request_id
from authcore.services._shared.errors import AuthError, AuthErrorKind

log = logging.getLogger(__name__)

#: Error kind -> (HTTP status, stable code). Client messages come from the exception.
AUTH_ERROR_STATUS: dict[AuthErrorKind, tuple[int, str]] = {
    AuthErrorKind.INVALID_CREDENTIALS: (HTTPStatus.UNAUTHORIZED, "invalid_credentials"),
    AuthErrorKind.DUPLICATE_IDENTITY: (HTTPStatus.CONFLICT, "duplicate_identity"),
    AuthErrorKind.INVALID_TOKEN: (HTTPStatus.UNAUTHORIZED, "invalid_token"),
    AuthErrorKind.UNKNOWN_IDENTITY: (HTTPStatus.UNAUTHORIZED, "unknown_identity"),
    AuthErrorKind.MISSING_TOKEN: (HTTPStatus.UNAUTHORIZED, "missing_token"),
    AuthErrorKind.STORAGE_UNAVAILABLE: (HTTPStatus.SERVICE_UNAVAILABLE, "service_unavailable"),
}


def _http_status_to_code(status_code: int) -> str:
    """Map common HTTP status codes to canonical, stable error codes."""
    mapping = {
        400: "bad_request",
        401: "unauthorized",
        403: "forbidden",
        404: "not_found",
        405: "method_not_allowed",
        409: "conflict",
        413: "payload_too_large",
        415: "unsupported_media_type",
        422: "unprocessable_entity",
        500: "internal_server_error",
        503: "service_unavailable",
    }
    return mapping.get(status_code, "error")


def _as_problem(
    *,
    status: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Build an RFC 7807 Problem Details dict.

    :param status: HTTP status code.
    :param code: Stable machine-consumable error code.
    :param message: Human-readable error summary (safe for clients).
    :param details: Optional safe, structured details.
    :returns: Problem+JSON dictionary.
    :rtype: dict
    """
    problem = {
        "type": "about:blank",
        "title": HTTPStatus(status).phrase,
        "status": int(status),
        "detail": message,
        "instance": request.path if request else None,
        "code": code,
    }
    if details:
        problem["details"] = details
    # Always attach correlation id
    problem["request_id"] = ensure_request_id()
    return problem


def _problem_response(problem: dict[str, Any]) -> Response:
    """
    Return a Flask response with ``application/problem+json`` media type.

    :param problem: Problem details payload.
    :returns: Flask JSON Response with proper MIME type.
    :rtype: flask.Response
    """
    resp = jsonify(problem)
    resp.mimetype = "application/problem+json"
    return resp


def auth_error_response(err: AuthError) -> tuple[Response, int]:
    """Translate an :class:`AuthError` into a problem response and status."""
    status, code = AUTH_ERROR_STATUS[err.kind]
    problem = _as_problem(status=status, code=code, message=err.default_message)
    resp = _problem_response(problem)
    if status == HTTPStatus.UNAUTHORIZED:
        resp.headers["WWW-Authenticate"] = f'Bearer error="{code}"'
    return resp, status


def init_app(app: Flask) -> None:
    """
    Attach JSON error handlers to the Flask app.

    Notes
    -----
    - Guarantees RFC 7807 responses for all handled errors.
    - Ensures a correlation ``request_id`` is present on every error.
    - Storage outages and 5xx are logged with ``exc_info``; auth failures
      as warnings without internal detail.
    """

    @app.errorhandler(AuthError)
    def handle_auth_error(err: AuthError):
        resp, status = auth_error_response(err)
        if err.kind is AuthErrorKind.STORAGE_UNAVAILABLE:
            log.error(
                "Storage unavailable: request_id=%s",
                ensure_request_id(),
                exc_info=err,
            )
        else:
            log.warning(
                "AuthError: kind=%s status=%s request_id=%s",
                err.kind.value,
                status,
                ensure_request_id(),
            )
        return resp, status

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        status = int(err.code or HTTPStatus.INTERNAL_SERVER_ERROR)
        error_code = _http_status_to_code(status)
        message = (err.description or error_code.replace("_", " ").capitalize()).strip()
        if status == HTTPStatus.NOT_FOUND and request:
            message = f"Route '{request.path}' not found"
        problem = _as_problem(status=status, code=error_code, message=message)
        level = log.error if status >= 500 else log.warning
        level(
            "HTTPException: code=%s status=%s detail=%s request_id=%s",
            error_code,
            status,
            message,
            problem.get("request_id"),
        )
        return _problem_response(problem), status

    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        problem = _as_problem(
            status=HTTPStatus.UNPROCESSABLE_ENTITY,
            code="validation_error",
            message="Validation failed",
            details={"errors": err.messages},
        )
        log.warning("ValidationError: request_id=%s", problem.get("request_id"))
        return _problem_response(problem), HTTPStatus.UNPROCESSABLE_ENTITY

    @app.errorhandler(Exception)
    def handle_unexpected_error(err: Exception):
        # Unexpected server-side error; never leak internal details
        problem = _as_problem(
            status=HTTPStatus.INTERNAL_SERVER_ERROR,
            code="internal_server_error",
            message="Unexpected error",
        )
        log.error(
            "Unhandled exception: request_id=%s",
            problem.get("request_id"),
            exc_info=True,
        )
        return _problem_response(problem), HTTPStatus.INTERNAL_SERVER_ERROR
