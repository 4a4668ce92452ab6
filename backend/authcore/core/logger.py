"""JSON logging with request correlation and credential redaction.

Every record leaving the root handler is a single JSON object carrying the
request id and, once :func:`authcore.api.deps.require_auth` resolved a
bearer token, the caller's ``identity_id``. Token and hash material that slips
into a message or traceback is masked before it is written.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from flask import Flask, g, has_request_context, request

REQUEST_ID_HEADER = "X-Request-ID"
CORRELATION_HEADERS = ("X-Request-ID", "X-Correlation-ID")

# Client-supplied ids outside this shape are replaced by a fresh uuid4.
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")

# Structured ``extra=`` keys copied into the JSON payload when present.
EXTRA_KEYS = ("endpoint", "elapsed_ms", "identity_id", "removed", "revoked")

_REDACTIONS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"eyJ[\w-]*\.[\w-]+\.[\w-]+"), "[jwt]"),
    (re.compile(r"\$2[abxy]?\$\d{2}\$[./A-Za-z0-9]{53}"), "[bcrypt]"),
)


def redact(text: str) -> str:
    """Mask JWTs and bcrypt hashes found in ``text``."""
    for pattern, mask in _REDACTIONS:
        text = pattern.sub(mask, text)
    return text


class JSONFormatter(logging.Formatter):
    """One JSON object per record; message and traceback are redacted."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, UTC).isoformat(
                timespec="milliseconds"
            ),
            "level": record.levelname,
            "name": record.name,
            "message": redact(record.getMessage()),
            "request_id": getattr(record, "request_id", None),
        }
        if record.exc_info:
            payload["exc_info"] = redact(self.formatException(record.exc_info))
        for key in EXTRA_KEYS:
            if hasattr(record, key):
                payload[key] = getattr(record, key)
        return json.dumps(payload, default=str)


class RequestContextFilter(logging.Filter):
    """Stamp records with the request id and the authenticated identity."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not has_request_context():
            record.request_id = None
            return True
        record.request_id = ensure_request_id()
        identity = g.get("identity")
        if identity is not None and not hasattr(record, "identity_id"):
            record.identity_id = identity.identity_id
        return True


def ensure_request_id() -> str:
    """
    Return the id correlating the current request.

    The first well-formed ``X-Request-ID``/``X-Correlation-ID`` header wins;
    otherwise a uuid4 is generated and cached on :data:`flask.g`. Outside a
    request a fresh uuid4 is returned.
    """
    if not has_request_context():
        return str(uuid4())
    cached = g.get("request_id")
    if cached:
        return cached
    for header in CORRELATION_HEADERS:
        value = (request.headers.get(header) or "").strip()
        if _REQUEST_ID_RE.match(value):
            g.request_id = value
            return value
    g.request_id = str(uuid4())
    return g.request_id


def configure_logging(level: str | int = "INFO") -> None:
    """Replace root handlers with a single JSON stdout handler at ``level``."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(RequestContextFilter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        level = resolved if isinstance(resolved, int) else logging.INFO
    root.setLevel(level)


def init_app(app: Flask) -> None:
    """Seed the request id early and echo it on every response."""
    app.logger.addFilter(RequestContextFilter())

    @app.before_request
    def _seed_request_id() -> None:
        ensure_request_id()

    @app.after_request
    def _echo_request_id(response):
        response.headers[REQUEST_ID_HEADER] = ensure_request_id()
        return response


__all__ = [
    "configure_logging",
    "ensure_request_id",
    "init_app",
    "JSONFormatter",
    "redact",
    "RequestContextFilter",
]
