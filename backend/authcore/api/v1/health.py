"""Health check endpoint."""

from __future__ import annotations

from flask import Blueprint, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from authcore.api.deps import json_response, timing
from authcore.core.extensions import db

bp = Blueprint("health", __name__)


@bp.get("/health")
@timing
def healthcheck():
    """Return application and storage health information."""

    storage = current_app.config.get("STORAGE_BACKEND", "database")
    ledger = current_app.config.get("LEDGER_BACKEND") or storage
    db_status = "skipped"
    if "database" in (storage, ledger):
        db_status = "ok"
        try:
            db.session.execute(text("SELECT 1"))
        except SQLAlchemyError:  # pragma: no cover - depends on DB backend
            current_app.logger.exception("healthcheck.db_error")
            db_status = "fail"
    payload = {
        "status": "ok" if db_status != "fail" else "degraded",
        "storage": storage,
        "ledger": ledger,
        "db": db_status,
        "version": current_app.config.get("APP_VERSION", "dev"),
    }
    return json_response(payload, status=200 if db_status != "fail" else 503)
