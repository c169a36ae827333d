"""Health check endpoint."""

from __future__ import annotations

from flask import Blueprint, current_app
from sqlalchemy import text

from token_authority.api.deps import json_response, timing
from token_authority.core.extensions import db

bp = Blueprint("health", __name__)


@bp.get("/health")
@timing
def healthcheck():
    """Return application, database and token store health information."""

    db_status = "ok"
    try:
        db.session.execute(text("SELECT 1"))
    except Exception:  # pragma: no cover - depends on DB backend
        current_app.logger.exception("healthcheck.db_error")
        db_status = "fail"

    store_status = "ok"
    client = current_app.extensions.get("redis_client")
    if client is not None:
        try:
            client.ping()
        except Exception:  # pragma: no cover - depends on Redis availability
            current_app.logger.exception("healthcheck.redis_error")
            store_status = "fail"

    payload = {
        "status": "ok" if db_status == store_status == "ok" else "degraded",
        "db": db_status,
        "tokenStore": current_app.config.get("TOKEN_STORE_BACKEND"),
        "tokenStoreStatus": store_status,
        "version": current_app.config.get("APP_VERSION", "dev"),
    }
    return json_response(payload)
