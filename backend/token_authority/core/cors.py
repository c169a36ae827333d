"""CORS configuration helper for the token endpoints."""

from __future__ import annotations

from flask import Flask
from flask_cors import CORS


def init_app(app: Flask) -> None:
    """Configure CORS for ``/auth/*`` based on ``CORS_ORIGINS``.

    When ``CORS_ORIGINS`` is blank or ``"*"`` any origin is allowed but
    credential support is disabled. The ``Authorization`` header is always
    allowed so browsers can present bearer tokens.
    """
    raw_origins = app.config.get("CORS_ORIGINS", "")
    origins = [o.strip() for o in raw_origins.split(",") if o.strip()]
    wildcard = len(origins) == 0 or origins == ["*"]

    CORS(
        app,
        resources={r"/auth/*": {"origins": "*" if wildcard else origins}},
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
        supports_credentials=not wildcard,
        max_age=app.config.get("CORS_MAX_AGE", 600),
    )
