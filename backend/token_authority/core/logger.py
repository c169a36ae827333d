"""Structured logging: JSON lines, request correlation and token redaction."""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from flask import Flask, g, has_request_context, request

REQUEST_ID_HEADER = "X-Request-ID"
CORRELATION_HEADERS = ("X-Request-ID", "X-Correlation-ID")

# ``extra=`` keys copied into the JSON document when present on a record.
EXTRA_KEYS = (
    "endpoint",
    "elapsed_ms",
    "subject",
    "reason",
    "token_type",
    "path",
    "revoked_refresh",
    "refresh_removed",
    "blacklist_removed",
)

# Compact JWS: three base64url segments, header starting with '{"' (eyJ).
_JWT_RE = re.compile(r"eyJ[\w-]+\.[\w-]+\.[\w-]*")
REDACTED = "[token]"


def redact(text: str) -> str:
    """Replace every compact JWS found in ``text`` with a placeholder."""
    return _JWT_RE.sub(REDACTED, text)


def ensure_request_id() -> str:
    """
    Return the correlation id of the current request.

    Read from ``X-Request-ID`` / ``X-Correlation-ID`` on first use and cached
    in ``g.request_id``. Outside a request a fresh UUID4 is returned.
    """
    if not has_request_context():
        return str(uuid4())
    cached = getattr(g, "request_id", None)
    if cached:
        return cached
    value = next(
        (request.headers[h] for h in CORRELATION_HEADERS if request.headers.get(h)),
        None,
    )
    g.request_id = value or str(uuid4())
    return g.request_id


class JSONFormatter(logging.Formatter):
    """Render log records as single-line JSON objects."""

    def __init__(self, service: str = "token-authority") -> None:
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "service": self.service,
            "name": record.name,
            "message": redact(record.getMessage()),
            "request_id": getattr(record, "request_id", None),
        }
        payload.update(
            {key: getattr(record, key) for key in EXTRA_KEYS if hasattr(record, key)}
        )
        if record.exc_info:
            payload["exc_info"] = redact(self.formatException(record.exc_info))
        return json.dumps(payload, default=str)


class RequestIdFilter(logging.Filter):
    """Stamp ``request_id`` on every record (``None`` outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = ensure_request_id() if has_request_context() else None
        return True


def configure_logging(level: str | int = "INFO", *, service: str = "token-authority") -> None:
    """Send root logging to stdout as JSON, replacing existing handlers."""

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter(service=service))
    handler.addFilter(RequestIdFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)


def init_app(app: Flask) -> None:
    """Seed the request id early and echo it on every response."""

    app.logger.addFilter(RequestIdFilter())

    @app.before_request
    def _seed_request_id() -> None:
        ensure_request_id()

    @app.after_request
    def _echo_request_id(response):
        response.headers.setdefault(REQUEST_ID_HEADER, ensure_request_id())
        return response

    @app.teardown_request
    def _forget_request_id(exc: BaseException | None = None) -> None:
        # An outer app context (CLI, tests) can outlive the request
        g.pop("request_id", None)


__all__ = ["configure_logging", "ensure_request_id", "init_app", "JSONFormatter", "redact"]
