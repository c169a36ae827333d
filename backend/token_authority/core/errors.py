"""
RFC 7807 (``application/problem+json``) error responses.

Token failures reach this module already collapsed into :class:`Unauthorized`
by :meth:`BaseService.translate_exceptions`; nothing here inspects tokens.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

from flask import Flask, Response, has_request_context, jsonify, request
from marshmallow import ValidationError as MarshmallowValidationError
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy.exc import IntegrityError, OperationalError
from werkzeug.exceptions import HTTPException

from token_authority.core.logger import ensure_request_id

log = logging.getLogger(__name__)

PROBLEM_MIMETYPE = "application/problem+json"

# Stable machine codes for statuses raised by Flask/Werkzeug itself.
STATUS_CODES = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    415: "unsupported_media_type",
    422: "unprocessable_entity",
    500: "internal_server_error",
    503: "service_unavailable",
}


def build_problem(
    *,
    status: int,
    code: str,
    message: str,
    instance: str | None,
    request_id: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Assemble a problem document without touching Flask globals.

    The edge middleware calls this directly, before any Flask request exists.

    :param status: HTTP status code.
    :param code: Stable machine-consumable error code.
    :param message: Client-safe summary (``detail``).
    :param instance: Request path the problem refers to.
    :param request_id: Correlation id echoed to the client.
    :param details: Optional structured, client-safe context.
    """
    problem: dict[str, Any] = {
        "type": "about:blank",
        "title": HTTPStatus(status).phrase,
        "status": status,
        "detail": message,
        "instance": instance,
        "code": code,
        "request_id": request_id,
    }
    if details:
        problem["details"] = details
    return problem


def problem_response(
    status: int, code: str, message: str, details: dict[str, Any] | None = None
) -> tuple[Response, int]:
    """Problem response for the current request."""
    problem = build_problem(
        status=status,
        code=code,
        message=message,
        instance=request.path if has_request_context() else None,
        request_id=ensure_request_id(),
        details=details,
    )
    resp = jsonify(problem)
    resp.mimetype = PROBLEM_MIMETYPE
    return resp, status


class APIError(Exception):
    """
    Client-facing error carrying its HTTP status and stable code.

    Parameters
    ----------
    message : str
        Human-readable description presented to clients.
    status_code : int, optional
        HTTP status code to return. Defaults to ``400``.
    code : str, optional
        Machine-readable identifier. Defaults to ``"bad_request"``.
    details : dict[str, Any] | None, optional
        Optional structured payload included in the response body.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        code: str = "bad_request",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = int(status_code)
        self.code = code
        self.details = details or {}


class Unauthorized(APIError):
    """401. The detail never names the check that failed."""

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message, status_code=HTTPStatus.UNAUTHORIZED, code="unauthorized")


class Forbidden(APIError):
    """403 when the principal lacks a required role."""

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message, status_code=HTTPStatus.FORBIDDEN, code="forbidden")


class NotFound(APIError):
    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(message, status_code=HTTPStatus.NOT_FOUND, code="not_found")


def init_app(app: Flask) -> None:
    """
    Register problem+json handlers.

    Notes
    -----
    - 4xx are logged as warnings, 5xx as errors with ``exc_info``.
    - Store outages (database or Redis) become 503, never 500.
    """

    @app.errorhandler(APIError)
    def handle_api_error(err: APIError):
        level = log.error if err.status_code >= 500 else log.warning
        level("api.error", extra={"reason": err.code, "path": request.path})
        return problem_response(err.status_code, err.code, err.message, err.details or None)

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        status = int(err.code or HTTPStatus.INTERNAL_SERVER_ERROR)
        code = STATUS_CODES.get(status, "error")
        if status == HTTPStatus.NOT_FOUND:
            message = f"Route '{request.path}' not found"
        else:
            message = (err.description or code.replace("_", " ").capitalize()).strip()
        log.warning("http.error", extra={"reason": code, "path": request.path})
        return problem_response(status, code, message)

    @app.errorhandler(MarshmallowValidationError)
    def handle_validation_error(err: MarshmallowValidationError):
        log.warning("api.validation_failed", extra={"path": request.path})
        return problem_response(
            HTTPStatus.UNPROCESSABLE_ENTITY,
            "validation_error",
            "Validation failed",
            {"errors": err.messages},
        )

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err: IntegrityError):
        # Raw DB messages stay in the logs
        log.error("db.integrity_error", extra={"path": request.path}, exc_info=True)
        return problem_response(HTTPStatus.CONFLICT, "conflict", "Resource conflict")

    @app.errorhandler(OperationalError)
    @app.errorhandler(RedisError)
    def handle_store_outage(err: Exception):
        log.error("store.unavailable", extra={"reason": type(err).__name__}, exc_info=True)
        return problem_response(
            HTTPStatus.SERVICE_UNAVAILABLE,
            "service_unavailable",
            "Service temporarily unavailable",
        )

    @app.errorhandler(Exception)
    def handle_unexpected_error(err: Exception):
        log.error("unhandled.exception", extra={"path": request.path}, exc_info=True)
        return problem_response(
            HTTPStatus.INTERNAL_SERVER_ERROR, "internal_server_error", "Unexpected error"
        )
