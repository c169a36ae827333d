"""Shared API helpers for bearer extraction, authorization and responses."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, TypeVar

from flask import Response, current_app, g, jsonify, request

from token_authority.core.errors import Forbidden, Unauthorized
from token_authority.core.extensions import get_auth_service
from token_authority.services._shared.base import BaseService
from token_authority.services._shared.errors import ServiceError

F = TypeVar("F", bound=Callable[..., Any])

BEARER_PREFIX = "Bearer "


def parse_bearer(header: str | None) -> str | None:
    """
    Extract the token from an ``Authorization: Bearer <token>`` value.

    :returns: The token, or ``None`` when the header is missing or malformed.
    """
    if not header or not header.startswith(BEARER_PREFIX):
        return None
    token = header[len(BEARER_PREFIX) :].strip()
    if not token or " " in token:
        return None
    return token


def bearer_token() -> str:
    """Return the request's bearer token or fail with 401 before any parsing."""

    token = parse_bearer(request.headers.get("Authorization"))
    if token is None:
        raise Unauthorized()
    return token


@contextmanager
def translated(service: BaseService) -> Iterator[None]:
    """Re-raise service errors as their API counterparts."""

    try:
        yield
    except ServiceError as exc:
        raise service.translate_exceptions(exc) from exc


def require_auth(func: F) -> F:
    """Ensure the request carries a valid access token.

    Stores the resolved principal in ``g.principal`` and the raw token in
    ``g.access_token`` for the handler.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        token = bearer_token()
        service = get_auth_service()
        with translated(service):
            g.principal = service.authenticate(token)
        g.access_token = token
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def require_role(role: str) -> Callable[[F], F]:
    """Ensure the authenticated principal holds ``role`` (flat membership)."""

    def decorator(func: F) -> F:
        @functools.wraps(func)
        @require_auth
        def wrapper(*args: Any, **kwargs: Any):
            if not g.principal.has_role(role):
                raise Forbidden("Insufficient role")
            return func(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request.endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]
