# token_authority/services/_shared/base.py
from __future__ import annotations

import logging
from dataclasses import dataclass

from token_authority.core import errors as api_errors
from token_authority.services._shared.errors import (
    InvalidCredentialsError,
    ServiceError,
    TokenError,
)

log = logging.getLogger(__name__)


@dataclass(slots=True)
class ServiceContext:
    """
    Carry cross-cutting request-scoped data (auth, request ids, etc.).

    :param subject: Authenticated principal subject, when known.
    :param request_id: Correlation id for logging/tracing.
    """

    subject: str | None = None
    request_id: str | None = None


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Centralize error translation so the API layer stays thin.
    * Carry the request-scoped :class:`ServiceContext`.

    Notes
    -----
    - Services never touch HTTP objects; they receive DTOs and ports.
    """

    def __init__(self, *, ctx: ServiceContext | None = None) -> None:
        """
        Initialize the base service.

        :param ctx: Optional request-scoped context (auth, tracing).
        :type ctx: ServiceContext | None
        """
        self.ctx = ctx or ServiceContext()

    # -------------------------- Error handling ------------------------------

    def translate_exceptions(self, exc: Exception) -> Exception:
        """
        Map domain/service-level errors to API-level (HTTP) errors.

        Every token failure collapses into the same ``401`` so callers cannot
        learn which check failed; the precise class is logged instead.

        :param exc: Exception raised within the service.
        :type exc: Exception
        :returns: Translated exception ready to be re-raised.
        :rtype: Exception
        """
        if isinstance(exc, InvalidCredentialsError):
            # → 401 with a credentials-specific message (no token involved)
            return api_errors.Unauthorized("Invalid credentials")

        if isinstance(exc, TokenError):
            # → 401 Unauthorized, detail intentionally generic
            log.info("auth.rejected", extra={"reason": exc.reason, "subject": self.ctx.subject})
            return api_errors.Unauthorized()

        # Any other ServiceError subclass → 400 Bad Request
        if isinstance(exc, ServiceError):
            return api_errors.APIError(
                message=str(exc),
                status_code=400,
                code="bad_request",
            )

        # Fallback: return untouched (will bubble up to Flask handler)
        return exc
