"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and should never import or depend
on Flask, HTTP, or SQLAlchemy directly. They serve as stable contracts between
stores, token primitives, and application services.

The translation to HTTP responses (RFC 7807) is handled by
``token_authority/core/errors.py`` via ``BaseService.translate_exceptions()``.
Token failures are deliberately collapsed into a single ``401`` there; the
distinct classes below exist for logging and diagnostics only.
"""

from __future__ import annotations

# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - They can be safely raised from stores, token primitives or services.
    - The API layer or BaseService will later translate them to APIError.
    """

    pass


class TokenError(ServiceError):
    """
    Base class for every failure in the token lifecycle.

    :cvar reason: Short, stable, machine-friendly failure class used in logs.
    """

    reason = "token_error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.reason.replace("_", " ").capitalize())


# --------------------------------------------------------------------------- #
# Verification failures
# --------------------------------------------------------------------------- #


class InvalidSignatureError(TokenError):
    """Malformed encoding, signature mismatch, unsupported algorithm or missing claims."""

    reason = "invalid_signature"


class TokenExpiredError(TokenError):
    """The token's ``exp`` claim lies in the past."""

    reason = "expired"


class WrongTokenTypeError(TokenError):
    """An access token was presented where a refresh token is required, or vice versa."""

    reason = "wrong_token_type"


class SubjectMismatchError(TokenError):
    """The token's subject differs from the expected principal."""

    reason = "subject_mismatch"


class TokenRevokedError(TokenError):
    """The access token is present in the blacklist."""

    reason = "revoked"


class UnauthorizedError(TokenError):
    """
    Refresh token not usable: consumed, revoked or never issued by this authority.

    No finer distinction is exposed on purpose.
    """

    reason = "unauthorized"


class InvalidCredentialsError(TokenError):
    """Login credentials did not match any principal."""

    reason = "invalid_credentials"


class TransportFailureError(TokenError):
    """The delegation call to the token authority failed or timed out."""

    reason = "transport_failure"


class PrincipalNotFoundError(TokenError):
    """
    Raised when a token subject no longer maps to a known principal.

    :param subject: Subject claim that could not be resolved.
    :type subject: str
    """

    reason = "principal_not_found"

    def __init__(self, subject: str) -> None:
        super().__init__(f"Principal not found: {subject}")
        self.subject = subject


# --------------------------------------------------------------------------- #
# Configuration
# --------------------------------------------------------------------------- #


class ConfigurationError(RuntimeError):
    """Fatal startup error: the token settings are missing or invalid."""
