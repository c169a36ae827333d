"""Edge gate: rejects unauthenticated requests before they reach a handler."""

from token_authority.gateway.middleware import EdgeAuthMiddleware, init_app

__all__ = ["EdgeAuthMiddleware", "init_app"]
