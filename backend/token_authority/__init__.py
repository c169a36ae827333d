"""Expose the application factory at package level.

``from token_authority import create_app`` builds the token service.
"""

from __future__ import annotations

from .factory import create_app

__all__ = ["create_app"]
