"""Key derivation shared by the store adapters."""

from __future__ import annotations

import hashlib


def token_digest(token: str) -> str:
    """
    Stable, fixed-length lookup key for a token value.

    Store backends index tokens by this digest so keys stay short and raw
    tokens never appear in key listings.
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
