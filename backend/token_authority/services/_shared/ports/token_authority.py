from __future__ import annotations

from typing import Protocol


class TokenAuthority(Protocol):
    """
    Capability answering "is this access token currently valid?".

    Two interchangeable strategies implement it: a local one for components that
    hold the signing secret and the stores, and a remote one that delegates to
    the owning service over HTTP. Implementations MUST fail closed: any error
    yields ``False``.
    """

    def is_token_valid(self, token: str) -> bool: ...
