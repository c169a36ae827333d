"""Delegated token validation against the owning token service."""

from __future__ import annotations

import logging

import requests

from token_authority.services._shared.errors import TransportFailureError

log = logging.getLogger(__name__)

VALIDATE_PATH = "/auth/validate-token"


class RemoteTokenAuthority:
    """
    :class:`~token_authority.services._shared.ports.TokenAuthority` that asks
    the token service over HTTP.

    :param base_url: Root URL of the token service (e.g. ``http://auth:5000``).
    :param timeout: Per-call bound in seconds, covering connect and read.
    :param session: Optional ``requests.Session`` for connection reuse.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 2.0,
        session: requests.Session | None = None,
    ) -> None:
        self.url = base_url.rstrip("/") + VALIDATE_PATH
        self.timeout = timeout
        self.session = session or requests.Session()

    def check(self, token: str) -> bool:
        """
        Return the authority's verdict.

        :raises TransportFailureError: Network error, timeout, non-200 status
            or a body that is not ``{"valid": bool}``.
        """
        try:
            resp = self.session.post(self.url, json={"token": token}, timeout=self.timeout)
        except requests.RequestException as exc:
            raise TransportFailureError(f"{type(exc).__name__} calling token service") from exc

        if resp.status_code != 200:
            raise TransportFailureError(f"Token service answered {resp.status_code}")
        try:
            body = resp.json()
        except ValueError as exc:
            raise TransportFailureError("Token service returned a non-JSON body") from exc

        valid = body.get("valid") if isinstance(body, dict) else None
        if not isinstance(valid, bool):
            raise TransportFailureError("Token service returned a malformed body")
        return valid

    def is_token_valid(self, token: str) -> bool:
        try:
            return self.check(token)
        except TransportFailureError as exc:
            log.warning("token.delegation.failed", extra={"reason": str(exc)})
            return False
