"""WSGI middleware enforcing bearer authentication at the edge."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from uuid import uuid4

from flask import Flask
from werkzeug.wrappers import Request, Response

from token_authority.api.deps import parse_bearer
from token_authority.core.errors import PROBLEM_MIMETYPE, build_problem
from token_authority.core.logger import CORRELATION_HEADERS, REQUEST_ID_HEADER
from token_authority.services._shared.ports import TokenAuthority

log = logging.getLogger(__name__)

DEFAULT_PUBLIC_PREFIXES = ("/auth/", "/health")


class EdgeAuthMiddleware:
    """
    Gate every non-public request on a :class:`TokenAuthority` verdict.

    - Public path prefixes are forwarded untouched.
    - A missing or malformed ``Authorization: Bearer`` header is a 401
      before any token parsing.
    - Otherwise the authority decides; ``False`` (including transport
      failures, which the authority reports as ``False``) is a 401.
    - Accepted requests are forwarded unmodified.

    :param wsgi_app: Downstream WSGI application.
    :param authority: Local or remote token authority.
    :param public_prefixes: Path prefixes that skip the check.
    """

    def __init__(
        self,
        wsgi_app,
        authority: TokenAuthority,
        public_prefixes: Iterable[str] = DEFAULT_PUBLIC_PREFIXES,
    ) -> None:
        self.wsgi_app = wsgi_app
        self.authority = authority
        self.public_prefixes = tuple(public_prefixes)

    def is_public(self, path: str) -> bool:
        """
        Match whole path segments: ``/health`` covers ``/health`` and
        ``/health/live`` but not ``/healthz-admin``. A prefix ending in ``/``
        covers everything below it.
        """
        for prefix in self.public_prefixes:
            if path == prefix.rstrip("/") or path.startswith(prefix.rstrip("/") + "/"):
                return True
        return False

    def __call__(self, environ, start_response):
        request = Request(environ)
        if request.method == "OPTIONS" or self.is_public(request.path):
            return self.wsgi_app(environ, start_response)

        token = parse_bearer(request.headers.get("Authorization"))
        if token is None:
            log.info("edge.rejected", extra={"path": request.path, "reason": "missing_bearer"})
            return self._unauthorized(request)(environ, start_response)

        if not self.authority.is_token_valid(token):
            log.info("edge.rejected", extra={"path": request.path, "reason": "invalid_token"})
            return self._unauthorized(request)(environ, start_response)

        return self.wsgi_app(environ, start_response)

    @staticmethod
    def _unauthorized(request: Request) -> Response:
        request_id = next(
            (request.headers[h] for h in CORRELATION_HEADERS if request.headers.get(h)),
            str(uuid4()),
        )
        problem = build_problem(
            status=401,
            code="unauthorized",
            message="Unauthorized",
            instance=request.path,
            request_id=request_id,
        )
        response = Response(json.dumps(problem), status=401, mimetype=PROBLEM_MIMETYPE)
        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["WWW-Authenticate"] = "Bearer"
        return response


class AppContextAuthority:
    """Run an in-process authority inside an application context.

    WSGI middleware executes before Flask pushes its context, and the SQL
    stores need one for their scoped session.
    """

    def __init__(self, app: Flask, inner: TokenAuthority) -> None:
        self.app = app
        self.inner = inner

    def is_token_valid(self, token: str) -> bool:
        with self.app.app_context():
            return self.inner.is_token_valid(token)


def build_authority(app: Flask) -> TokenAuthority:
    """
    Pick the authority strategy from configuration.

    ``AUTH_AUTHORITY_URL`` set: delegate over HTTP. Otherwise validate locally
    against this application's own stores.
    """
    base_url = app.config.get("AUTH_AUTHORITY_URL")
    if base_url:
        from token_authority.infra.http.remote_authority import RemoteTokenAuthority

        return RemoteTokenAuthority(
            base_url,
            timeout=float(app.config.get("AUTH_DELEGATION_TIMEOUT", 2.0)),
        )

    from token_authority.services.auth.authority import LocalTokenAuthority

    service = app.extensions["auth_service"]
    return AppContextAuthority(app, LocalTokenAuthority(service.validator))


def init_app(app: Flask, authority: TokenAuthority | None = None) -> None:
    """Wrap ``app.wsgi_app`` with the edge gate when ``EDGE_AUTH_ENABLED``."""
    if not app.config.get("EDGE_AUTH_ENABLED", False):
        return
    app.wsgi_app = EdgeAuthMiddleware(
        app.wsgi_app,
        authority or build_authority(app),
        public_prefixes=app.config.get("EDGE_PUBLIC_PREFIXES", DEFAULT_PUBLIC_PREFIXES),
    )
    app.extensions["edge_auth"] = app.wsgi_app
