"""Token lifecycle endpoints backed by :class:`AuthService`."""

from __future__ import annotations

from flask import Blueprint, Response, g, request
from marshmallow import ValidationError

from token_authority.api.deps import (
    bearer_token,
    json_response,
    require_auth,
    require_role,
    timing,
    translated,
)
from token_authority.core.errors import NotFound
from token_authority.core.extensions import get_auth_service
from token_authority.schemas import (
    LoginSchema,
    PrincipalSchema,
    RotateBodySchema,
    TokenPairSchema,
    ValidateTokenSchema,
    ValidityResponseSchema,
)
from token_authority.services._shared.errors import PrincipalNotFoundError
from token_authority.services.auth.dto import RotateIn

bp = Blueprint("auth", __name__)

login_schema = LoginSchema()
rotate_schema = RotateBodySchema()
validate_schema = ValidateTokenSchema()
validity_schema = ValidityResponseSchema()
pair_schema = TokenPairSchema()
principal_schema = PrincipalSchema()


@bp.post("/login")
@timing
def login():
    """Authenticate credentials and issue an access/refresh pair."""

    dto = login_schema.load(request.get_json(silent=True) or {})
    service = get_auth_service()
    with translated(service):
        pair = service.login(dto)
    return json_response(pair_schema.dump(pair))


@bp.post("/refresh_token")
@timing
def refresh_token():
    """Exchange the bearer refresh token for a new pair (single use)."""

    refresh = bearer_token()
    body = rotate_schema.load(request.get_json(silent=True) or {})
    service = get_auth_service()
    with translated(service):
        pair = service.rotate(RotateIn(refresh_token=refresh, access_token=body["access_token"]))
    return json_response(pair_schema.dump(pair))


@bp.post("/logout")
@timing
def logout():
    """Revoke the caller's refresh tokens and blacklist the bearer access token."""

    token = bearer_token()
    get_auth_service().logout(token)
    return Response(status=204)


@bp.post("/validate-token")
@timing
def validate_token():
    """Delegated validation: always ``200 {"valid": bool}``."""

    try:
        data = validate_schema.load(request.get_json(silent=True) or {})
    except ValidationError:
        return json_response(validity_schema.dump({"valid": False}))
    valid = get_auth_service().validate_delegated(data["token"])
    return json_response(validity_schema.dump({"valid": valid}))


@bp.get("/whoami")
@require_auth
@timing
def whoami():
    """Return the principal behind the bearer access token."""

    return json_response(principal_schema.dump(g.principal))


@bp.get("/principals/<string:email>")
@require_role("ADMIN")
@timing
def get_principal(email: str):
    """Look up any principal by email (administrators only)."""

    service = get_auth_service()
    try:
        principal = service.whoami(email)
    except PrincipalNotFoundError as exc:
        raise NotFound("Principal not found") from exc
    return json_response(principal_schema.dump(principal))
