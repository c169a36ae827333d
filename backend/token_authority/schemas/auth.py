"""Token-endpoint Marshmallow schemas (camelCase on the wire)."""

from __future__ import annotations

from marshmallow import EXCLUDE, Schema, fields, post_load, validate

from token_authority.services.auth.dto import LoginIn


class LoginSchema(Schema):
    """Input payload for authenticating a principal."""

    class Meta:
        unknown = EXCLUDE

    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, validate=validate.Length(min=1, max=128))

    @post_load
    def make_dto(self, data, **kwargs) -> LoginIn:
        return LoginIn(email=data["email"], password=data["password"])


class RotateBodySchema(Schema):
    """Optional body of ``/auth/refresh_token``: the access token to retire."""

    class Meta:
        unknown = EXCLUDE

    access_token = fields.String(data_key="accessToken", load_default=None, allow_none=True)


class ValidateTokenSchema(Schema):
    """Input payload of the delegated validation endpoint."""

    class Meta:
        unknown = EXCLUDE

    token = fields.String(required=True, validate=validate.Length(min=1))


class ValidityResponseSchema(Schema):
    valid = fields.Boolean(required=True)


class TokenPairSchema(Schema):
    """Response payload containing a freshly issued token pair."""

    access_token = fields.String(data_key="accessToken", required=True)
    refresh_token = fields.String(data_key="refreshToken", required=True)


class PrincipalSchema(Schema):
    """Identity details of a principal (never includes credentials)."""

    id = fields.Integer(required=True)
    email = fields.Email(required=True)
    display_name = fields.String(data_key="displayName", required=True)
    roles = fields.Method("dump_roles")

    def dump_roles(self, obj) -> list[str]:
        return sorted(obj.roles)
