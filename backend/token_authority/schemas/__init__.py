from token_authority.schemas.auth import (
    LoginSchema,
    PrincipalSchema,
    RotateBodySchema,
    TokenPairSchema,
    ValidateTokenSchema,
    ValidityResponseSchema,
)

__all__ = [
    "LoginSchema",
    "PrincipalSchema",
    "RotateBodySchema",
    "TokenPairSchema",
    "ValidateTokenSchema",
    "ValidityResponseSchema",
]
