from token_authority.models.token import BlacklistedToken, RefreshToken
from token_authority.models.user import Role, User, user_roles

__all__ = [
    "BlacklistedToken",
    "RefreshToken",
    "Role",
    "User",
    "user_roles",
]
