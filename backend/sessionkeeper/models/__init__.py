from sessionkeeper.models.revoked_token import RevokedToken
from sessionkeeper.models.session import UserSession
from sessionkeeper.models.user import ROLE_ADMIN, ROLE_USER, ROLES, User

__all__ = [
    "ROLES",
    "ROLE_ADMIN",
    "ROLE_USER",
    "RevokedToken",
    "User",
    "UserSession",
]
