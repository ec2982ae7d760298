# Salter: User Management Module
#
# Roles, user accounts, account lifecycle and authentication.

from .authentication import AuthenticationService, validate_password
from .role import Permission, Role
from .user import DEFAULT_USERNAME, User
from .user_manager import UserManager

__all__ = [
    "AuthenticationService",
    "validate_password",
    "Permission",
    "Role",
    "DEFAULT_USERNAME",
    "User",
    "UserManager",
]
