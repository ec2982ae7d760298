# Salter - Main Package
#
# Local, single-user-at-a-time credential vault: account records encrypted
# at rest in a single file, with authentication and user management on top.

__version__ = "1.0.0"
__author__ = "Salter Team"
__description__ = "Local encrypted credential vault"

from .config import SalterConfig, load_config
from .password_hasher import PasswordHasher
from .services import Services, build_services
from .users import AuthenticationService, Permission, Role, User, UserManager

__all__ = [
    "__version__",
    "SalterConfig",
    "load_config",
    "PasswordHasher",
    "Services",
    "build_services",
    "AuthenticationService",
    "Permission",
    "Role",
    "User",
    "UserManager",
]
