from enum import Enum, Flag


class Permission(Flag):
    """Permissions a role can grant."""
    NONE = 0
    READ = 1 << 0
    WRITE = 1 << 1
    DELETE = 1 << 2


ADMIN_ROLE_NAME = "Admin"
USER_ROLE_NAME = "User"


class Role(Enum):
    """
    The two fixed roles. Each member carries its persisted name and its
    permission set; members are process-wide singletons.
    """
    ADMIN = (ADMIN_ROLE_NAME, Permission.READ | Permission.WRITE | Permission.DELETE)
    USER = (USER_ROLE_NAME, Permission.READ | Permission.WRITE)

    def __init__(self, role_name: str, permissions: Permission):
        self.role_name = role_name
        self.permissions = permissions

    @classmethod
    def from_name(cls, role_name: str) -> "Role":
        """Look up a role by its persisted name. Unknown names raise ValueError."""
        for role in cls:
            if role.role_name == role_name:
                return role
        raise ValueError(f"Invalid role name: {role_name!r}")

    @classmethod
    def is_valid_name(cls, role_name: str) -> bool:
        return any(role.role_name == role_name for role in cls)

    def has_permission(self, permission: Permission) -> bool:
        return (self.permissions & permission) == permission

    def __str__(self) -> str:
        return self.role_name
