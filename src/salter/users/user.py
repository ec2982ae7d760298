"""
User accounts.

A user has a unique username, a salted password hash and a Role. One
account is special: the default user, username "default", always an Admin,
the account that bootstraps access when no other accounts exist. It is
created when the store is first set up and cannot be renamed or deleted.
"""

import dataclasses
from dataclasses import dataclass
from typing import Optional
from uuid import UUID, uuid4

from ..core.entity import Entity
from .role import Permission, Role

DEFAULT_USERNAME = "default"

# Well-known credentials of a freshly synthesized default user.
DEFAULT_PASSWORD_HASH = (
    "0E443E662DB39E6780D3CD335AD8E93FD756BAEB667137281319D367DE723038"
    "951090B77CD6D8DB7361033B0481EBDA5FDD4CFDD1D69EC83EBE9525DBECB2FF"
)
DEFAULT_SALT = (
    "909629B522964BCB0A76BB53E6D183C749225E54EF785BD39300C7A912E47C48"
    "21A85294A5455372B75EEA2B9FC0662735250CCDFAC1B4F510828C0E3AC95706"
)


@dataclass(frozen=True, eq=False, repr=False, kw_only=True)
class User(Entity):
    """An immutable account record. Changes produce a new value with the same id."""
    username: str
    password_hash: str
    salt: str
    role: Role = Role.USER
    is_default: bool = False

    def __post_init__(self):
        for name in ("username", "password_hash", "salt"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"{name} cannot be empty.")
        if not isinstance(self.role, Role):
            raise ValueError(f"role must be a Role, got {self.role!r}")

    @classmethod
    def create(cls, username: str, password_hash: str, salt: str, role: Role = Role.USER) -> "User":
        """A new, not yet persisted, non-default account with a fresh id."""
        return cls(username=username, password_hash=password_hash, salt=salt, role=role)

    @classmethod
    def create_default(
        cls,
        id: Optional[UUID] = None,
        password_hash: str = DEFAULT_PASSWORD_HASH,
        salt: str = DEFAULT_SALT,
    ) -> "User":
        """The default administrator, either restored (given id) or fresh."""
        return cls(
            id=id or uuid4(),
            username=DEFAULT_USERNAME,
            password_hash=password_hash,
            salt=salt,
            role=Role.ADMIN,
            is_default=True,
        )

    def has_role(self, role: Role) -> bool:
        return self.role is role

    def has_permission(self, permission: Permission) -> bool:
        return self.role.has_permission(permission)

    def with_role(self, role: Role) -> "User":
        return dataclasses.replace(self, role=role)

    def with_username(self, username: str) -> "User":
        return dataclasses.replace(self, username=username)

    def with_credentials(self, password_hash: str, salt: str) -> "User":
        return dataclasses.replace(self, password_hash=password_hash, salt=salt)

    def __repr__(self) -> str:
        # Keep hash and salt out of logs and tracebacks
        return (
            f"User(id={self.id}, username={self.username!r}, "
            f"role={self.role.role_name}, is_default={self.is_default})"
        )
