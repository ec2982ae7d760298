# Salter: User DTO
#
# On-disk shape of a user record:
#   {"Id": "<uuid>", "Username": "...", "PasswordHash": "<hex>",
#    "Salt": "<hex>", "IsDefault": false, "RoleName": "User"}

from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from uuid import UUID

from ..exceptions import ValidationError
from ..users.role import Role
from ..users.user import DEFAULT_USERNAME
from .dto import DataTransferObject

IS_REQUIRED = " is required."


@dataclass
class UserDto(DataTransferObject):
    """Mutable, serializable projection of a User."""
    id: str = ""
    username: str = ""
    password_hash: str = ""
    salt: str = ""
    is_default: bool = False
    role_name: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "Id": self.id,
            "Username": self.username,
            "PasswordHash": self.password_hash,
            "Salt": self.salt,
            "IsDefault": self.is_default,
            "RoleName": self.role_name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserDto":
        if not isinstance(data, dict):
            raise ValidationError("Each user record must be a JSON object.")
        return cls(
            id=data.get("Id") or "",
            username=data.get("Username") or "",
            password_hash=data.get("PasswordHash") or "",
            salt=data.get("Salt") or "",
            is_default=data.get("IsDefault", False),
            role_name=data.get("RoleName") or "",
        )

    @property
    def uuid(self) -> Optional[UUID]:
        try:
            return UUID(str(self.id))
        except ValueError:
            return None

    def validate(self) -> None:
        problems: List[str] = []

        if not self.id:
            problems.append("Id" + IS_REQUIRED)
        elif self.uuid is None or self.uuid.int == 0:
            problems.append("Id is not a valid identifier.")

        for field_name, label in (
            ("username", "Username"),
            ("password_hash", "PasswordHash"),
            ("salt", "Salt"),
        ):
            value = getattr(self, field_name)
            if not isinstance(value, str) or not value.strip():
                problems.append(label + IS_REQUIRED)

        if not isinstance(self.is_default, bool):
            problems.append("IsDefault must be true or false.")

        role_is_valid = False
        if not isinstance(self.role_name, str) or not self.role_name.strip():
            problems.append("RoleName" + IS_REQUIRED)
        elif not Role.is_valid_name(self.role_name):
            problems.append("Invalid RoleName.")
        else:
            role_is_valid = True

        if self.is_default is True and self.username != DEFAULT_USERNAME:
            problems.append(f"Default user must have username '{DEFAULT_USERNAME}'.")
        if self.is_default is not True and self.username == DEFAULT_USERNAME:
            problems.append(f"Non-default user cannot have username '{DEFAULT_USERNAME}'.")
        if self.is_default is True and role_is_valid and Role.from_name(self.role_name) is not Role.ADMIN:
            problems.append(f"Default user must have role '{Role.ADMIN.role_name}'.")

        if problems:
            raise ValidationError("\n".join(problems))
