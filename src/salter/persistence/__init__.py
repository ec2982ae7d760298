# Salter: Persistence Module
#
# Cache-backed repositories, the encrypted JSON file store, and the
# DTO/mapper layer that validates records read back from disk.

from .dto import DataTransferObject
from .json_repository import JsonRepository
from .mapper import Mapper
from .repository import Repository
from .user_dto import UserDto
from .user_mapper import UserMapper

__all__ = [
    "DataTransferObject",
    "JsonRepository",
    "Mapper",
    "Repository",
    "UserDto",
    "UserMapper",
]
