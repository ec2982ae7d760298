from abc import ABC, abstractmethod
from typing import Any, Dict, Type, TypeVar

D = TypeVar("D", bound="DataTransferObject")


class DataTransferObject(ABC):
    """Serializable record shape used only at the persistence boundary."""

    @abstractmethod
    def validate(self) -> None:
        """Raise ValidationError describing every problem with this record."""

    @abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready representation."""

    @classmethod
    @abstractmethod
    def from_dict(cls: Type[D], data: Dict[str, Any]) -> D:
        """Build from a decoded JSON object without validating."""
