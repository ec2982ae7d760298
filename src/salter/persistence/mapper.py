from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, Iterable, List, Type, TypeVar

from ..core.entity import Entity
from .dto import DataTransferObject

TModel = TypeVar("TModel", bound=Entity)
TDto = TypeVar("TDto", bound=DataTransferObject)


class Mapper(ABC, Generic[TModel, TDto]):
    """
    Maps between domain entities and their DTOs.

    Mapping to a DTO always succeeds. Mapping back validates first, and a
    single invalid DTO aborts the whole collection.
    """

    dto_type: Type[TDto]

    @abstractmethod
    def to_dto(self, model: TModel) -> TDto:
        """Project an entity onto its DTO."""

    @abstractmethod
    def _map_to_model(self, dto: TDto) -> TModel:
        """Build the entity from an already validated DTO."""

    def to_model(self, dto: TDto) -> TModel:
        dto.validate()
        return self._map_to_model(dto)

    def to_dtos(self, models: Iterable[TModel]) -> List[TDto]:
        return [self.to_dto(model) for model in models]

    def to_models(self, dtos: Iterable[TDto]) -> List[TModel]:
        return [self.to_model(dto) for dto in dtos]

    def dto_from_dict(self, data: Dict[str, Any]) -> TDto:
        return self.dto_type.from_dict(data)
