from abc import ABC, abstractmethod
from pathlib import Path
from typing import Generic, List, Optional, TypeVar, Union
from uuid import UUID

from ..core.entity import Entity
from ..encryption.encryptor import Encryptor

T = TypeVar("T", bound=Entity)


class Repository(ABC, Generic[T]):
    """
    Cache-backed store of entities of one type.

    The cache is the authoritative in-memory mirror of the persisted
    collection. ``cache`` means "trust memory"; ``get_records()`` means
    "trust disk". Call ``initialize()`` before anything else. The cache
    property falls back to a blocking disk read if that was skipped.
    """

    def __init__(self, location: Path, encryptor: Encryptor):
        self.location = Path(location)
        self.encryptor = encryptor
        self._cache: Optional[List[T]] = None
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def cache(self) -> List[T]:
        if self._cache is None:
            self._cache = self._read_records()
        return self._cache

    async def refresh_cache(self) -> None:
        """Replace the cache with what is on disk."""
        self._cache = await self.get_records()

    @abstractmethod
    def _read_records(self) -> List[T]:
        """Blocking read of every record from the backing store."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create the backing store if absent, otherwise load it into the cache."""

    @abstractmethod
    async def get_records(self) -> List[T]:
        """Re-read and decode every record from the backing store."""

    @abstractmethod
    async def add(self, record: T) -> None:
        """Append a record and persist."""

    @abstractmethod
    async def update(self, record: T) -> None:
        """Replace the record with the same id and persist."""

    @abstractmethod
    async def remove(self, target: Union[UUID, T]) -> None:
        """Remove a record by id (or by the record itself) and persist."""

    @abstractmethod
    async def clear_all(self) -> None:
        """Remove every record and persist."""

    @abstractmethod
    async def replace_all(self, records: List[T]) -> None:
        """Replace the whole collection in one write."""

    @abstractmethod
    async def delete_repository(self) -> None:
        """Delete the backing store and its key material."""
