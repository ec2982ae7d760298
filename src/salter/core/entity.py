from dataclasses import dataclass, field
from uuid import UUID, uuid4


@dataclass(frozen=True, eq=False, kw_only=True)
class Entity:
    """Base for persisted records.

    The id is assigned once at construction; equality and hashing use it
    alone, so two values with the same id are the same record.
    """
    id: UUID = field(default_factory=uuid4)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Entity):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)
