"""Tagged identifiers for local and Zebra-sourced entities."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from ..exceptions import ValidationError
from .identifiers import generate_uuid, validate_uuid


class EntitySource(str, Enum):
    """Origin of an entity."""

    LOCAL = "local"
    ZEBRA = "zebra"


@dataclass(frozen=True, eq=False)
class EntityKey:
    """Identifier tagged with its source.

    Local keys carry an 8 hex character id, Zebra keys a non-negative int.
    Keys compare equal when source and canonical id string match.
    """

    source: EntitySource
    id: Union[str, int]

    def __post_init__(self) -> None:
        try:
            source = EntitySource(self.source)
        except ValueError as e:
            raise ValidationError(f"Unknown entity source: {self.source!r}") from e
        object.__setattr__(self, "source", source)

        if source is EntitySource.LOCAL:
            object.__setattr__(self, "id", validate_uuid(self.id))
            return

        value = self.id
        if isinstance(value, bool):
            raise ValidationError(f"Invalid Zebra id: {value!r}")
        if isinstance(value, str):
            if not value.strip().isdigit():
                raise ValidationError(f"Invalid Zebra id: {value!r}")
            value = int(value.strip())
        if not isinstance(value, int) or value < 0:
            raise ValidationError(f"Invalid Zebra id: {value!r}")
        object.__setattr__(self, "id", value)

    @classmethod
    def local(cls, uuid: str | None = None) -> "EntityKey":
        """Create a local key, generating a new id if none is given."""
        return cls(EntitySource.LOCAL, uuid or generate_uuid())

    @classmethod
    def zebra(cls, zebra_id: Union[int, str]) -> "EntityKey":
        """Create a Zebra key."""
        return cls(EntitySource.ZEBRA, zebra_id)

    @property
    def is_zebra(self) -> bool:
        return self.source is EntitySource.ZEBRA

    @property
    def is_local(self) -> bool:
        return self.source is EntitySource.LOCAL

    def to_string(self) -> str:
        """Canonical string form of the id."""
        return str(self.id)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EntityKey):
            return NotImplemented
        return (self.source, self.to_string()) == (other.source, other.to_string())

    def __hash__(self) -> int:
        return hash((self.source, self.to_string()))

    def __str__(self) -> str:
        return f"{self.source.value}:{self.to_string()}"

    def to_dict(self) -> dict[str, str]:
        return {"source": self.source.value, "id": self.to_string()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EntityKey":
        """Rebuild a key from its stored form.

        Raises:
            ValidationError: If source or id is missing or invalid
        """
        if not isinstance(data, dict) or "source" not in data or "id" not in data:
            raise ValidationError(f"Entity key must have 'source' and 'id': {data!r}")
        return cls(data["source"], data["id"])
