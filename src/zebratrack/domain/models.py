"""Activity, role and project value objects."""

from dataclasses import dataclass, field
from typing import Any, Optional

from ..exceptions import RecordFormatError, ValidationError
from .entity_key import EntityKey


@dataclass(frozen=True)
class Role:
    """A Zebra role the user can book time under."""

    id: int
    parent_id: Optional[int] = None
    name: str = ""
    full_name: str = ""
    type: str = ""
    status: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Full role record, as stored with timesheets."""
        return {
            "id": self.id,
            "name": self.name,
            "fullName": self.full_name,
            "type": self.type,
            "status": self.status,
        }

    def to_short_dict(self) -> dict[str, Any]:
        """Abbreviated role record, as stored with frames."""
        return {"id": self.id, "name": self.name}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Role":
        if not isinstance(data, dict) or "id" not in data:
            raise RecordFormatError(f"Role record must have an 'id': {data!r}")
        try:
            role_id = int(data["id"])
        except (TypeError, ValueError) as e:
            raise RecordFormatError(f"Invalid role id: {data['id']!r}") from e
        parent_id = data.get("parentId", data.get("parent_id"))
        if parent_id is not None:
            try:
                parent_id = int(parent_id)
            except (TypeError, ValueError) as e:
                raise RecordFormatError(f"Invalid role parent id: {parent_id!r}") from e
        return cls(
            id=role_id,
            parent_id=parent_id,
            name=data.get("name") or "",
            full_name=data.get("fullName", data.get("full_name")) or "",
            type=data.get("type") or "",
            status=str(data.get("status") or ""),
        )


@dataclass(frozen=True)
class Activity:
    """Something time is booked against. Belongs to a project."""

    entity_key: EntityKey
    name: str
    description: str
    project_entity_key: EntityKey
    alias: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.entity_key.to_dict(),
            "name": self.name,
            "desc": self.description,
            "project": self.project_entity_key.to_dict(),
            "alias": self.alias,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Activity":
        """Rebuild an activity from its stored form.

        Raises:
            RecordFormatError: If key, project or name is missing
        """
        if not isinstance(data, dict) or "key" not in data or "project" not in data:
            raise RecordFormatError("Activity record must have 'key' and 'project'")
        if "name" not in data:
            raise RecordFormatError("Activity record must have a 'name'")
        try:
            return cls(
                entity_key=EntityKey.from_dict(data["key"]),
                name=data["name"],
                description=data.get("desc") or "",
                project_entity_key=EntityKey.from_dict(data["project"]),
                alias=data.get("alias"),
            )
        except ValidationError as e:
            raise RecordFormatError(f"Invalid activity record: {e}") from e


@dataclass(frozen=True)
class Project:
    """A project with its activities."""

    entity_key: EntityKey
    name: str
    description: str = ""
    status: int = 1
    activities: tuple[Activity, ...] = field(default_factory=tuple)

    def get_activity(self, activity_key: EntityKey) -> Optional[Activity]:
        for activity in self.activities:
            if activity.entity_key == activity_key:
                return activity
        return None
