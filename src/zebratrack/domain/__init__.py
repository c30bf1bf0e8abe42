"""Domain value objects."""

from .entity_key import EntityKey, EntitySource
from .frame import Frame
from .models import Activity, Project, Role
from .timesheet import Timesheet

__all__ = [
    "Activity",
    "EntityKey",
    "EntitySource",
    "Frame",
    "Project",
    "Role",
    "Timesheet",
]
