"""Projects and activities known to Zebra."""

import logging
from typing import Any, Iterable, Optional

from .api.zebra_client import ZebraClient
from .domain.entity_key import EntityKey
from .domain.models import Activity, Project
from .exceptions import RecordFormatError

logger = logging.getLogger(__name__)


def project_from_api(data: dict[str, Any]) -> Project:
    """Build a project and its activities from a Zebra API record.

    Raises:
        RecordFormatError: If id or name is missing or invalid
    """
    if not isinstance(data, dict) or "id" not in data or "name" not in data:
        raise RecordFormatError(f"Project record must have 'id' and 'name': {data!r}")

    try:
        project_key = EntityKey.zebra(data["id"])
        activities = tuple(
            Activity(
                entity_key=EntityKey.zebra(activity["id"]),
                name=activity.get("name") or "",
                description=activity.get("description") or "",
                project_entity_key=project_key,
                alias=activity.get("alias"),
            )
            for activity in data.get("activities") or []
        )
        return Project(
            entity_key=project_key,
            name=data["name"],
            description=data.get("description") or "",
            status=int(data.get("status") or 0),
            activities=activities,
        )
    except (KeyError, TypeError, AttributeError, ValueError) as e:
        raise RecordFormatError(f"Invalid project record {data.get('id')}: {e}") from e


class ProjectCatalog:
    """Lookup of projects and activities by entity key or alias."""

    def __init__(self, projects: Iterable[Project] = ()) -> None:
        self.projects: dict[EntityKey, Project] = {}
        self.activities: dict[EntityKey, Activity] = {}
        self.add(projects)

    @classmethod
    def from_client(cls, client: ZebraClient) -> "ProjectCatalog":
        """Load every Zebra project, skipping records that cannot be read."""
        projects = []
        for data in client.get_projects():
            try:
                projects.append(project_from_api(data))
            except RecordFormatError as e:
                logger.warning(f"Skipping project: {e}")
        logger.info(f"Loaded {len(projects)} projects from Zebra")
        return cls(projects)

    def add(self, projects: Iterable[Project]) -> None:
        for project in projects:
            self.projects[project.entity_key] = project
            for activity in project.activities:
                self.activities[activity.entity_key] = activity

    def get_project(self, key: EntityKey) -> Optional[Project]:
        return self.projects.get(key)

    def get_activity(self, key: EntityKey) -> Optional[Activity]:
        return self.activities.get(key)

    def get_activity_by_alias(self, alias: str) -> Optional[Activity]:
        for activity in self.activities.values():
            if activity.alias == alias:
                return activity
        return None

    def get_project_name(self, key: EntityKey) -> Optional[str]:
        project = self.projects.get(key)
        return project.name if project is not None else None
