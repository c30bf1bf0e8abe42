"""Reduce frames to project, activity and issue-key time totals.

Times are whole seconds. Active frames are ignored.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterable, Optional

from ..domain.entity_key import EntityKey
from ..domain.frame import Frame
from ..domain.models import Activity

NO_ISSUE_KEY = "(no issue key)"

ProjectNameLookup = Callable[[EntityKey], Optional[str]]


def _issue_key_sort_key(issue_key: str) -> tuple[bool, str]:
    return (issue_key == NO_ISSUE_KEY, issue_key.casefold())


@dataclass
class IssueKeyTotal:
    issue_key: str
    time: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"issueKey": self.issue_key, "time": self.time}


@dataclass
class ActivityTotal:
    entity_key: EntityKey
    name: str
    time: int = 0
    issue_keys: list[IssueKeyTotal] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "entityKey": self.entity_key.to_dict(),
            "name": self.name,
            "time": self.time,
            "issueKeys": [total.to_dict() for total in self.issue_keys],
        }


@dataclass
class ProjectTotal:
    entity_key: EntityKey
    name: str
    time: int = 0
    activities: list[ActivityTotal] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "entityKey": self.entity_key.to_dict(),
            "name": self.name,
            "time": self.time,
            "activities": [activity.to_dict() for activity in self.activities],
        }


@dataclass
class Report:
    from_time: datetime
    to_time: datetime
    projects: list[ProjectTotal]
    time: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "timespan": {"from": self.from_time.isoformat(), "to": self.to_time.isoformat()},
            "projects": [project.to_dict() for project in self.projects],
            "time": self.time,
        }


@dataclass
class IssueKeyGroup:
    """Frames sharing one activity and the same set of issue keys."""

    issue_keys: tuple[str, ...]
    activity: Activity
    time: int = 0
    frames: list[Frame] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "issueKeys": list(self.issue_keys),
            "time": self.time,
            "activity": {
                "entityKey": self.activity.entity_key.to_dict(),
                "name": self.activity.name,
                "time": self.time,
            },
        }


@dataclass
class IssueKeyReport:
    from_time: datetime
    to_time: datetime
    groups: list[IssueKeyGroup]
    time: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "timespan": {"from": self.from_time.isoformat(), "to": self.to_time.isoformat()},
            "issueKeys": [group.to_dict() for group in self.groups],
            "time": self.time,
        }


class ReportAggregator:
    """Builds time reports from frames."""

    def __init__(self, project_lookup: Optional[ProjectNameLookup] = None) -> None:
        """Initialize aggregator.

        Args:
            project_lookup: Returns a project name for a project key, if known
        """
        self.project_lookup = project_lookup

    def _project_name(self, key: EntityKey) -> str:
        name = self.project_lookup(key) if self.project_lookup else None
        return name if name is not None else f"Project {key.to_string()}"

    def generate_report(
        self, frames: Iterable[Frame], from_time: datetime, to_time: datetime
    ) -> Report:
        """Group frames by project, activity and issue key.

        A frame with several issue keys is split evenly across them; the
        remainder of the integer division goes to the first key, so issue
        key totals always add up to the activity total. Frames without an
        issue key count towards NO_ISSUE_KEY.
        """
        projects: dict[EntityKey, ProjectTotal] = {}
        activities: dict[tuple[EntityKey, EntityKey], ActivityTotal] = {}
        issue_totals: dict[tuple[EntityKey, EntityKey, str], IssueKeyTotal] = {}
        total = 0

        for frame in frames:
            duration = frame.duration
            if duration is None:
                continue

            project_key = frame.activity.project_entity_key
            activity_key = frame.activity.entity_key

            project = projects.get(project_key)
            if project is None:
                project = ProjectTotal(project_key, self._project_name(project_key))
                projects[project_key] = project

            activity = activities.get((project_key, activity_key))
            if activity is None:
                activity = ActivityTotal(activity_key, frame.activity.name)
                activities[(project_key, activity_key)] = activity
                project.activities.append(activity)

            project.time += duration
            activity.time += duration
            total += duration

            issue_keys = list(frame.issue_keys) or [NO_ISSUE_KEY]
            share, remainder = divmod(duration, len(issue_keys))
            for index, issue_key in enumerate(issue_keys):
                issue_total = issue_totals.get((project_key, activity_key, issue_key))
                if issue_total is None:
                    issue_total = IssueKeyTotal(issue_key)
                    issue_totals[(project_key, activity_key, issue_key)] = issue_total
                    activity.issue_keys.append(issue_total)
                issue_total.time += share + (remainder if index == 0 else 0)

        for project in projects.values():
            for activity in project.activities:
                activity.issue_keys.sort(key=lambda item: _issue_key_sort_key(item.issue_key))
            project.activities.sort(key=lambda item: item.name.casefold())

        return Report(
            from_time=from_time,
            to_time=to_time,
            projects=sorted(projects.values(), key=lambda item: item.name.casefold()),
            time=total,
        )

    def generate_report_by_issue_key(
        self, frames: Iterable[Frame], from_time: datetime, to_time: datetime
    ) -> IssueKeyReport:
        """Group frames by their whole issue-key set and activity, without splitting."""
        groups: dict[tuple[tuple[str, ...], EntityKey], IssueKeyGroup] = {}
        total = 0

        for frame in frames:
            duration = frame.duration
            if duration is None:
                continue

            issue_keys = tuple(sorted(frame.issue_keys)) or (NO_ISSUE_KEY,)
            group_key = (issue_keys, frame.activity.entity_key)
            group = groups.get(group_key)
            if group is None:
                group = IssueKeyGroup(issue_keys=issue_keys, activity=frame.activity)
                groups[group_key] = group

            group.time += duration
            group.frames.append(frame)
            total += duration

        ordered = sorted(
            groups.values(),
            key=lambda group: (
                group.activity.name.casefold(),
                _issue_key_sort_key(group.issue_keys[0]),
            ),
        )
        return IssueKeyReport(from_time=from_time, to_time=to_time, groups=ordered, time=total)
