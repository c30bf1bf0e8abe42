"""Build timesheets from the frames of a day, and merge timesheets."""

import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Optional, Sequence, Union

from ..domain.frame import Frame
from ..domain.models import Activity, Role
from ..domain.timesheet import Timesheet, is_quarter_hour
from ..exceptions import NotFoundError, ValidationError
from ..frames.store import FrameStore
from ..report.aggregator import IssueKeyGroup, ReportAggregator
from ..utils.timezone import InstantLike, business_day_bounds, to_business_date
from .store import LocalTimesheetStore

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTION = "Time entry"
MINIMUM_HOURS = 0.25


def round_hours(seconds: int, activity: Activity) -> float:
    """Billable hours for a duration, in quarter hours.

    Up to a quarter hour is billed as a quarter hour. Activities whose alias
    starts with an underscore round down, all others to the nearest quarter.
    """
    hours = seconds / 3600
    if hours <= MINIMUM_HOURS:
        return MINIMUM_HOURS
    if (activity.alias or "").startswith("_"):
        return math.floor(hours / 0.25) * 0.25
    return math.floor(hours * 4 + 0.5) / 4


def combine_descriptions(frames: Iterable[Frame]) -> str:
    descriptions = [frame.description for frame in frames if frame.description]
    text = " ".join(dict.fromkeys(descriptions))
    return text if text.strip() else DEFAULT_DESCRIPTION


def determine_role(frames: Sequence[Frame]) -> Optional[Role]:
    """The role shared by all frames, else the most frequent one."""
    if not frames:
        return None
    first_role = frames[0].role
    if all(frame.role == first_role for frame in frames):
        return first_role

    counts = Counter(frame.role.id for frame in frames if frame.role is not None)
    if not counts:
        return None
    role_id = counts.most_common(1)[0][0]
    return next(frame.role for frame in frames if frame.role is not None and frame.role.id == role_id)


@dataclass
class AggregationResult:
    """Timesheets created, updated with new frames, or skipped for a day."""

    created: list[Timesheet] = field(default_factory=list)
    updated: list[Timesheet] = field(default_factory=list)
    skipped: list[Timesheet] = field(default_factory=list)
    dry_run: bool = False


class TimesheetAggregator:
    """Turns the frames of a day into local timesheets."""

    def __init__(
        self,
        frame_store: FrameStore,
        timesheet_store: LocalTimesheetStore,
        report_aggregator: Optional[ReportAggregator] = None,
    ) -> None:
        self.frame_store = frame_store
        self.timesheet_store = timesheet_store
        self.report_aggregator = report_aggregator or ReportAggregator()

    def from_frames(self, day: Union[date, InstantLike], dry_run: bool = False) -> AggregationResult:
        """Create one timesheet per activity and issue-key set of a day.

        Frames touching the business-zone day are used whole. Only completed
        frames on Zebra activities count. If frames of a group already belong
        to a timesheet of that day, the new frames are added to it (keeping
        its time) or the group is skipped when nothing is new.

        Args:
            day: Business-zone day
            dry_run: Compute the result without writing anything
        """
        target = to_business_date(day)
        start, end = business_day_bounds(target)
        result = AggregationResult(dry_run=dry_run)

        frames = [
            frame
            for frame in self.frame_store.filter(
                from_time=start, to_time=end, include_partial_frames=True
            )
            if not frame.is_active and frame.activity.entity_key.is_zebra
        ]
        if not frames:
            logger.info(f"No Zebra frames found for {target}")
            return result

        frames.sort(key=lambda frame: frame.start_time)
        report = self.report_aggregator.generate_report_by_issue_key(frames, start, end)

        for group in report.groups:
            self._apply_group(group, target, dry_run, result)

        logger.info(
            f"Timesheets for {target}: {len(result.created)} created, "
            f"{len(result.updated)} updated, {len(result.skipped)} skipped"
            + (" (dry run)" if dry_run else "")
        )
        return result

    def _apply_group(
        self, group: IssueKeyGroup, day: date, dry_run: bool, result: AggregationResult
    ) -> None:
        frame_uuids = [frame.uuid for frame in group.frames]

        existing = next(
            (
                timesheet
                for timesheet in self.timesheet_store.get_by_date(day)
                if set(frame_uuids).intersection(timesheet.frame_uuids)
            ),
            None,
        )
        if existing is not None:
            added = [uuid for uuid in frame_uuids if uuid not in existing.frame_uuids]
            if not added:
                logger.debug(f"All frames already in timesheet {existing.uuid}, skipping")
                result.skipped.append(existing)
                return

            updated = existing.replace(frame_uuids=existing.frame_uuids + tuple(added))
            if not dry_run:
                self.timesheet_store.update(updated)
            result.updated.append(updated)
            return

        timesheet = Timesheet.create(
            activity=group.activity,
            description=combine_descriptions(group.frames),
            time=round_hours(group.time, group.activity),
            date=day,
            role=determine_role(group.frames),
            individual_action=any(frame.is_individual for frame in group.frames),
            frame_uuids=frame_uuids,
        )
        if not dry_run:
            self.timesheet_store.save(timesheet)
        result.created.append(timesheet)


def merge_timesheets(store: LocalTimesheetStore, uuids: Sequence[str]) -> Timesheet:
    """Merge timesheets into the first one and remove the others.

    All timesheets must share activity and role. Times are summed,
    descriptions joined with " | ". The merged timesheet is no longer
    linked to Zebra.

    Raises:
        ValidationError: If fewer than two timesheets are given, they differ
            in activity or role, or the total is not a positive quarter hour
        NotFoundError: If a timesheet does not exist
    """
    if len(uuids) < 2:
        raise ValidationError("At least two timesheets are required for merging")

    timesheets: list[Timesheet] = []
    missing = []
    for uuid in uuids:
        timesheet = store.get(uuid)
        if timesheet is None:
            missing.append(uuid)
        else:
            timesheets.append(timesheet)
    if missing:
        raise NotFoundError(f"Timesheets not found: {', '.join(missing)}")

    first = timesheets[0]
    for timesheet in timesheets[1:]:
        if timesheet.activity.entity_key != first.activity.entity_key:
            raise ValidationError(
                f"Timesheet {timesheet.uuid} has a different activity than {first.uuid}"
            )
        if (timesheet.role.id if timesheet.role else None) != (first.role.id if first.role else None):
            raise ValidationError(
                f"Timesheet {timesheet.uuid} has a different role than {first.uuid}"
            )

    total = sum(timesheet.time for timesheet in timesheets)
    if total <= 0 or not is_quarter_hour(total):
        raise ValidationError(f"Total time {total:.2f}h must be a positive multiple of 0.25")

    client_descriptions = [
        timesheet.client_description
        for timesheet in timesheets
        if timesheet.client_description and timesheet.client_description.strip()
    ]
    merged = first.replace(
        description=" | ".join(timesheet.description for timesheet in timesheets),
        client_description=" | ".join(client_descriptions) if client_descriptions else None,
        time=total,
        frame_uuids=tuple(
            dict.fromkeys(uuid for timesheet in timesheets for uuid in timesheet.frame_uuids)
        ),
        zebra_id=None,
        updated_at=min(timesheet.updated_at for timesheet in timesheets),  # type: ignore[type-var]
        do_not_sync=False,
    )

    store.save(merged)
    for timesheet in timesheets[1:]:
        store.remove(timesheet.uuid)
    logger.info(f"Merged {len(timesheets)} timesheets into {merged.uuid}")
    return merged
