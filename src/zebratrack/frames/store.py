"""Frame store: permanent frame storage, queries and the current-frame slot."""

import logging
from datetime import datetime
from typing import Iterable, Optional

from ..domain.frame import Frame, same_issue_key_set
from ..domain.models import Activity, Role
from ..exceptions import (
    InvalidTimeError,
    NotFoundError,
    RecordFormatError,
    ValidationError,
)
from ..storage.file_storage import FileStorageFactory, JsonFileStorage, LoadResult
from ..utils.timezone import InstantLike, to_utc, utcnow
from .current import CurrentFrameSlot

logger = logging.getLogger(__name__)


class FrameStore:
    """Stores completed frames keyed by uuid, plus the single active frame.

    Bulk reads are lossy: records that cannot be read back are dropped and
    counted instead of failing the whole read.
    """

    def __init__(self, storage: JsonFileStorage, current_slot: CurrentFrameSlot) -> None:
        """Initialize frame store.

        Args:
            storage: Storage holding completed frames
            current_slot: Slot holding the active frame
        """
        self.storage = storage
        self.current_slot = current_slot

    @classmethod
    def from_factory(cls, factory: FileStorageFactory) -> "FrameStore":
        return cls(
            factory.create(FileStorageFactory.FRAMES_FILE),
            CurrentFrameSlot(factory.create(FileStorageFactory.CURRENT_FRAME_FILE)),
        )

    def save(self, frame: Frame) -> None:
        """Insert or replace a completed frame.

        Raises:
            ValidationError: If the frame is still active
        """
        if frame.is_active:
            raise ValidationError(f"Cannot store frame {frame.uuid} without a stop time")

        records = self.storage.read()
        records[frame.uuid] = frame.to_dict()
        self.storage.write(records)
        logger.debug(f"Saved frame {frame.uuid}")

    def load(self) -> LoadResult[Frame]:
        """Read every stored frame, dropping unreadable records."""
        frames: list[Frame] = []
        skipped = 0
        for uuid, record in self.storage.read().items():
            try:
                frames.append(Frame.from_dict(record))
            except RecordFormatError as e:
                skipped += 1
                logger.debug(f"Skipping unreadable frame {uuid}: {e}")

        if skipped:
            logger.warning(f"Skipped {skipped} unreadable frame records")
        return LoadResult(records=frames, skipped=skipped)

    def all(self) -> list[Frame]:
        return self.load().records

    def get(self, uuid: str) -> Optional[Frame]:
        record = self.storage.read().get(uuid)
        if record is None:
            return None
        try:
            return Frame.from_dict(record)
        except RecordFormatError as e:
            logger.warning(f"Frame {uuid} is unreadable: {e}")
            return None

    def update(self, frame: Frame) -> None:
        """Replace an existing frame.

        An active frame replaces the current frame, a completed one the
        stored record with the same uuid.

        Raises:
            NotFoundError: If no frame with this uuid exists
        """
        if frame.is_active:
            current = self.get_current()
            if current is None or current.uuid != frame.uuid:
                raise NotFoundError(f"Frame {frame.uuid} is not the current frame")
            self.current_slot.save(frame)
            return

        if frame.uuid not in self.storage.read():
            raise NotFoundError(f"Frame {frame.uuid} not found")
        self.save(frame)

    def remove(self, uuid: str) -> None:
        """Delete a frame, clearing the current-frame slot if it holds it.

        Raises:
            NotFoundError: If the frame is neither stored nor current
        """
        records = self.storage.read()
        current = self.get_current()
        is_current = current is not None and current.uuid == uuid

        if uuid not in records and not is_current:
            raise NotFoundError(f"Frame {uuid} not found")

        if uuid in records:
            del records[uuid]
            self.storage.write(records)
        if is_current:
            self.current_slot.clear()
        logger.debug(f"Removed frame {uuid}")

    def get_current(self) -> Optional[Frame]:
        return self.current_slot.get()

    def save_current(self, frame: Frame) -> None:
        self.current_slot.save(frame)

    def clear_current(self) -> None:
        self.current_slot.clear()

    def complete_current(self, stop_time: Optional[InstantLike] = None) -> Frame:
        """Stop the current frame and move it into permanent storage.

        Args:
            stop_time: Stop instant (default: now)

        Returns:
            The completed frame

        Raises:
            NotFoundError: If there is no current frame
            InvalidTimeError: If the stop time is in the future
        """
        current = self.get_current()
        if current is None:
            raise NotFoundError("There is no current frame to complete")

        now = utcnow()
        stop = to_utc(stop_time) if stop_time is not None else now
        if stop > now:
            raise InvalidTimeError(f"Stop time {stop.isoformat()} is in the future")

        completed = current.with_stop_time(stop)
        self.save(completed)
        self.current_slot.clear()
        logger.info(f"Completed frame {completed.uuid} ({completed.duration}s)")
        return completed

    def get_by_date_range(
        self, from_time: InstantLike, to_time: Optional[InstantLike] = None
    ) -> list[Frame]:
        """Frames whose start lies within [from_time, to_time] (inclusive)."""
        start = to_utc(from_time)
        end = to_utc(to_time) if to_time is not None else None
        return [
            frame
            for frame in self.all()
            if frame.start_time >= start and (end is None or frame.start_time <= end)
        ]

    def filter(
        self,
        project_ids: Optional[Iterable[int]] = None,
        issue_keys: Optional[Iterable[str]] = None,
        ignore_project_ids: Optional[Iterable[int]] = None,
        ignore_issue_keys: Optional[Iterable[str]] = None,
        from_time: Optional[InstantLike] = None,
        to_time: Optional[InstantLike] = None,
        include_partial_frames: bool = False,
    ) -> list[Frame]:
        """Select stored frames matching every given criterion.

        Project filters only match Zebra projects; frames of local projects
        never match ``project_ids``. Issue-key filters match if any of the
        frame's keys is listed. Without ``include_partial_frames`` a frame
        must lie entirely within the range; with it, any overlap includes
        the frame. Matching frames are returned whole, never clipped to the
        range. Active frames end "now" for range checks.

        Returns:
            Matching frames in storage order
        """
        wanted_projects = {int(p) for p in project_ids} if project_ids else None
        ignored_projects = {int(p) for p in ignore_project_ids} if ignore_project_ids else None
        wanted_keys = set(issue_keys) if issue_keys else None
        ignored_keys = set(ignore_issue_keys) if ignore_issue_keys else None
        start = to_utc(from_time) if from_time is not None else None
        end = to_utc(to_time) if to_time is not None else None
        now = utcnow()

        matches: list[Frame] = []
        for frame in self.all():
            try:
                if self._matches(
                    frame,
                    wanted_projects,
                    ignored_projects,
                    wanted_keys,
                    ignored_keys,
                    start,
                    end,
                    include_partial_frames,
                    now,
                ):
                    matches.append(frame)
            except Exception as e:
                logger.warning(f"Skipping frame {frame.uuid} while filtering: {e}")
        return matches

    @staticmethod
    def _matches(
        frame: Frame,
        wanted_projects: Optional[set[int]],
        ignored_projects: Optional[set[int]],
        wanted_keys: Optional[set[str]],
        ignored_keys: Optional[set[str]],
        start: Optional[datetime],
        end: Optional[datetime],
        include_partial_frames: bool,
        now: datetime,
    ) -> bool:
        project_key = frame.activity.project_entity_key
        project_id = int(project_key.id) if project_key.is_zebra else None

        if wanted_projects is not None and (project_id is None or project_id not in wanted_projects):
            return False
        if ignored_projects is not None and project_id is not None and project_id in ignored_projects:
            return False
        if wanted_keys is not None and not wanted_keys.intersection(frame.issue_keys):
            return False
        if ignored_keys is not None and ignored_keys.intersection(frame.issue_keys):
            return False

        if start is None and end is None:
            return True

        frame_end = frame.effective_end(now)
        if include_partial_frames:
            if start is None:
                return frame.start_time <= end  # type: ignore[operator]
            if end is None:
                return frame_end >= start
            return frame.start_time <= end and frame_end >= start

        if start is not None and frame.start_time < start:
            return False
        if end is not None and frame_end > end:
            return False
        return True

    def get_last_used_role_for_activity(self, activity: Activity) -> Optional[Role]:
        """Role of the latest completed, non-individual frame on this activity."""
        candidates = [
            frame
            for frame in self.all()
            if not frame.is_active
            and not frame.is_individual
            and frame.role is not None
            and frame.activity.entity_key == activity.entity_key
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda frame: frame.start_time).role

    def get_last_activity_for_issue_keys(self, issue_keys: Iterable[str]) -> Optional[Activity]:
        """Activity of the latest completed frame with exactly these issue keys."""
        keys = list(issue_keys)
        if not keys:
            return None

        candidates = [
            frame
            for frame in self.all()
            if not frame.is_active and same_issue_key_set(frame.issue_keys, keys)
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda frame: frame.start_time).activity
