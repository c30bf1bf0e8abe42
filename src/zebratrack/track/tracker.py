"""Start, stop, add and cancel frames.

Track is either idle (no current frame) or running (one current frame).
Frames never start or stop in the future, and with ``gap=True`` a new frame
never starts before the previous one stopped.
"""

import logging
from enum import Enum
from typing import Optional, Protocol

from ..domain.frame import Frame
from ..domain.models import Activity, Role
from ..exceptions import (
    AlreadyStartedError,
    ConfigurationError,
    InvalidTimeError,
    NotStartedError,
)
from ..frames.store import FrameStore
from ..utils.timezone import InstantLike, to_local, to_utc, utcnow

logger = logging.getLogger(__name__)


class TrackState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class RoleProvider(Protocol):
    """Source of the role used when none is given explicitly."""

    def get_current_user_default_role(self) -> Optional[Role]: ...


class Track:
    """Frame tracking on top of a frame store."""

    def __init__(self, frame_store: FrameStore, role_provider: RoleProvider) -> None:
        """Initialize tracker.

        Args:
            frame_store: Store for completed frames and the current frame
            role_provider: Provides the default role for non-individual frames
        """
        self.frame_store = frame_store
        self.role_provider = role_provider

    @property
    def state(self) -> TrackState:
        return TrackState.RUNNING if self.is_started() else TrackState.IDLE

    def is_started(self) -> bool:
        return self.frame_store.get_current() is not None

    def get_current(self) -> Optional[Frame]:
        return self.frame_store.get_current()

    def start(
        self,
        activity: Activity,
        description: Optional[str] = None,
        start_at: Optional[InstantLike] = None,
        gap: bool = True,
        is_individual: bool = False,
        role: Optional[Role] = None,
    ) -> Frame:
        """Start a new current frame.

        Args:
            activity: Activity to track
            description: Free text, scanned for issue keys
            start_at: Start instant (default: now)
            gap: If False, start where the previous frame stopped
            is_individual: Individual frames carry no role
            role: Role to book under (default: the configured default role)

        Returns:
            The started frame

        Raises:
            AlreadyStartedError: If a frame is already running
            InvalidTimeError: If the start is in the future, or before the
                previous frame stopped while ``gap`` is set
            ConfigurationError: If no role is given and no default exists
        """
        current = self.frame_store.get_current()
        if current is not None:
            raise AlreadyStartedError(
                f"A frame is already started: {current.uuid} on {current.activity.name} "
                f"since {to_local(current.start_time).isoformat()}. Stop or cancel it first."
            )

        now = utcnow()
        start_time = to_utc(start_at) if start_at is not None else now
        last_frame = self._get_last_frame()
        last_stop = last_frame.stop_time if last_frame is not None else None

        if not gap and last_stop is not None:
            start_time = last_stop

        if start_time > now:
            raise InvalidTimeError(
                f"Cannot start a frame in the future ({to_local(start_time).isoformat()})"
            )
        if gap and last_stop is not None and start_time < last_stop:
            raise InvalidTimeError(
                f"Cannot start a frame at {to_local(start_time).isoformat()}, before the "
                f"previous frame stopped ({to_local(last_stop).isoformat()})"
            )

        frame = Frame.create(
            activity=activity,
            start_time=start_time,
            is_individual=is_individual,
            role=self._resolve_role(is_individual, role),
            description=description or "",
        )
        self.frame_store.save_current(frame)
        logger.info(f"Started frame {frame.uuid} on {activity.name}")
        return frame

    def stop(self, stop_at: Optional[InstantLike] = None) -> Frame:
        """Stop the current frame and store it.

        Raises:
            NotStartedError: If no frame is running
            InvalidTimeError: If the stop is in the future or before the start
        """
        current = self.frame_store.get_current()
        if current is None:
            raise NotStartedError("No frame is started. Start a frame before stopping.")

        now = utcnow()
        stop_time = to_utc(stop_at) if stop_at is not None else now
        if stop_time > now:
            raise InvalidTimeError(
                f"Cannot stop a frame in the future ({to_local(stop_time).isoformat()})"
            )
        if stop_time < current.start_time:
            raise InvalidTimeError(
                f"Cannot stop a frame at {to_local(stop_time).isoformat()}, before it "
                f"started ({to_local(current.start_time).isoformat()})"
            )

        return self.frame_store.complete_current(stop_time)

    def add(
        self,
        activity: Activity,
        from_date: InstantLike,
        to_date: InstantLike,
        description: Optional[str] = None,
        is_individual: bool = False,
        role: Optional[Role] = None,
    ) -> Frame:
        """Store a completed frame directly, leaving the current frame alone.

        Raises:
            InvalidTimeError: If ``from_date`` is after ``to_date``
            ConfigurationError: If no role is given and no default exists
        """
        start_time = to_utc(from_date)
        stop_time = to_utc(to_date)
        if start_time > stop_time:
            raise InvalidTimeError(
                f"Cannot add a frame starting at {to_local(start_time).isoformat()} "
                f"after its stop at {to_local(stop_time).isoformat()}"
            )

        frame = Frame.create(
            activity=activity,
            start_time=start_time,
            stop_time=stop_time,
            is_individual=is_individual,
            role=self._resolve_role(is_individual, role),
            description=description or "",
        )
        self.frame_store.save(frame)
        logger.info(f"Added frame {frame.uuid} on {activity.name}")
        return frame

    def cancel(self) -> Frame:
        """Discard the current frame without storing it.

        Returns:
            The discarded frame

        Raises:
            NotStartedError: If no frame is running
        """
        current = self.frame_store.get_current()
        if current is None:
            raise NotStartedError("No frame is started. Start a frame before canceling.")

        self.frame_store.clear_current()
        logger.info(f"Cancelled frame {current.uuid}")
        return current

    def _resolve_role(self, is_individual: bool, role: Optional[Role]) -> Optional[Role]:
        if is_individual:
            return None
        if role is not None:
            return role

        default_role = self.role_provider.get_current_user_default_role()
        if default_role is None:
            raise ConfigurationError(
                "No default role found. Configure user.default_role_id or pass a role."
            )
        return default_role

    def _get_last_frame(self) -> Optional[Frame]:
        """Most recently started frame that has already stopped."""
        now = utcnow()
        stopped = [
            frame
            for frame in self.frame_store.all()
            if frame.stop_time is not None and frame.stop_time <= now
        ]
        if not stopped:
            return None
        return max(stopped, key=lambda frame: frame.start_time)
