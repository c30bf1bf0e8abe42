"""Single-slot storage for the active frame."""

import logging
from typing import Optional

from ..domain.frame import Frame
from ..exceptions import (
    CurrentFrameConflictError,
    InvalidTimeError,
    RecordFormatError,
    ValidationError,
)
from ..storage.file_storage import JsonFileStorage
from ..utils.timezone import utcnow

logger = logging.getLogger(__name__)


class CurrentFrameSlot:
    """Holds at most one active frame.

    An occupied slot always contains a frame without stop time whose start
    is not in the future.
    """

    def __init__(self, storage: JsonFileStorage) -> None:
        self.storage = storage

    def get(self) -> Optional[Frame]:
        """Return the active frame, or None if the slot is empty or unreadable."""
        data = self.storage.read()
        if not data:
            return None
        try:
            return Frame.from_dict(data)
        except RecordFormatError as e:
            logger.warning(f"Ignoring unreadable current frame: {e}")
            return None

    def is_occupied(self) -> bool:
        return self.get() is not None

    def save(self, frame: Frame) -> None:
        """Put a frame into the slot.

        Re-saving the frame that already occupies the slot is allowed.

        Raises:
            ValidationError: If the frame is not active
            InvalidTimeError: If the frame starts in the future
            CurrentFrameConflictError: If a different frame occupies the slot
        """
        if not frame.is_active:
            raise ValidationError("Only active frames can be stored as current frame")
        if frame.start_time > utcnow():
            raise InvalidTimeError(
                f"Current frame cannot start in the future ({frame.start_time.isoformat()})"
            )

        existing = self.get()
        if existing is not None and existing.uuid != frame.uuid:
            raise CurrentFrameConflictError(
                f"Frame {existing.uuid} is already the current frame"
            )

        self.storage.write(frame.to_dict())
        logger.debug(f"Saved current frame {frame.uuid}")

    def clear(self) -> None:
        self.storage.write({})
