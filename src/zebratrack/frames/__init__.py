"""Frame persistence and queries."""

from .current import CurrentFrameSlot
from .store import FrameStore

__all__ = ["CurrentFrameSlot", "FrameStore"]
