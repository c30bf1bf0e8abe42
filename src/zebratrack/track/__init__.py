"""Frame tracking state machine."""

from .tracker import RoleProvider, Track, TrackState

__all__ = ["RoleProvider", "Track", "TrackState"]
