"""Exception hierarchy for zebratrack."""

from typing import Optional


class ZebraTrackError(Exception):
    """Base class for all zebratrack errors."""


class ValidationError(ZebraTrackError, ValueError):
    """Input has a bad shape or is out of range."""


class InvalidTimeError(ValidationError):
    """A timestamp is in the future or out of order."""


class RecordFormatError(ValidationError):
    """A stored record cannot be turned back into a domain object."""


class StateConflictError(ZebraTrackError):
    """An operation conflicts with the current state of a store."""


class AlreadyStartedError(StateConflictError):
    """A frame is already running."""


class NotStartedError(StateConflictError):
    """No frame is running."""


class CurrentFrameConflictError(StateConflictError):
    """A different frame already occupies the current-frame slot."""


class DuplicateZebraIdError(StateConflictError):
    """Another local timesheet already holds the same Zebra id."""


class NotFoundError(ZebraTrackError, LookupError):
    """A frame, timesheet or current frame does not exist."""


class RemoteSyncError(ZebraTrackError):
    """The remote gateway failed at transport or protocol level."""


class ZebraApiError(RemoteSyncError):
    """Non-success response from the Zebra API."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        """Initialize API error.

        Args:
            message: Error description
            status_code: HTTP status code of the response, if any
        """
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_not_found(self) -> bool:
        """Whether the remote reported the resource as missing."""
        return self.status_code == 404


class ConfigurationError(ZebraTrackError):
    """Required configuration is missing or invalid."""


# Raised while rebuilding domain objects from malformed stored data.
RECORD_READ_ERRORS = (TypeError, ValueError, KeyError, AttributeError, OverflowError, OSError)
