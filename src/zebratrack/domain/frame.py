"""Frame: one tracked interval of work against an activity."""

import dataclasses
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Optional

from ..exceptions import RECORD_READ_ERRORS, RecordFormatError, ValidationError
from ..utils.timezone import InstantLike, to_timestamp, to_utc, utcnow
from .identifiers import generate_uuid, validate_uuid
from .models import Activity, Role

ISSUE_KEY_PATTERN = re.compile(r"[A-Z]{2,6}-\d{1,5}")


def extract_issue_keys(description: str) -> tuple[str, ...]:
    """Unique issue keys found in a description, in order of first occurrence."""
    return tuple(dict.fromkeys(ISSUE_KEY_PATTERN.findall(description or "")))


def same_issue_key_set(left: Iterable[str], right: Iterable[str]) -> bool:
    """Whether two issue key lists hold the same keys, ignoring order."""
    return set(left) == set(right)


@dataclass(frozen=True)
class Frame:
    """An interval of tracked time.

    A frame without stop time is active. Instants are normalized to UTC at
    second resolution; naive input is read in the process local zone.
    Exactly one of ``is_individual`` and ``role`` holds.
    """

    uuid: str
    start_time: datetime
    stop_time: Optional[datetime]
    activity: Activity
    is_individual: bool = False
    role: Optional[Role] = None
    description: str = ""
    updated_at: Optional[datetime] = None
    issue_keys: tuple[str, ...] = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "uuid", validate_uuid(self.uuid))
        object.__setattr__(self, "start_time", to_utc(self.start_time))
        if self.stop_time is not None:
            object.__setattr__(self, "stop_time", to_utc(self.stop_time))
        object.__setattr__(
            self,
            "updated_at",
            to_utc(self.updated_at) if self.updated_at is not None else utcnow(),
        )
        object.__setattr__(self, "description", self.description or "")

        if not isinstance(self.activity, Activity):
            raise ValidationError(f"Frame activity must be an Activity, got {self.activity!r}")
        if self.is_individual and self.role is not None:
            raise ValidationError("Individual frames cannot have a role")
        if not self.is_individual and self.role is None:
            raise ValidationError("Non-individual frames require a role")
        if self.stop_time is not None and self.stop_time < self.start_time:
            raise ValidationError(
                f"Stop time {self.stop_time.isoformat()} is before start time "
                f"{self.start_time.isoformat()}"
            )

        object.__setattr__(self, "issue_keys", extract_issue_keys(self.description))

    @classmethod
    def create(
        cls,
        activity: Activity,
        start_time: InstantLike,
        stop_time: Optional[InstantLike] = None,
        is_individual: bool = False,
        role: Optional[Role] = None,
        description: str = "",
        updated_at: Optional[InstantLike] = None,
        uuid: Optional[str] = None,
    ) -> "Frame":
        """Build a frame, generating a uuid if none is given."""
        return cls(
            uuid=uuid or generate_uuid(),
            start_time=start_time,  # type: ignore[arg-type]
            stop_time=stop_time,  # type: ignore[arg-type]
            activity=activity,
            is_individual=is_individual,
            role=role,
            description=description,
            updated_at=updated_at,  # type: ignore[arg-type]
        )

    @property
    def is_active(self) -> bool:
        return self.stop_time is None

    @property
    def duration(self) -> Optional[int]:
        """Duration in seconds, None while active."""
        if self.stop_time is None:
            return None
        return int((self.stop_time - self.start_time).total_seconds())

    def effective_end(self, now: Optional[datetime] = None) -> datetime:
        """Stop time, or now for an active frame."""
        return self.stop_time if self.stop_time is not None else (now or utcnow())

    def with_stop_time(self, stop_time: InstantLike) -> "Frame":
        """Copy of this frame with a stop time and a fresh updated_at."""
        return dataclasses.replace(self, stop_time=to_utc(stop_time), updated_at=utcnow())

    def with_changes(self, **changes: Any) -> "Frame":
        """Copy of this frame with replaced fields and a fresh updated_at."""
        changes.setdefault("updated_at", utcnow())
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "uuid": self.uuid,
            "start": to_timestamp(self.start_time),
            "stop": to_timestamp(self.stop_time) if self.stop_time is not None else None,
            "activity": self.activity.to_dict(),
            "isIndividual": self.is_individual,
            "role": self.role.to_short_dict() if self.role is not None else None,
            "issues": list(self.issue_keys),
            "desc": self.description,
            "updatedAt": to_timestamp(self.updated_at),  # type: ignore[arg-type]
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Frame":
        """Rebuild a frame from its stored form.

        Raises:
            RecordFormatError: If the record is incomplete or inconsistent
        """
        if not isinstance(data, dict):
            raise RecordFormatError(f"Frame record must be an object, got {type(data).__name__}")
        for key in ("uuid", "isIndividual", "activity", "start"):
            if data.get(key) is None:
                raise RecordFormatError(f"Frame record is missing '{key}'")

        try:
            role = Role.from_dict(data["role"]) if data.get("role") is not None else None
            return cls(
                uuid=data["uuid"],
                start_time=data["start"],
                stop_time=data.get("stop"),
                activity=Activity.from_dict(data["activity"]),
                is_individual=bool(data["isIndividual"]),
                role=role,
                description=data.get("desc") or "",
                updated_at=data.get("updatedAt"),
            )
        except RecordFormatError:
            raise
        except RECORD_READ_ERRORS as e:
            raise RecordFormatError(f"Invalid frame record {data.get('uuid')}: {e}") from e
