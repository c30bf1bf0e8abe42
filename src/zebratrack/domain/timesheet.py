"""Timesheet: one billable day entry, synced with Zebra."""

import dataclasses
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Iterable, Optional, Union

from ..exceptions import RECORD_READ_ERRORS, RecordFormatError, ValidationError
from ..utils.timezone import InstantLike, to_business_date, to_timestamp, to_utc, utcnow
from .identifiers import generate_uuid, validate_uuid
from .models import Activity, Role

QUARTER_HOUR_EPSILON = 1e-4


def is_quarter_hour(hours: float) -> bool:
    """Whether a number of hours is a multiple of 0.25."""
    return abs(math.fmod(hours * 100, 25)) <= QUARTER_HOUR_EPSILON or (
        25 - abs(math.fmod(hours * 100, 25)) <= QUARTER_HOUR_EPSILON
    )


@dataclass(frozen=True)
class Timesheet:
    """A day entry booked against a Zebra activity.

    ``date`` is a calendar day in the Zebra business zone. A timesheet
    without ``zebra_id`` has not been pushed yet.
    """

    uuid: str
    activity: Activity
    description: str
    time: float
    date: date
    role: Optional[Role] = None
    individual_action: bool = False
    client_description: Optional[str] = None
    frame_uuids: tuple[str, ...] = field(default_factory=tuple)
    zebra_id: Optional[int] = None
    updated_at: Optional[datetime] = None
    do_not_sync: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "uuid", validate_uuid(self.uuid))

        if not isinstance(self.activity, Activity):
            raise ValidationError(f"Timesheet activity must be an Activity, got {self.activity!r}")
        if not self.activity.entity_key.is_zebra:
            raise ValidationError("Timesheet activity must come from Zebra")
        if not self.activity.project_entity_key.is_zebra:
            raise ValidationError("Timesheet project must come from Zebra")

        if isinstance(self.time, bool) or not isinstance(self.time, (int, float)):
            raise ValidationError(f"Timesheet time must be a number, got {self.time!r}")
        object.__setattr__(self, "time", float(self.time))
        if self.time < 0:
            raise ValidationError(f"Timesheet time must not be negative, got {self.time}")
        if not is_quarter_hour(self.time):
            raise ValidationError(
                f"Timesheet time must be a multiple of 0.25 hours, got {self.time}"
            )

        if self.role is None and not self.individual_action:
            raise ValidationError("Timesheets without a role must be individual actions")

        frame_uuids = tuple(self.frame_uuids or ())
        if not all(isinstance(frame_uuid, str) for frame_uuid in frame_uuids):
            raise ValidationError("Frame uuids must be strings")
        object.__setattr__(self, "frame_uuids", frame_uuids)

        object.__setattr__(self, "date", to_business_date(self.date))

        if self.zebra_id is not None:
            try:
                object.__setattr__(self, "zebra_id", int(self.zebra_id))
            except (TypeError, ValueError) as e:
                raise ValidationError(f"Invalid Zebra id: {self.zebra_id!r}") from e

        object.__setattr__(
            self,
            "updated_at",
            to_utc(self.updated_at) if self.updated_at is not None else utcnow(),
        )
        object.__setattr__(self, "description", self.description or "")

    @classmethod
    def create(
        cls,
        activity: Activity,
        description: str,
        time: float,
        date: Union[date, InstantLike],
        role: Optional[Role] = None,
        individual_action: bool = False,
        client_description: Optional[str] = None,
        frame_uuids: Iterable[str] = (),
        zebra_id: Optional[int] = None,
        updated_at: Optional[InstantLike] = None,
        do_not_sync: bool = False,
        uuid: Optional[str] = None,
    ) -> "Timesheet":
        """Build a timesheet, generating a uuid if none is given."""
        return cls(
            uuid=uuid or generate_uuid(),
            activity=activity,
            description=description,
            time=time,
            date=date,  # type: ignore[arg-type]
            role=role,
            individual_action=individual_action,
            client_description=client_description,
            frame_uuids=tuple(frame_uuids),
            zebra_id=zebra_id,
            updated_at=updated_at,  # type: ignore[arg-type]
            do_not_sync=do_not_sync,
        )

    @property
    def project_id(self) -> int:
        return int(self.activity.project_entity_key.id)

    @property
    def is_synced(self) -> bool:
        return self.zebra_id is not None

    def replace(self, **changes: Any) -> "Timesheet":
        """Copy with replaced fields, validated again."""
        return dataclasses.replace(self, **changes)

    def merge_remote(self, remote: "Timesheet") -> "Timesheet":
        """Take every field from the remote record except the local-only ones."""
        return remote.replace(
            uuid=self.uuid,
            frame_uuids=self.frame_uuids,
            do_not_sync=self.do_not_sync,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "uuid": self.uuid,
            "projectId": self.project_id,
            "activity": self.activity.to_dict(),
            "description": self.description,
            "clientDescription": self.client_description,
            "time": self.time,
            "date": self.date.isoformat(),
            "role": self.role.to_dict() if self.role is not None else None,
            "individualAction": self.individual_action,
            "frameUuids": list(self.frame_uuids),
            "zebraId": self.zebra_id,
            "updatedAt": to_timestamp(self.updated_at),  # type: ignore[arg-type]
            "doNotSync": self.do_not_sync,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Timesheet":
        """Rebuild a timesheet from its stored form.

        Raises:
            RecordFormatError: If the record is incomplete or inconsistent
        """
        if not isinstance(data, dict):
            raise RecordFormatError(
                f"Timesheet record must be an object, got {type(data).__name__}"
            )
        for key in ("uuid", "activity", "time", "date"):
            if data.get(key) is None:
                raise RecordFormatError(f"Timesheet record is missing '{key}'")

        try:
            role = Role.from_dict(data["role"]) if data.get("role") is not None else None
            return cls(
                uuid=data["uuid"],
                activity=Activity.from_dict(data["activity"]),
                description=data.get("description") or "",
                time=data["time"],
                date=data["date"],
                role=role,
                individual_action=bool(data.get("individualAction", False)),
                client_description=data.get("clientDescription"),
                frame_uuids=tuple(data.get("frameUuids") or ()),
                zebra_id=data.get("zebraId"),
                updated_at=data.get("updatedAt"),
                do_not_sync=bool(data.get("doNotSync", False)),
            )
        except RecordFormatError:
            raise
        except RECORD_READ_ERRORS as e:
            raise RecordFormatError(f"Invalid timesheet record {data.get('uuid')}: {e}") from e
