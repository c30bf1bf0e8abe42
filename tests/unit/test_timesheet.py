"""Tests for the Timesheet value object."""

from datetime import date, datetime, timezone

import pytest

from zebratrack.domain.timesheet import Timesheet, is_quarter_hour
from zebratrack.exceptions import RecordFormatError, ValidationError


class TestQuarterHour:
    """Test quarter hour detection."""

    def test_quarter_hours(self):
        """Multiples of 0.25 pass, others fail."""
        assert is_quarter_hour(0)
        assert is_quarter_hour(1.25)
        assert is_quarter_hour(7.75)
        assert not is_quarter_hour(1.3)
        assert not is_quarter_hour(0.1)


class TestTimesheet:
    """Test Timesheet invariants and serialization."""

    def test_time_must_be_quarter_hour(self, zebra_activity, role):
        """1.3 hours is rejected, 1.25 hours accepted."""
        with pytest.raises(ValidationError):
            Timesheet.create(activity=zebra_activity, description="x", time=1.3, date="2024-03-01", role=role)

        timesheet = Timesheet.create(
            activity=zebra_activity, description="x", time=1.25, date="2024-03-01", role=role
        )
        assert timesheet.time == 1.25

    def test_negative_time_rejected(self, zebra_activity, role):
        """Time must not be negative."""
        with pytest.raises(ValidationError):
            Timesheet.create(activity=zebra_activity, description="x", time=-0.25, date="2024-03-01", role=role)

    def test_local_activity_rejected(self, local_activity, role):
        """Timesheets only book Zebra activities."""
        with pytest.raises(ValidationError):
            Timesheet.create(activity=local_activity, description="x", time=1, date="2024-03-01", role=role)

    def test_role_or_individual_action_required(self, zebra_activity):
        """Without role the timesheet must be an individual action."""
        with pytest.raises(ValidationError):
            Timesheet.create(activity=zebra_activity, description="x", time=1, date="2024-03-01")

        timesheet = Timesheet.create(
            activity=zebra_activity,
            description="x",
            time=1,
            date="2024-03-01",
            individual_action=True,
        )
        assert timesheet.role is None

    def test_date_is_business_day(self, zebra_activity, role):
        """Datetimes are converted to the Zurich calendar day."""
        late_utc = datetime(2024, 3, 1, 23, 30, tzinfo=timezone.utc)
        timesheet = Timesheet.create(
            activity=zebra_activity, description="x", time=1, date=late_utc, role=role
        )
        assert timesheet.date == date(2024, 3, 2)

        from_string = Timesheet.create(
            activity=zebra_activity, description="x", time=1, date="2024-03-01", role=role
        )
        assert from_string.date == date(2024, 3, 1)

    def test_project_id_and_sync_state(self, zebra_activity, role):
        """Project id comes from the activity; zebra id marks it as pushed."""
        timesheet = Timesheet.create(
            activity=zebra_activity, description="x", time=1, date="2024-03-01", role=role
        )
        assert timesheet.project_id == 1
        assert not timesheet.is_synced
        assert timesheet.replace(zebra_id="77").zebra_id == 77

    def test_merge_remote_keeps_local_fields(self, zebra_activity, role):
        """Merging takes remote fields but keeps uuid, frames and do-not-sync."""
        local = Timesheet.create(
            activity=zebra_activity,
            description="local",
            time=1,
            date="2024-03-01",
            role=role,
            frame_uuids=["abcdef11"],
            do_not_sync=True,
        )
        remote = Timesheet.create(
            activity=zebra_activity,
            description="remote",
            time=2,
            date="2024-03-01",
            role=role,
            zebra_id=5,
        )
        merged = local.merge_remote(remote)
        assert merged.uuid == local.uuid
        assert merged.frame_uuids == ("abcdef11",)
        assert merged.do_not_sync is True
        assert merged.description == "remote"
        assert merged.time == 2
        assert merged.zebra_id == 5

    def test_dict_round_trip(self, zebra_activity, role):
        """Stored form restores an equal timesheet."""
        timesheet = Timesheet.create(
            activity=zebra_activity,
            description="work",
            client_description="client",
            time=2.5,
            date="2024-03-01",
            role=role,
            frame_uuids=["abcdef11", "abcdef12"],
            zebra_id=8,
            updated_at=1700000000,
        )
        data = timesheet.to_dict()
        assert data["projectId"] == 1
        assert data["date"] == "2024-03-01"
        assert data["role"]["fullName"] == "Developer (Senior)"
        assert data["updatedAt"] == 1700000000

        assert Timesheet.from_dict(data) == timesheet

    def test_from_dict_missing_field(self, zebra_activity):
        """Incomplete records raise RecordFormatError."""
        with pytest.raises(RecordFormatError):
            Timesheet.from_dict({"uuid": "abcdef01", "activity": zebra_activity.to_dict(), "time": 1})
