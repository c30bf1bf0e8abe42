"""Tests for LocalTimesheetStore."""

from datetime import date

import pytest

from zebratrack.domain.timesheet import Timesheet
from zebratrack.exceptions import DuplicateZebraIdError, NotFoundError


@pytest.fixture
def make_timesheet(zebra_activity, role):
    def _make_timesheet(day="2024-03-01", zebra_id=None, frame_uuids=(), time=1.0):
        return Timesheet.create(
            activity=zebra_activity,
            description="work",
            time=time,
            date=day,
            role=role,
            zebra_id=zebra_id,
            frame_uuids=frame_uuids,
        )

    return _make_timesheet


class TestLocalTimesheetStore:
    """Test timesheet persistence and queries."""

    def test_save_and_get(self, timesheet_store, make_timesheet):
        """Saved timesheets are read back by uuid and Zebra id."""
        timesheet = make_timesheet(zebra_id=12)
        timesheet_store.save(timesheet)

        assert timesheet_store.get(timesheet.uuid) == timesheet
        assert timesheet_store.get_by_zebra_id(12) == timesheet
        assert timesheet_store.get_by_zebra_id(13) is None

    def test_duplicate_zebra_id_rejected(self, timesheet_store, make_timesheet):
        """A Zebra id belongs to one local timesheet only."""
        timesheet_store.save(make_timesheet(zebra_id=12))
        with pytest.raises(DuplicateZebraIdError):
            timesheet_store.save(make_timesheet(zebra_id=12))

    def test_resave_same_timesheet_allowed(self, timesheet_store, make_timesheet):
        """Saving a timesheet again does not conflict with itself."""
        timesheet = make_timesheet(zebra_id=12)
        timesheet_store.save(timesheet)
        timesheet_store.save(timesheet.replace(description="changed"))
        assert timesheet_store.get(timesheet.uuid).description == "changed"

    def test_update_and_remove_unknown(self, timesheet_store, make_timesheet):
        """Updating or removing an unknown timesheet raises NotFoundError."""
        timesheet = make_timesheet()
        with pytest.raises(NotFoundError):
            timesheet_store.update(timesheet)
        with pytest.raises(NotFoundError):
            timesheet_store.remove(timesheet.uuid)

    def test_remove(self, timesheet_store, make_timesheet):
        """Removed timesheets are gone."""
        timesheet = make_timesheet()
        timesheet_store.save(timesheet)
        timesheet_store.remove(timesheet.uuid)
        assert timesheet_store.all() == []

    def test_date_queries(self, timesheet_store, make_timesheet):
        """Date ranges are inclusive business-zone days."""
        first = make_timesheet(day="2024-03-01")
        second = make_timesheet(day="2024-03-02")
        third = make_timesheet(day="2024-03-05")
        for timesheet in (first, second, third):
            timesheet_store.save(timesheet)

        in_range = timesheet_store.get_by_date_range("2024-03-01", date(2024, 3, 2))
        assert {t.uuid for t in in_range} == {first.uuid, second.uuid}
        assert [t.uuid for t in timesheet_store.get_by_date("2024-03-05")] == [third.uuid]
        assert len(timesheet_store.get_by_date_range("2024-03-02")) == 2

    def test_frame_and_sync_queries(self, timesheet_store, make_timesheet):
        """Timesheets are found by contained frames and by push state."""
        linked = make_timesheet(frame_uuids=["abcdef11", "abcdef12"])
        pushed = make_timesheet(zebra_id=4)
        timesheet_store.save(linked)
        timesheet_store.save(pushed)

        assert [t.uuid for t in timesheet_store.get_by_frame_uuids(["abcdef12"])] == [linked.uuid]
        assert [t.uuid for t in timesheet_store.get_unsynced()] == [linked.uuid]

    def test_load_skips_unreadable_records(self, timesheet_store, make_timesheet):
        """Broken records are dropped and counted."""
        timesheet_store.save(make_timesheet())
        records = timesheet_store.storage.read()
        records["deadbeef"] = {"uuid": "deadbeef", "time": 1.3}
        timesheet_store.storage.write(records)

        result = timesheet_store.load()
        assert len(result.records) == 1
        assert result.skipped == 1

    @pytest.mark.parametrize(
        "changes",
        [
            {"frameUuids": 5},
            {"role": {"id": 7, "parentId": "x"}},
            {"updatedAt": 10**20},
            {"activity": ["Development"]},
        ],
    )
    def test_load_skips_records_with_wrong_types(self, timesheet_store, make_timesheet, changes):
        """Records with wrongly typed or out-of-range fields are skipped too."""
        timesheet = make_timesheet()
        timesheet_store.save(timesheet)
        broken = {**make_timesheet().to_dict(), **changes}
        records = timesheet_store.storage.read()
        records[broken["uuid"]] = broken
        timesheet_store.storage.write(records)

        assert [t.uuid for t in timesheet_store.all()] == [timesheet.uuid]
        assert timesheet_store.load().skipped == 1
        assert timesheet_store.get(broken["uuid"]) is None

    def test_unreadable_record_does_not_hold_zebra_id(self, timesheet_store, make_timesheet):
        """A Zebra id kept only by an unreadable record can be saved again."""
        broken = {**make_timesheet(zebra_id=12).to_dict(), "frameUuids": 5}
        timesheet_store.storage.write({broken["uuid"]: broken})

        timesheet = make_timesheet(zebra_id=12)
        timesheet_store.save(timesheet)
        assert timesheet_store.get_by_zebra_id(12) == timesheet
