"""Tests for FrameStore and the current-frame slot."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from zebratrack.domain.frame import Frame
from zebratrack.domain.models import Role
from zebratrack.exceptions import (
    CurrentFrameConflictError,
    InvalidTimeError,
    NotFoundError,
    ValidationError,
)


class TestFrameStorePersistence:
    """Test saving, loading and removing frames."""

    def test_save_and_get(self, frame_store, make_frame):
        """Saved frames are read back by uuid."""
        frame = make_frame(description="AB-1 work")
        frame_store.save(frame)

        loaded = frame_store.get(frame.uuid)
        assert loaded is not None
        assert loaded.uuid == frame.uuid
        assert loaded.issue_keys == ("AB-1",)
        assert frame_store.get("abcdef99") is None

    def test_save_active_frame_rejected(self, frame_store, make_frame):
        """Only completed frames go to permanent storage."""
        with pytest.raises(ValidationError):
            frame_store.save(make_frame(stop_hours_ago=None))

    def test_load_skips_unreadable_records(self, frame_store, make_frame):
        """Broken records are dropped and counted."""
        frame = make_frame()
        frame_store.save(frame)
        records = frame_store.storage.read()
        records["deadbeef"] = {"uuid": "deadbeef", "start": "garbage"}
        frame_store.storage.write(records)

        result = frame_store.load()
        assert [f.uuid for f in result.records] == [frame.uuid]
        assert result.skipped == 1

    @pytest.mark.parametrize(
        "changes",
        [
            {"desc": 5},
            {"role": {"id": 7, "parentId": "x"}},
            {"start": 10**20},
            {"activity": "Development"},
        ],
    )
    def test_load_skips_records_with_wrong_types(self, frame_store, make_frame, changes):
        """Records with wrongly typed or out-of-range fields are skipped too."""
        frame = make_frame()
        frame_store.save(frame)
        broken = {**make_frame(start_hours_ago=5, stop_hours_ago=4).to_dict(), **changes}
        records = frame_store.storage.read()
        records[broken["uuid"]] = broken
        frame_store.storage.write(records)

        assert [f.uuid for f in frame_store.all()] == [frame.uuid]
        assert frame_store.load().skipped == 1
        assert frame_store.get(broken["uuid"]) is None

    def test_corrupt_file_reads_as_empty(self, frame_store):
        """A file that is not JSON yields no frames."""
        frame_store.storage.path.parent.mkdir(parents=True, exist_ok=True)
        frame_store.storage.path.write_text("{not json", encoding="utf-8")
        assert frame_store.all() == []

    def test_update_completed_frame(self, frame_store, make_frame):
        """Updating replaces the stored record."""
        frame = make_frame()
        frame_store.save(frame)
        frame_store.update(frame.with_changes(description="CD-2 changed"))
        assert frame_store.get(frame.uuid).issue_keys == ("CD-2",)

    def test_update_unknown_frame(self, frame_store, make_frame):
        """Updating an unknown frame raises NotFoundError."""
        with pytest.raises(NotFoundError):
            frame_store.update(make_frame())
        with pytest.raises(NotFoundError):
            frame_store.update(make_frame(stop_hours_ago=None))

    def test_remove(self, frame_store, make_frame):
        """Removed frames are gone; unknown ones raise NotFoundError."""
        frame = make_frame()
        frame_store.save(frame)
        frame_store.remove(frame.uuid)
        assert frame_store.get(frame.uuid) is None
        with pytest.raises(NotFoundError):
            frame_store.remove(frame.uuid)

    def test_remove_current_frame_clears_slot(self, frame_store, make_frame):
        """Removing the current frame empties the slot."""
        current = make_frame(stop_hours_ago=None)
        frame_store.save_current(current)
        frame_store.remove(current.uuid)
        assert frame_store.get_current() is None

    def test_stored_format(self, frame_store, make_frame):
        """Frames are stored as a JSON object keyed by uuid."""
        frame = make_frame()
        frame_store.save(frame)
        with open(frame_store.storage.path, encoding="utf-8") as f:
            data = json.load(f)
        assert list(data) == [frame.uuid]
        assert data[frame.uuid]["start"] == int(frame.start_time.timestamp())


class TestCurrentFrame:
    """Test the single current-frame slot."""

    def test_save_and_get_current(self, frame_store, make_frame):
        """The slot returns the saved active frame."""
        current = make_frame(stop_hours_ago=None)
        frame_store.save_current(current)
        assert frame_store.get_current().uuid == current.uuid
        assert frame_store.current_slot.is_occupied()

    def test_resave_same_frame_allowed(self, frame_store, make_frame):
        """Saving the occupying frame again replaces it."""
        current = make_frame(stop_hours_ago=None)
        frame_store.save_current(current)
        frame_store.save_current(current.with_changes(description="AB-9"))
        assert frame_store.get_current().issue_keys == ("AB-9",)

    def test_different_frame_conflicts(self, frame_store, make_frame):
        """A second active frame cannot take the slot."""
        frame_store.save_current(make_frame(stop_hours_ago=None))
        with pytest.raises(CurrentFrameConflictError):
            frame_store.save_current(make_frame(start_hours_ago=1, stop_hours_ago=None))

    def test_completed_frame_rejected(self, frame_store, make_frame):
        """Only active frames can be current."""
        with pytest.raises(ValidationError):
            frame_store.save_current(make_frame())

    def test_future_start_rejected(self, frame_store, make_frame):
        """The current frame cannot start in the future."""
        with pytest.raises(InvalidTimeError):
            frame_store.save_current(make_frame(start_hours_ago=-1, stop_hours_ago=None))

    def test_complete_current(self, frame_store, make_frame, now):
        """Completing moves the frame into storage and clears the slot."""
        current = make_frame(stop_hours_ago=None)
        frame_store.save_current(current)

        completed = frame_store.complete_current(now)
        assert completed.stop_time == now
        assert frame_store.get_current() is None
        assert frame_store.get(current.uuid).stop_time == now

    def test_complete_current_errors(self, frame_store, make_frame, now):
        """Completing needs a current frame and a stop time not in the future."""
        with pytest.raises(NotFoundError):
            frame_store.complete_current()

        frame_store.save_current(make_frame(stop_hours_ago=None))
        with pytest.raises(InvalidTimeError):
            frame_store.complete_current(now + timedelta(hours=1))

    def test_unreadable_current_frame_is_empty(self, frame_store):
        """A broken slot reads as no current frame."""
        frame_store.current_slot.storage.write({"uuid": "abcdef01"})
        assert frame_store.get_current() is None

    def test_current_frame_with_wrong_types_is_empty(self, frame_store, make_frame):
        """A current frame with a non-text description reads as no current frame."""
        record = {**make_frame(stop_hours_ago=None).to_dict(), "desc": 5}
        frame_store.current_slot.storage.write(record)
        assert frame_store.get_current() is None


class TestFrameStoreQueries:
    """Test frame filtering and lookups."""

    def test_filter_by_issue_key(self, frame_store, zebra_activity, role):
        """A frame described 'ABC-123 fix' matches ABC-123 only."""
        frame = Frame.create(
            activity=zebra_activity,
            start_time=datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc),
            stop_time=datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc),
            role=role,
            description="ABC-123 fix",
        )
        frame_store.save(frame)

        assert [f.uuid for f in frame_store.filter(issue_keys=["ABC-123"])] == [frame.uuid]
        assert frame_store.filter(issue_keys=["XYZ-999"]) == []
        assert frame_store.filter(ignore_issue_keys=["ABC-123"]) == []

    def test_filter_by_project(self, frame_store, make_frame, other_activity, local_activity):
        """Project filters match Zebra projects only."""
        first = make_frame()
        second = make_frame(activity=other_activity)
        local = make_frame(activity=local_activity)
        for frame in (first, second, local):
            frame_store.save(frame)

        assert {f.uuid for f in frame_store.filter(project_ids=[1])} == {first.uuid}
        assert {f.uuid for f in frame_store.filter(ignore_project_ids=[1])} == {
            second.uuid,
            local.uuid,
        }

    def test_filter_partial_frames(self, frame_store, make_frame, now):
        """Partial matching includes overlapping frames and is a superset."""
        inside = make_frame(start_hours_ago=3, stop_hours_ago=2)
        overlapping = make_frame(start_hours_ago=5, stop_hours_ago=3.5)
        outside = make_frame(start_hours_ago=8, stop_hours_ago=7)
        for frame in (inside, overlapping, outside):
            frame_store.save(frame)

        from_time = now - timedelta(hours=4)
        to_time = now - timedelta(hours=1)
        strict = {f.uuid for f in frame_store.filter(from_time=from_time, to_time=to_time)}
        partial = {
            f.uuid
            for f in frame_store.filter(
                from_time=from_time, to_time=to_time, include_partial_frames=True
            )
        }

        assert strict == {inside.uuid}
        assert partial == {inside.uuid, overlapping.uuid}
        assert strict <= partial

    def test_filter_returns_whole_frames(self, frame_store, make_frame, now):
        """Partially matched frames are not clipped to the range."""
        overlapping = make_frame(start_hours_ago=5, stop_hours_ago=3)
        frame_store.save(overlapping)
        [found] = frame_store.filter(
            from_time=now - timedelta(hours=4), include_partial_frames=True
        )
        assert found.start_time == overlapping.start_time

    def test_get_by_date_range(self, frame_store, make_frame, now):
        """Range queries match on start time."""
        recent = make_frame(start_hours_ago=2, stop_hours_ago=1)
        old = make_frame(start_hours_ago=30, stop_hours_ago=29)
        frame_store.save(recent)
        frame_store.save(old)

        assert [f.uuid for f in frame_store.get_by_date_range(now - timedelta(hours=3))] == [
            recent.uuid
        ]

    def test_last_used_role(self, frame_store, make_frame, zebra_activity, role):
        """The latest non-individual frame on the activity provides the role."""
        lead = Role(id=9, name="Lead")
        frame_store.save(make_frame(start_hours_ago=5, stop_hours_ago=4, frame_role=role))
        frame_store.save(make_frame(start_hours_ago=3, stop_hours_ago=2, frame_role=lead))
        frame_store.save(make_frame(start_hours_ago=1, stop_hours_ago=0.5, is_individual=True))

        assert frame_store.get_last_used_role_for_activity(zebra_activity) == lead

    def test_last_activity_for_issue_keys(self, frame_store, make_frame, other_activity, zebra_activity):
        """The latest frame with exactly the same key set provides the activity."""
        frame_store.save(make_frame(start_hours_ago=5, stop_hours_ago=4, description="AB-1 CD-2"))
        frame_store.save(
            make_frame(
                start_hours_ago=3, stop_hours_ago=2, description="CD-2 AB-1", activity=other_activity
            )
        )
        frame_store.save(make_frame(start_hours_ago=1, stop_hours_ago=0.5, description="AB-1"))

        assert frame_store.get_last_activity_for_issue_keys(["AB-1", "CD-2"]) == other_activity
        assert frame_store.get_last_activity_for_issue_keys(["AB-1"]) == zebra_activity
        assert frame_store.get_last_activity_for_issue_keys(["ZZ-1"]) is None
        assert frame_store.get_last_activity_for_issue_keys([]) is None
