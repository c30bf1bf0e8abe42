"""Shared fixtures for zebratrack tests."""

from datetime import timedelta

import pytest

from zebratrack.domain.entity_key import EntityKey
from zebratrack.domain.frame import Frame
from zebratrack.domain.models import Activity, Role
from zebratrack.frames.store import FrameStore
from zebratrack.storage.file_storage import FileStorageFactory
from zebratrack.timesheets.store import LocalTimesheetStore
from zebratrack.utils.timezone import utcnow


@pytest.fixture
def zebra_activity():
    return Activity(
        entity_key=EntityKey.zebra(11),
        name="Development",
        description="Writing code",
        project_entity_key=EntityKey.zebra(1),
        alias="dev",
    )


@pytest.fixture
def other_activity():
    return Activity(
        entity_key=EntityKey.zebra(21),
        name="Meetings",
        description="",
        project_entity_key=EntityKey.zebra(2),
        alias="meet",
    )


@pytest.fixture
def local_activity():
    return Activity(
        entity_key=EntityKey.local("abcdef01"),
        name="Side project",
        description="",
        project_entity_key=EntityKey.local("abcdef02"),
    )


@pytest.fixture
def role():
    return Role(id=7, name="Developer", full_name="Developer (Senior)", type="role", status="active")


@pytest.fixture
def storage_factory(tmp_path):
    return FileStorageFactory(tmp_path / "data")


@pytest.fixture
def frame_store(storage_factory):
    return FrameStore.from_factory(storage_factory)


@pytest.fixture
def timesheet_store(storage_factory):
    return LocalTimesheetStore.from_factory(storage_factory)


@pytest.fixture
def now():
    return utcnow()


@pytest.fixture
def make_frame(zebra_activity, role, now):
    """Build completed frames relative to now, in hours."""

    def _make_frame(
        start_hours_ago=3.0,
        stop_hours_ago=2.0,
        description="",
        activity=None,
        is_individual=False,
        frame_role=None,
    ):
        return Frame.create(
            activity=activity or zebra_activity,
            start_time=now - timedelta(hours=start_hours_ago),
            stop_time=now - timedelta(hours=stop_hours_ago) if stop_hours_ago is not None else None,
            is_individual=is_individual,
            role=None if is_individual else (frame_role or role),
            description=description,
        )

    return _make_frame
