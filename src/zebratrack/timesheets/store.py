"""Local timesheet storage."""

import logging
from datetime import date
from typing import Iterable, Optional, Union

from ..domain.timesheet import Timesheet
from ..exceptions import DuplicateZebraIdError, NotFoundError, RecordFormatError
from ..storage.file_storage import FileStorageFactory, JsonFileStorage, LoadResult
from ..utils.timezone import InstantLike, to_business_date

logger = logging.getLogger(__name__)

DateLike = Union[date, InstantLike]


class LocalTimesheetStore:
    """Stores timesheets keyed by local uuid.

    A Zebra id belongs to at most one local timesheet. Bulk reads are lossy
    in the same way as the frame store.
    """

    def __init__(self, storage: JsonFileStorage) -> None:
        self.storage = storage

    @classmethod
    def from_factory(cls, factory: FileStorageFactory) -> "LocalTimesheetStore":
        return cls(factory.create(FileStorageFactory.TIMESHEETS_FILE))

    def save(self, timesheet: Timesheet) -> None:
        """Insert or replace a timesheet.

        Raises:
            DuplicateZebraIdError: If another timesheet holds the same Zebra id
        """
        records = self.storage.read()
        self._check_zebra_id(timesheet, records)
        records[timesheet.uuid] = timesheet.to_dict()
        self.storage.write(records)
        logger.debug(f"Saved timesheet {timesheet.uuid}")

    def update(self, timesheet: Timesheet) -> None:
        """Replace an existing timesheet.

        Raises:
            NotFoundError: If no timesheet with this uuid exists
            DuplicateZebraIdError: If another timesheet holds the same Zebra id
        """
        records = self.storage.read()
        if timesheet.uuid not in records:
            raise NotFoundError(f"Timesheet {timesheet.uuid} not found")
        self._check_zebra_id(timesheet, records)
        records[timesheet.uuid] = timesheet.to_dict()
        self.storage.write(records)
        logger.debug(f"Updated timesheet {timesheet.uuid}")

    def remove(self, uuid: str) -> None:
        """Delete a timesheet.

        Raises:
            NotFoundError: If no timesheet with this uuid exists
        """
        records = self.storage.read()
        if uuid not in records:
            raise NotFoundError(f"Timesheet {uuid} not found")
        del records[uuid]
        self.storage.write(records)
        logger.debug(f"Removed timesheet {uuid}")

    def load(self) -> LoadResult[Timesheet]:
        """Read every stored timesheet, dropping unreadable records."""
        timesheets: list[Timesheet] = []
        skipped = 0
        for uuid, record in self.storage.read().items():
            try:
                timesheets.append(Timesheet.from_dict(record))
            except RecordFormatError as e:
                skipped += 1
                logger.debug(f"Skipping unreadable timesheet {uuid}: {e}")

        if skipped:
            logger.warning(f"Skipped {skipped} unreadable timesheet records")
        return LoadResult(records=timesheets, skipped=skipped)

    def all(self) -> list[Timesheet]:
        return self.load().records

    def get(self, uuid: str) -> Optional[Timesheet]:
        record = self.storage.read().get(uuid)
        if record is None:
            return None
        try:
            return Timesheet.from_dict(record)
        except RecordFormatError as e:
            logger.warning(f"Timesheet {uuid} is unreadable: {e}")
            return None

    def get_by_zebra_id(self, zebra_id: int) -> Optional[Timesheet]:
        for timesheet in self.all():
            if timesheet.zebra_id == int(zebra_id):
                return timesheet
        return None

    def get_by_date_range(
        self, from_date: DateLike, to_date: Optional[DateLike] = None
    ) -> list[Timesheet]:
        """Timesheets dated within [from_date, to_date], as business-zone days."""
        start = to_business_date(from_date)
        end = to_business_date(to_date) if to_date is not None else None
        return [
            timesheet
            for timesheet in self.all()
            if timesheet.date >= start and (end is None or timesheet.date <= end)
        ]

    def get_by_date(self, day: DateLike) -> list[Timesheet]:
        return self.get_by_date_range(day, day)

    def get_by_frame_uuids(self, frame_uuids: Iterable[str]) -> list[Timesheet]:
        """Timesheets that contain any of the given frames."""
        wanted = set(frame_uuids)
        return [
            timesheet for timesheet in self.all() if wanted.intersection(timesheet.frame_uuids)
        ]

    def get_unsynced(self) -> list[Timesheet]:
        return [timesheet for timesheet in self.all() if timesheet.zebra_id is None]

    @staticmethod
    def _check_zebra_id(timesheet: Timesheet, records: dict) -> None:
        if timesheet.zebra_id is None:
            return
        for uuid, record in records.items():
            if uuid == timesheet.uuid:
                continue
            # Records that load() drops do not hold their Zebra id.
            try:
                other = Timesheet.from_dict(record)
            except RecordFormatError:
                continue
            if other.zebra_id == timesheet.zebra_id:
                raise DuplicateZebraIdError(
                    f"Zebra id {timesheet.zebra_id} already belongs to timesheet {uuid}"
                )
