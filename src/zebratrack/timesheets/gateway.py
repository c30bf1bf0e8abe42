"""Remote timesheet gateway: converts between Timesheets and Zebra API records."""

import logging
from datetime import date, datetime
from typing import Any, Optional, Union

from ..api.zebra_client import ZebraClient
from ..catalog import ProjectCatalog
from ..domain.entity_key import EntityKey
from ..domain.models import Role
from ..domain.timesheet import Timesheet
from ..exceptions import (
    RecordFormatError,
    RemoteSyncError,
    ValidationError,
    ZebraApiError,
)
from ..user.roles import ConfiguredRoleProvider
from ..utils.timezone import InstantLike, parse_business_datetime, to_business_date, utcnow

logger = logging.getLogger(__name__)


class ZebraTimesheetGateway:
    """Create, update, delete and fetch timesheets in Zebra.

    Transport and conversion failures surface as RemoteSyncError.
    """

    def __init__(
        self,
        client: ZebraClient,
        catalog: ProjectCatalog,
        role_provider: Optional[ConfiguredRoleProvider] = None,
    ) -> None:
        """Initialize gateway.

        Args:
            client: Zebra API client
            catalog: Lookup for activities referenced by API records
            role_provider: Lookup for roles referenced by API records
        """
        self.client = client
        self.catalog = catalog
        self.role_provider = role_provider

    def to_api_fields(self, timesheet: Timesheet) -> dict[str, Any]:
        """API fields for creating or updating a timesheet."""
        fields: dict[str, Any] = {
            "project_id": timesheet.project_id,
            "activity_id": int(timesheet.activity.entity_key.id),
            "description": timesheet.description,
            "time": timesheet.time,
            "date": timesheet.date.isoformat(),
        }
        if timesheet.client_description is not None:
            fields["client_description"] = timesheet.client_description
        if timesheet.role is not None:
            fields["role_id"] = timesheet.role.id
        return fields

    def from_api_record(self, record: dict[str, Any], uuid: Optional[str] = None) -> Timesheet:
        """Build a timesheet from a Zebra API record.

        Local-only fields start empty: no frame uuids, syncing enabled.

        Raises:
            RecordFormatError: If the record is incomplete, references an
                unknown activity or breaks timesheet invariants
        """
        occupation_id = record.get("occupation_id", record.get("occupid"))
        if occupation_id is None:
            raise RecordFormatError("API record requires 'occupation_id' or 'occupid'")
        if not isinstance(record.get("date"), str):
            raise RecordFormatError("API record requires a 'date' string")
        if not isinstance(record.get("description"), str):
            raise RecordFormatError("API record requires a 'description' string")
        try:
            time = float(record["time"])
        except (KeyError, TypeError, ValueError) as e:
            raise RecordFormatError("API record requires a numeric 'time'") from e

        try:
            activity_key = EntityKey.zebra(occupation_id)
        except ValidationError as e:
            raise RecordFormatError(f"Invalid occupation id: {occupation_id!r}") from e
        activity = self.catalog.get_activity(activity_key)
        if activity is None:
            raise RecordFormatError(f"Activity not found for occupation id {occupation_id}")

        zebra_id = record.get("id")
        if isinstance(zebra_id, bool) or not isinstance(zebra_id, int):
            zebra_id = None

        try:
            return Timesheet.create(
                uuid=uuid,
                activity=activity,
                description=record["description"],
                client_description=(
                    str(record["client_description"])
                    if record.get("client_description") is not None
                    else None
                ),
                time=time,
                date=record["date"],
                role=self._resolve_role(record.get("role_id")),
                individual_action=record.get("individual_action") is True,
                zebra_id=zebra_id,
                updated_at=self._parse_updated_at(record),
            )
        except (ValueError, TypeError, OverflowError) as e:
            raise RecordFormatError(f"Invalid API timesheet {record.get('id')}: {e}") from e

    def _resolve_role(self, role_id: Any) -> Optional[Role]:
        if role_id is None:
            return None
        try:
            role_id = int(role_id)
        except (TypeError, ValueError):
            return None
        known = self.role_provider.get_role(role_id) if self.role_provider else None
        return known or Role(id=role_id)

    @staticmethod
    def _parse_updated_at(record: dict[str, Any]) -> Optional[datetime]:
        """Last change of a record (``lu_date`` or ``modified``, business zone)."""
        for key in ("lu_date", "modified"):
            value = record.get(key)
            if isinstance(value, str):
                try:
                    return parse_business_datetime(value)
                except ValidationError:
                    logger.warning(f"Unparseable {key} {value!r}, using current time")
                    return utcnow()
        return None

    def create(self, timesheet: Timesheet) -> Timesheet:
        """Create a timesheet remotely and return the remote version.

        Raises:
            RemoteSyncError: If the request fails or the created record
                cannot be retrieved
        """
        response = self.client.create_timesheet(self.to_api_fields(timesheet))
        data = response.get("data")

        if isinstance(data, dict):
            created = data.get("timesheet")
            if isinstance(created, dict):
                try:
                    return self.from_api_record(created)
                except RecordFormatError as e:
                    logger.debug(f"Created timesheet not usable from response: {e}")

            created_id = data.get("id")
            if isinstance(created_id, int) and not isinstance(created_id, bool):
                fetched = self.fetch_by_id(created_id)
                if fetched is not None:
                    return fetched

            if "id" in data:
                try:
                    return self.from_api_record(data)
                except RecordFormatError as e:
                    logger.debug(f"Created timesheet not usable from response data: {e}")

        # No usable id in the response: find the new record by its content
        for candidate in self.fetch_by_date_range(timesheet.date, timesheet.date):
            if (
                candidate.project_id == timesheet.project_id
                and candidate.activity.entity_key == timesheet.activity.entity_key
                and candidate.description == timesheet.description
            ):
                return candidate

        raise RemoteSyncError(
            "Failed to retrieve created timesheet from Zebra. "
            "It may have been created but could not be fetched."
        )

    def update(self, timesheet: Timesheet) -> Timesheet:
        """Update a pushed timesheet and return the refreshed remote version.

        Raises:
            ValidationError: If the timesheet has no Zebra id
            RemoteSyncError: If the request fails or the record vanished
        """
        if timesheet.zebra_id is None:
            raise ValidationError("Cannot update a timesheet without Zebra id")

        self.client.update_timesheet(timesheet.zebra_id, self.to_api_fields(timesheet))
        updated = self.fetch_by_id(timesheet.zebra_id)
        if updated is None:
            raise RemoteSyncError(f"Timesheet {timesheet.zebra_id} not found after update")
        return updated

    def delete(self, zebra_id: int) -> None:
        self.client.delete_timesheet(zebra_id)

    def fetch_by_id(self, zebra_id: int) -> Optional[Timesheet]:
        """Fetch one timesheet, None if Zebra reports it missing.

        Raises:
            RemoteSyncError: On other failures, including unreadable records
        """
        try:
            record = self.client.fetch_timesheet(zebra_id)
        except ZebraApiError as e:
            if e.is_not_found:
                return None
            raise

        try:
            return self.from_api_record(record)
        except RecordFormatError as e:
            raise RemoteSyncError(f"Cannot read timesheet {zebra_id} from Zebra: {e}") from e

    def fetch_by_date_range(
        self,
        from_date: Union[date, InstantLike],
        to_date: Optional[Union[date, InstantLike]] = None,
    ) -> list[Timesheet]:
        """Fetch timesheets between two business-zone days (inclusive).

        Records that cannot be converted are skipped.
        """
        filters = {"start_date": to_business_date(from_date).isoformat()}
        if to_date is not None:
            filters["end_date"] = to_business_date(to_date).isoformat()

        timesheets: list[Timesheet] = []
        for zebra_id, record in self.client.fetch_timesheets(filters).items():
            try:
                timesheets.append(self.from_api_record(record))
            except RecordFormatError as e:
                logger.warning(f"Skipping Zebra timesheet {zebra_id}: {e}")
        return timesheets
