"""Minimal Zebra API client for timesheets and projects."""

import logging
from typing import Any, Optional

import requests

from ..domain.timesheet import is_quarter_hour
from ..exceptions import ValidationError, ZebraApiError

logger = logging.getLogger(__name__)


class ZebraClient:
    """Simple Zebra API client.

    Every non-success outcome (HTTP error, undecodable body, or a body
    without ``success: true``) raises ZebraApiError.
    """

    TIMESHEETS_ENDPOINT = "/api/v2/timesheets"
    PROJECTS_ENDPOINT = "/api/v2/projects"
    PROJECT_STATUSES = [0, 1, 2]
    REQUIRED_CREATE_FIELDS = ("project_id", "activity_id", "description", "time", "date")

    def __init__(self, base_uri: str, token: str, timeout: int = 30) -> None:
        """Initialize Zebra client.

        Args:
            base_uri: Zebra base URI
            token: API token for authentication
            timeout: Request timeout in seconds
        """
        self.base_uri = base_uri.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }

    def _make_request(
        self, method: str, endpoint: str, params: Optional[dict[str, Any]] = None
    ) -> dict[str, Any]:
        """Make authenticated request to Zebra API.

        Args:
            method: HTTP method
            endpoint: API endpoint
            params: Query parameters

        Returns:
            Decoded response body

        Raises:
            ZebraApiError: If the request or the response is not successful
        """
        url = f"{self.base_uri}{endpoint}"

        try:
            response = requests.request(
                method, url, headers=self.headers, params=params, timeout=self.timeout
            )
            response.raise_for_status()
        except requests.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else None
            logger.error(f"Zebra API request failed: {method} {endpoint}: {e}")
            raise ZebraApiError(f"Zebra API request failed: {e}", status_code) from e
        except requests.RequestException as e:
            logger.error(f"Zebra API request failed: {method} {endpoint}: {e}")
            raise ZebraApiError(f"Zebra API request failed: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise ZebraApiError(
                f"Failed to decode JSON response from Zebra API: {e}", response.status_code
            ) from e

        if not isinstance(data, dict) or data.get("success") is not True:
            raise ZebraApiError("Zebra API request was not successful", response.status_code)
        return data

    @staticmethod
    def _format_params(data: dict[str, Any]) -> dict[str, Any]:
        """Drop empty values and send lists with array notation (``key[]``)."""
        params: dict[str, Any] = {}
        for key, value in data.items():
            if value is None:
                continue
            if isinstance(value, (list, tuple, set)):
                params[f"{key}[]"] = list(value)
            elif isinstance(value, bool):
                params[key] = int(value)
            else:
                params[key] = value
        return params

    @staticmethod
    def _extract_list(data: dict[str, Any]) -> list[Any]:
        """Records of a list response. The list may come keyed by ID.

        Raises:
            ZebraApiError: If ``data`` is present but not an object
        """
        payload = data.get("data")
        if payload is None:
            return []
        if not isinstance(payload, dict):
            raise ZebraApiError(
                f"Unexpected response shape: 'data' is {type(payload).__name__}, expected an object"
            )
        records = payload.get("list")
        if isinstance(records, dict):
            return list(records.values())
        return records if isinstance(records, list) else []

    @staticmethod
    def _validate_time(fields: dict[str, Any]) -> None:
        time = fields.get("time")
        if time is None:
            return
        try:
            hours = float(time)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Time must be numeric, got: {time!r}") from e
        if not is_quarter_hour(hours):
            raise ValidationError(f"Time must be a multiple of 0.25, got: {hours}")

    def create_timesheet(self, fields: dict[str, Any]) -> dict[str, Any]:
        """Create a timesheet.

        Args:
            fields: API fields; project_id, activity_id, description, time
                and date are required

        Returns:
            Full response body

        Raises:
            ValidationError: If a required field is missing or time is not
                a quarter hour
        """
        for name in self.REQUIRED_CREATE_FIELDS:
            if fields.get(name) is None:
                raise ValidationError(f"Missing required field: {name}")
        self._validate_time(fields)

        logger.debug(f"Creating timesheet: {fields}")
        return self._make_request("POST", self.TIMESHEETS_ENDPOINT, params=self._format_params(fields))

    def update_timesheet(self, timesheet_id: int, fields: dict[str, Any]) -> dict[str, Any]:
        """Update a timesheet.

        Args:
            timesheet_id: Zebra timesheet ID
            fields: API fields to change

        Returns:
            Full response body
        """
        self._validate_time(fields)

        logger.debug(f"Updating timesheet {timesheet_id}: {fields}")
        return self._make_request(
            "PUT",
            f"{self.TIMESHEETS_ENDPOINT}/{timesheet_id}",
            params=self._format_params(fields),
        )

    def delete_timesheet(self, timesheet_id: int) -> None:
        """Delete a timesheet.

        Args:
            timesheet_id: Zebra timesheet ID
        """
        self._make_request("DELETE", f"{self.TIMESHEETS_ENDPOINT}/{timesheet_id}")
        logger.debug(f"Deleted timesheet {timesheet_id}")

    def fetch_timesheets(self, filters: Optional[dict[str, Any]] = None) -> dict[int, dict[str, Any]]:
        """Get timesheets matching filters.

        Args:
            filters: Query filters, e.g. start_date and end_date (YYYY-MM-DD)

        Returns:
            Timesheet records keyed by Zebra ID
        """
        data = self._make_request(
            "GET", self.TIMESHEETS_ENDPOINT, params=self._format_params(filters or {})
        )
        timesheets: dict[int, dict[str, Any]] = {}
        for record in self._extract_list(data):
            if not isinstance(record, dict):
                continue
            record_id = record.get("id")
            if isinstance(record_id, int) and not isinstance(record_id, bool):
                timesheets[record_id] = record
        logger.debug(f"Fetched {len(timesheets)} timesheets")
        return timesheets

    def fetch_timesheet(self, timesheet_id: int) -> dict[str, Any]:
        """Get a timesheet by ID.

        Args:
            timesheet_id: Zebra timesheet ID

        Returns:
            Timesheet record

        Raises:
            ZebraApiError: With status_code 404 if the timesheet does not exist
        """
        try:
            data = self._make_request("GET", f"{self.TIMESHEETS_ENDPOINT}/{timesheet_id}")
        except ZebraApiError as e:
            if e.is_not_found:
                raise ZebraApiError(f"Timesheet with ID {timesheet_id} not found (404)", 404) from e
            raise

        record = data.get("data")
        if not isinstance(record, dict):
            raise ZebraApiError("Timesheet data not found in API response")
        return record

    def get_projects(self) -> list[dict[str, Any]]:
        """Get all projects with their activities, whatever their status.

        Returns:
            List of project records
        """
        data = self._make_request(
            "GET",
            self.PROJECTS_ENDPOINT,
            params=self._format_params({"statuses": self.PROJECT_STATUSES}),
        )
        return self._extract_list(data)

    def test_connection(self) -> bool:
        """Test if API connection works.

        Returns:
            True if connection is successful
        """
        try:
            self.get_projects()
            return True
        except ZebraApiError as e:
            logger.error(f"Zebra connection test failed: {e}")
            return False
