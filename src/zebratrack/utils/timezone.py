"""Timezone helpers.

All instants are kept as timezone-aware UTC datetimes at second resolution.
Inputs without an explicit zone are read in the process local zone, except
where the Zebra business zone applies (timesheet dates, API timestamps).
"""

import logging
import os
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..exceptions import ValidationError

logger = logging.getLogger(__name__)

ZEBRA_TIMEZONE = ZoneInfo("Europe/Zurich")

InstantLike = Union[datetime, int, float, str]


def utcnow() -> datetime:
    """Current instant in UTC, truncated to seconds."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def local_timezone() -> tzinfo:
    """Resolve the process local zone from TZ, else the system zone."""
    name = os.getenv("TZ")
    if name:
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Unknown timezone in TZ: {name}, using system zone")
    local = datetime.now().astimezone().tzinfo
    return local if local is not None else timezone.utc


def _from_epoch(value: float) -> datetime:
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as e:
        raise ValidationError(f"Epoch seconds out of range: {value!r}") from e


def to_utc(value: InstantLike, assume_tz: tzinfo | None = None) -> datetime:
    """Normalize an instant to an aware UTC datetime at second resolution.

    Args:
        value: datetime, epoch seconds or ISO 8601 string
        assume_tz: Zone for naive input (default: process local zone)

    Returns:
        Aware UTC datetime without microseconds

    Raises:
        ValidationError: If the value cannot be interpreted as an instant
    """
    if isinstance(value, bool):
        raise ValidationError(f"Invalid instant: {value!r}")

    if isinstance(value, (int, float)):
        result = _from_epoch(value)
    elif isinstance(value, datetime):
        result = value
    elif isinstance(value, str):
        text = value.strip()
        if text.lstrip("-").isdigit():
            result = _from_epoch(int(text))
        else:
            try:
                result = datetime.fromisoformat(text)
            except ValueError as e:
                raise ValidationError(f"Invalid instant: {value!r}") from e
    else:
        raise ValidationError(f"Invalid instant: {value!r}")

    if result.tzinfo is None:
        result = result.replace(tzinfo=assume_tz or local_timezone())

    return result.astimezone(timezone.utc).replace(microsecond=0)


def to_timestamp(value: datetime) -> int:
    """Epoch seconds of an aware datetime."""
    return int(value.timestamp())


def to_local(value: datetime) -> datetime:
    """Convert an instant to the process local zone for display."""
    return value.astimezone(local_timezone())


def to_business_date(value: Union[date, InstantLike]) -> date:
    """Calendar day of a value in the Zebra business zone.

    A "YYYY-MM-DD" string and a plain date are taken as that calendar day.
    Instants are converted into the business zone before taking the day.
    """
    if isinstance(value, datetime):
        return to_utc(value).astimezone(ZEBRA_TIMEZONE).date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and len(value.strip()) == 10:
        try:
            return date.fromisoformat(value.strip())
        except ValueError as e:
            raise ValidationError(f"Invalid date: {value!r}") from e
    return to_utc(value).astimezone(ZEBRA_TIMEZONE).date()


def parse_business_datetime(value: str) -> datetime:
    """Parse a Zebra API timestamp (business zone unless explicit) to UTC."""
    return to_utc(value, assume_tz=ZEBRA_TIMEZONE)


def business_day_bounds(day: date) -> tuple[datetime, datetime]:
    """UTC bounds of a calendar day in the business zone.

    Returns:
        Tuple of (start, end), end being the last second of the day
    """
    start = datetime.combine(day, time.min, tzinfo=ZEBRA_TIMEZONE)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=ZEBRA_TIMEZONE)
    return to_utc(start), to_utc(end) - timedelta(seconds=1)
