"""
Timezone and timestamp utilities for multical.

Calendars store naive local wall-clock datetimes; the zone they belong to is
a property of the owning calendar. These helpers resolve zone names with
pytz, move wall-clock values between zones and parse the public wire
formats (``YYYY-MM-DDTHH:MM`` and ``YYYY-MM-DD``).
"""

from datetime import date, datetime, time, tzinfo
from typing import Union
import pytz

from .exceptions import ValidationError


DATETIME_FORMAT = "%Y-%m-%dT%H:%M"
DATE_FORMAT = "%Y-%m-%d"

DateTimeLike = Union[datetime, str]
DateLike = Union[date, datetime, str]


def resolve_timezone(timezone: Union[str, tzinfo]):
    """
    Resolve a zone name to a pytz timezone object.

    Args:
        timezone: An IANA zone name (e.g. "America/New_York"), an
            existing pytz timezone, which is returned unchanged, or another
            tzinfo (such as zoneinfo.ZoneInfo), which is looked up by name.

    Returns:
        pytz timezone object.

    Raises:
        ValidationError: if the name is empty or unknown. "GMT" is only
            accepted when it was literally asked for.
    """
    if isinstance(timezone, pytz.BaseTzInfo):
        return timezone
    if isinstance(timezone, tzinfo):
        # Conversions rely on pytz's localize(), so other tzinfos are re-resolved
        timezone = getattr(timezone, 'key', None) or str(timezone)
    if timezone is None or not str(timezone).strip():
        raise ValidationError("Invalid timezone")
    name = str(timezone).strip()
    try:
        tz = pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        raise ValidationError(f"Invalid timezone: {name}")
    if tz.zone == "GMT" and name != "GMT":
        raise ValidationError(f"Invalid timezone: {name}")
    return tz


def zone_name(tz) -> str:
    """Get the IANA name of a pytz timezone."""
    return getattr(tz, 'zone', None) or str(tz)


def localize(dt: datetime, tz) -> datetime:
    """Attach a pytz zone to a naive wall-clock datetime."""
    if dt.tzinfo is not None:
        return dt.astimezone(tz)
    return tz.localize(dt)


def convert_local(dt: datetime, from_tz, to_tz) -> datetime:
    """
    Re-express a naive wall-clock time from one zone in another.

    The value is read as local time in ``from_tz`` and the same absolute
    instant is returned as naive local time in ``to_tz``.

    Args:
        dt: Naive datetime in from_tz.
        from_tz: pytz timezone the value is currently expressed in.
        to_tz: pytz timezone to express it in.

    Returns:
        A naive datetime (tzinfo=None) in to_tz.
    """
    return localize(dt, from_tz).astimezone(to_tz).replace(tzinfo=None)


def to_utc(dt: datetime, tz) -> datetime:
    """Convert a naive wall-clock datetime in ``tz`` to an aware UTC datetime."""
    return localize(dt, tz).astimezone(pytz.UTC)


def truncate_to_minute(dt: datetime) -> datetime:
    return dt.replace(second=0, microsecond=0)


def parse_datetime(value: DateTimeLike) -> datetime:
    """
    Parse a ``YYYY-MM-DDTHH:MM`` timestamp.

    Datetime objects are accepted as-is (truncated to the minute).

    Raises:
        ValidationError: for anything else or malformed text.
    """
    if isinstance(value, datetime):
        return truncate_to_minute(value)
    if not isinstance(value, str):
        raise ValidationError(f"Invalid date and time: {value!r}")
    try:
        return datetime.strptime(value.strip(), DATETIME_FORMAT)
    except ValueError:
        raise ValidationError(f"Invalid date and time: {value!r}")


def parse_date(value: DateLike) -> date:
    """
    Parse a ``YYYY-MM-DD`` date.

    Date and datetime objects are accepted (a datetime gives its date).

    Raises:
        ValidationError: for anything else or malformed text.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"Invalid date: {value!r}")
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT).date()
    except ValueError:
        raise ValidationError(f"Invalid date: {value!r}")


def parse_time_of_day(value: str) -> time:
    """Parse an ``HH:MM`` time of day."""
    try:
        return datetime.strptime(value.strip(), "%H:%M").time()
    except (ValueError, AttributeError):
        raise ValidationError(f"Invalid time of day: {value!r}")


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min)


def end_of_day(day: date) -> datetime:
    """Last representable instant of the day (23:59:59.999999)."""
    return datetime.combine(day, time.max)
