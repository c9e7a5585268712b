"""
Event value type for multical.

An Event is an immutable calendar entry. Identity for duplicate detection
is (subject, start, end); description, location, status and the series id
ride along but do not take part in equality. Edits never mutate an Event,
they build a replacement value.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Optional

from .exceptions import ValidationError
from .timezone_utils import truncate_to_minute


VALID_STATUSES = ("", "public", "private")

# All-day window used when an event is created without an end time.
# Can be overridden by config.
_all_day_start: time = time(8, 0)
_all_day_end: time = time(17, 0)


def set_all_day_window(start: time, end: time):
    """Set the time-of-day window synthesised for all-day events."""
    global _all_day_start, _all_day_end
    if end < start:
        raise ValidationError("All-day window must end after it starts")
    _all_day_start = start
    _all_day_end = end


def get_all_day_window() -> tuple[time, time]:
    return _all_day_start, _all_day_end


def is_valid_status(status: Optional[str]) -> bool:
    """Check a status value. Matching is case-insensitive; None counts as empty."""
    return status is None or status.strip().lower() in VALID_STATUSES


def normalize_status(status: Optional[str]) -> str:
    if not is_valid_status(status):
        raise ValidationError(f"Invalid status: {status!r}")
    return (status or "").strip().lower()


class Property(Enum):
    """Event properties that can be edited."""
    SUBJECT = "subject"
    START = "start"
    END = "end"
    DESCRIPTION = "description"
    LOCATION = "location"
    STATUS = "status"

    @classmethod
    def from_string(cls, name: Optional[str]) -> 'Property':
        """Look up a property by name, ignoring case and surrounding whitespace."""
        if name is None or not name.strip():
            raise ValidationError("Property name cannot be empty")
        try:
            return cls(name.strip().lower())
        except ValueError:
            raise ValidationError(f"Invalid property: {name}")

    def __str__(self):
        return self.value


class Weekday(Enum):
    """
    Days of the week by their one-character codes.

    Thursday is R and Sunday is U so that every day has a distinct letter.
    """
    M = ("Monday", 0)
    T = ("Tuesday", 1)
    W = ("Wednesday", 2)
    R = ("Thursday", 3)
    F = ("Friday", 4)
    S = ("Saturday", 5)
    U = ("Sunday", 6)

    def __init__(self, full_name: str, day_number: int):
        self.full_name = full_name
        # Same numbering as date.weekday(): Monday is 0
        self.day_number = day_number

    @classmethod
    def from_char(cls, char: str) -> 'Weekday':
        try:
            return cls[char]
        except KeyError:
            raise ValidationError(f"Invalid weekday: {char!r}")

    @classmethod
    def parse(cls, weekdays: Optional[str]) -> list['Weekday']:
        """
        Parse a weekday string such as "MWF".

        Returns the weekdays in the order given, without repeats.

        Raises:
            ValidationError: if the string is empty or has an unknown code.
        """
        if weekdays is None or not weekdays.strip():
            raise ValidationError("Weekdays cannot be empty")
        days = []
        for char in weekdays.strip():
            day = cls.from_char(char)
            if day not in days:
                days.append(day)
        return days

    @classmethod
    def day_numbers(cls, weekdays: str) -> frozenset[int]:
        return frozenset(day.day_number for day in cls.parse(weekdays))

    def matches(self, day: date) -> bool:
        return day.weekday() == self.day_number

    def __str__(self):
        return self.full_name


def validate_weekdays(weekdays: Optional[str]) -> None:
    Weekday.parse(weekdays)


@dataclass(frozen=True)
class Event:
    """
    A single calendar entry.

    Times are naive local datetimes at minute precision; the zone is owned
    by the calendar the event lives in. Use Event.build() to get the
    all-day default when no end time is known.
    """
    subject: str
    start: datetime
    end: datetime
    description: str = field(default="", compare=False)
    location: str = field(default="", compare=False)
    status: str = field(default="", compare=False)
    series_id: Optional[str] = field(default=None, compare=False)

    def __post_init__(self):
        if self.subject is None or not str(self.subject).strip():
            raise ValidationError("Subject cannot be empty")
        if self.start is None:
            raise ValidationError("Start date time cannot be empty")
        if self.end is None:
            raise ValidationError("End date time cannot be empty")
        object.__setattr__(self, 'start', truncate_to_minute(self.start))
        object.__setattr__(self, 'end', truncate_to_minute(self.end))
        if self.end < self.start:
            raise ValidationError("Start time cannot be after end time")
        object.__setattr__(self, 'description', self.description or "")
        object.__setattr__(self, 'location', self.location or "")
        object.__setattr__(self, 'status', normalize_status(self.status))

    @classmethod
    def build(
        cls,
        subject: str,
        start: datetime,
        end: Optional[datetime] = None,
        description: Optional[str] = "",
        location: Optional[str] = "",
        status: Optional[str] = "",
        series_id: Optional[str] = None,
    ) -> 'Event':
        """
        Build and validate an Event.

        When end is omitted the event becomes an all-day event: it runs
        from 08:00 to 17:00 (or the configured window) on the start date.

        Raises:
            ValidationError: on an empty subject, a missing start, an end
                before the start or an unknown status.
        """
        if start is None:
            raise ValidationError("Start date time cannot be empty")
        if end is None:
            start, end = all_day_bounds(start.date())
        return cls(
            subject=subject,
            start=start,
            end=end,
            description=description,
            location=location,
            status=status,
            series_id=series_id,
        )

    # ==================== Derived Properties ====================

    @property
    def key(self) -> tuple[str, datetime, datetime]:
        """Identity used for duplicate detection."""
        return (self.subject, self.start, self.end)

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def is_part_of_series(self) -> bool:
        return bool(self.series_id)

    @property
    def spans_days(self) -> bool:
        return self.start.date() != self.end.date()

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """Check overlap with [start, end]; touching endpoints count."""
        return not (self.end < start or self.start > end)

    def occurs_at(self, instant: datetime) -> bool:
        return self.start <= instant <= self.end

    # ==================== Replacement Values ====================

    def copy_to(self, start: datetime, end: datetime) -> 'Event':
        """Copy this event to new times, keeping everything else including the series id."""
        return replace(self, start=start, end=end)

    def with_changes(self, **changes) -> 'Event':
        """Build a validated replacement with some fields changed."""
        return replace(self, **changes)

    # ==================== Display ====================

    def format_line(self) -> str:
        """
        Render the event as a schedule bullet line (without newline).

        Example: "• Flight (2025-01-01 09:00 - 12:00) @ LAX"
        """
        line = f"• {self.subject} ({self.start:%Y-%m-%d %H:%M} - "
        if self.spans_days:
            line += f"{self.end:%Y-%m-%d} "
        line += f"{self.end:%H:%M})"
        if self.location:
            line += f" @ {self.location}"
        return line

    def __repr__(self):
        return f"Event(subject={self.subject!r}, start={self.start}, end={self.end})"


def all_day_bounds(day: date) -> tuple[datetime, datetime]:
    """Start and end of the all-day window on a given date."""
    return datetime.combine(day, _all_day_start), datetime.combine(day, _all_day_end)


def format_schedule(events: list[Event]) -> str:
    """
    Render events as bullet lines sorted by start time.

    Each line ends with a newline; no events gives an empty string.
    """
    ordered = sorted(events, key=lambda e: e.start)
    return "".join(event.format_line() + "\n" for event in ordered)
