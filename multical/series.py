"""
Recurring event series.

An EventSeries is a template event plus a recurrence rule: a set of
weekdays bounded either by an occurrence count or by an inclusive end date.
Expanding a series gives concrete Events that share one series id.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional

from .event import Event, Weekday, all_day_bounds, normalize_status
from .exceptions import ValidationError
from .timezone_utils import truncate_to_minute


def generate_series_id(subject: str, start: datetime) -> str:
    """Opaque identity token shared by all occurrences of one series."""
    return f"{subject}-{start.isoformat()}-{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class EventSeries:
    """
    Template and rule for a recurring event.

    Build instances with EventSeries.build(), which validates the rule and
    assigns a fresh series id. Two series built from identical arguments
    still get different ids.
    """
    subject: str
    start: datetime
    end: datetime
    weekdays: str
    occurrences: Optional[int] = None
    until: Optional[date] = None
    description: str = ""
    location: str = ""
    status: str = ""
    series_id: str = field(default="", compare=False)

    @classmethod
    def build(
        cls,
        subject: str,
        start: datetime,
        end: Optional[datetime] = None,
        weekdays: Optional[str] = None,
        occurrences: Optional[int] = None,
        until: Optional[date] = None,
        description: Optional[str] = "",
        location: Optional[str] = "",
        status: Optional[str] = "",
    ) -> 'EventSeries':
        """
        Validate a series template and rule.

        Raises:
            ValidationError: if the subject or start is missing, the weekday
                string is empty or invalid, no bound is given, the end date
                precedes the start, the count is not positive, or one
                occurrence would span more than one calendar day.
        """
        if subject is None or not subject.strip():
            raise ValidationError("Subject cannot be empty")
        if start is None:
            raise ValidationError("Start date time cannot be empty")
        Weekday.parse(weekdays)

        if occurrences is None and until is None:
            raise ValidationError("Either end date or number of occurrences must be specified")
        if occurrences is not None and occurrences <= 0:
            raise ValidationError("Number of occurrences must be positive")
        if isinstance(until, datetime):
            until = until.date()
        if until is not None and until < start.date():
            raise ValidationError("End date must be after start date")

        if end is None:
            start, end = all_day_bounds(start.date())
        start = truncate_to_minute(start)
        end = truncate_to_minute(end)
        if end < start:
            raise ValidationError("End time cannot be before start time")
        if start.date() != end.date():
            raise ValidationError("Series events must start and end on the same day")

        return cls(
            subject=subject,
            start=start,
            end=end,
            weekdays=weekdays.strip(),
            occurrences=occurrences,
            until=until,
            description=description or "",
            location=location or "",
            status=normalize_status(status),
            series_id=generate_series_id(subject, start),
        )

    @classmethod
    def from_event(cls, event: Event, weekdays: str, occurrences: Optional[int] = None,
                   until: Optional[date] = None) -> 'EventSeries':
        """Use an existing event as the template for a new series."""
        return cls.build(
            subject=event.subject,
            start=event.start,
            end=event.end,
            weekdays=weekdays,
            occurrences=occurrences,
            until=until,
            description=event.description,
            location=event.location,
            status=event.status,
        )

    @property
    def day_numbers(self) -> frozenset[int]:
        return Weekday.day_numbers(self.weekdays)

    def generate_events(self) -> list[Event]:
        return expand_occurrences(self)

    def copy_to(self, start: datetime, end: datetime) -> Event:
        """Single event at new times that still belongs to this series."""
        return Event.build(
            self.subject, start, end,
            description=self.description,
            location=self.location,
            status=self.status,
            series_id=self.series_id,
        )


def expand_occurrences(series: EventSeries) -> list[Event]:
    """
    Expand a series into its occurrences.

    Walks forward one day at a time from the template start date and emits
    an occurrence on every day whose weekday is in the rule, until the
    count is reached or the walked date passes the end date.
    """
    days = series.day_numbers
    one_day = timedelta(days=1)
    current_start = series.start
    current_end = series.end
    events: list[Event] = []

    while series.occurrences is None or len(events) < series.occurrences:
        if series.until is not None and current_start.date() > series.until:
            break
        if current_start.weekday() in days:
            events.append(series.copy_to(current_start, current_end))
        current_start += one_day
        current_end += one_day

    return events
