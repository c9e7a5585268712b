"""
Multi-calendar registry for multical.

A CalendarRegistry holds named EventStores, each with its own timezone,
and tracks which one is active. Single-calendar operations go to the
active store; copy operations read from the active store and write into a
second, named store, converting wall-clock times between the two zones.
"""

from datetime import datetime, timedelta, tzinfo
from typing import TYPE_CHECKING, Optional, Union

from .debug import debug_print
from .event import Event
from .event_store import EventStore
from .exceptions import NotFoundError, StateError, ValidationError
from .series import EventSeries
from .timezone_utils import (
    DateLike, DateTimeLike, convert_local, end_of_day, parse_date,
    parse_datetime, resolve_timezone, start_of_day,
)

if TYPE_CHECKING:
    from .config import Config


def _debug_print(message: str) -> None:
    debug_print("REGISTRY", message)


CALENDAR_PROPERTIES = ("name", "timezone")


class CalendarRegistry:
    """
    Named, independently timezoned calendars with one active calendar.

    Names are unique and case-sensitive. Operations that work on calendar
    contents require an active calendar and raise StateError otherwise.
    """

    def __init__(self):
        self._calendars: dict[str, EventStore] = {}
        self._active: Optional[EventStore] = None

    @classmethod
    def from_config(cls, config: 'Config') -> 'CalendarRegistry':
        """Create a registry holding the calendars declared in configuration."""
        config.apply()
        registry = cls()
        for calendar in config.calendars:
            registry.create_calendar(calendar.name, calendar.timezone)
        return registry

    # ==================== Calendar Management ====================

    def create_calendar(self, name: str, timezone: Union[str, tzinfo]) -> EventStore:
        """
        Create an empty calendar.

        Raises:
            ValidationError: if the name is empty or the timezone is unknown.
            StateError: if a calendar with this name exists.
        """
        if name is None or not name.strip():
            raise ValidationError("Calendar name cannot be empty")
        if name in self._calendars:
            raise StateError("A calendar with this name already exists")
        store = EventStore(resolve_timezone(timezone))
        self._calendars[name] = store
        _debug_print(f"Created calendar {name!r} in {store.timezone_name}")
        return store

    def use_calendar(self, name: str) -> None:
        """Make a calendar the active one."""
        self._active = self.get_calendar(name)
        _debug_print(f"Using calendar {name!r}")

    def edit_calendar(self, name: str, property: str, new_value: str) -> None:
        """
        Rename a calendar or change its timezone.

        Renaming keeps the same store (and keeps it active if it was).
        Changing the timezone re-expresses every event in the new zone.

        Raises:
            NotFoundError: if the calendar does not exist.
            ValidationError: for an unknown property or timezone.
            StateError: if the new name is already taken.
        """
        prop = (property or "").strip().lower()
        if prop not in CALENDAR_PROPERTIES:
            raise ValidationError(f"Invalid property: {property}")
        store = self.get_calendar(name)

        if prop == "name":
            if new_value is None or not new_value.strip():
                raise ValidationError("Calendar name cannot be empty")
            if new_value == name:
                return
            if new_value in self._calendars:
                raise StateError("A calendar with this name already exists")
            del self._calendars[name]
            self._calendars[new_value] = store
            _debug_print(f"Renamed calendar {name!r} to {new_value!r}")
        else:
            store.update_timezone(resolve_timezone(new_value))

    def delete_calendar(self, name: str) -> None:
        """Remove a calendar; deleting the active one leaves none active."""
        store = self.get_calendar(name)
        del self._calendars[name]
        if self._active is store:
            self._active = None
        _debug_print(f"Deleted calendar {name!r}")

    def get_calendar(self, name: str) -> EventStore:
        """
        Look up a calendar by name.

        Raises:
            NotFoundError: if no calendar has this name.
        """
        store = self._calendars.get(name)
        if store is None:
            raise NotFoundError("Calendar not found")
        return store

    def calendar_names(self) -> list[str]:
        return sorted(self._calendars)

    def get_calendars(self) -> str:
        """Calendar names sorted and newline separated, or "No calendars"."""
        if not self._calendars:
            return "No calendars"
        return "\n".join(self.calendar_names())

    def timezone_of(self, name: str) -> str:
        return self.get_calendar(name).timezone_name

    @property
    def active_calendar_name(self) -> Optional[str]:
        for name, store in self._calendars.items():
            if store is self._active:
                return name
        return None

    def _require_active(self) -> EventStore:
        if self._active is None:
            raise StateError("No calendar selected")
        return self._active

    def _require_target(self, name: str) -> EventStore:
        store = self._calendars.get(name)
        if store is None:
            raise NotFoundError("No calendar found with that name")
        return store

    # ==================== Active Calendar Operations ====================

    def create_event(self, event: Event) -> Event:
        return self._require_active().create_event(event)

    def create_series(self, series: EventSeries) -> list[Event]:
        return self._require_active().create_series(series)

    def create_series_n_times(self, event: Event, weekdays: str, occurrences: int) -> list[Event]:
        return self._require_active().create_series_n_times(event, weekdays, occurrences)

    def create_series_until(self, event: Event, weekdays: str, until: DateLike) -> list[Event]:
        return self._require_active().create_series_until(event, weekdays, until)

    def edit_event(self, property: str, subject: str, start: DateTimeLike,
                   end: DateTimeLike, new_value: Optional[str]) -> Event:
        return self._require_active().edit_event(property, subject, start, end, new_value)

    def edit_events(self, property: str, subject: str, start: DateTimeLike,
                    new_value: Optional[str]) -> list[Event]:
        return self._require_active().edit_events(property, subject, start, new_value)

    def edit_event_series(self, property: str, subject: str, start: DateTimeLike,
                          new_value: Optional[str]) -> list[Event]:
        return self._require_active().edit_event_series(property, subject, start, new_value)

    def day_schedule(self, day: DateLike) -> str:
        return self._require_active().day_schedule(day)

    def range_schedule(self, start: DateTimeLike, end: DateTimeLike) -> str:
        return self._require_active().range_schedule(start, end)

    def is_free(self, instant: DateTimeLike) -> str:
        return self._require_active().is_free(instant)

    def events_on(self, day: DateLike) -> list[Event]:
        return self._require_active().events_on(day)

    def events_between(self, start: DateTimeLike, end: DateTimeLike) -> list[Event]:
        return self._require_active().events_between(start, end)

    def export_icalendar(self) -> str:
        return self._require_active().export_icalendar()

    # ==================== Copying ====================

    def copy_event(self, subject: str, source_start: DateTimeLike,
                   target_calendar: str, new_start: DateTimeLike) -> Event:
        """
        Copy one event from the active calendar into another calendar.

        ``new_start`` is a wall-clock time in the target calendar. It is
        taken into the source zone, the original duration is added there,
        and both ends are brought back into the target zone, so the copy
        keeps its real length even across a DST change in either zone.

        Raises:
            StateError: if no calendar is active.
            NotFoundError: if the target calendar or the event is missing.
            ConflictError: if the target already has the same event.
        """
        source = self._require_active()
        target = self._require_target(target_calendar)

        original = source.find_event(subject, source_start)
        if original is None:
            raise NotFoundError("Event not found")

        start_in_source = convert_local(parse_datetime(new_start), target.timezone, source.timezone)
        end_in_source = start_in_source + original.duration

        copy = original.copy_to(
            convert_local(start_in_source, source.timezone, target.timezone),
            convert_local(end_in_source, source.timezone, target.timezone),
        )
        target.create_event(copy)
        _debug_print(f"Copied {original!r} to {target_calendar!r} as {copy!r}")
        return copy

    def copy_events_on(self, day: DateLike, target_calendar: str, new_day: DateLike) -> list[Event]:
        """
        Copy every event overlapping a day into another calendar.

        Each event is converted from the active zone to the target zone and
        then shifted by the number of days between ``day`` and ``new_day``.

        Raises:
            StateError: if no calendar is active.
            NotFoundError: if the target is missing or the day has no events.
            ConflictError: if any copy duplicates an event in the target;
                in that case nothing is copied.
        """
        source = self._require_active()
        target = self._require_target(target_calendar)

        day = parse_date(day)
        new_day = parse_date(new_day)
        range_start = start_of_day(day)
        range_end = start_of_day(day) + timedelta(days=1) - timedelta(microseconds=1)

        events = source.events_between(range_start, range_end)
        if not events:
            raise NotFoundError("No events found on this day")
        return self._copy_shifted(events, source, target, range_start, start_of_day(new_day))

    def copy_events_between(self, start_day: DateLike, end_day: DateLike,
                            target_calendar: str, new_start_day: DateLike) -> list[Event]:
        """
        Copy every event overlapping an inclusive range of days.

        Same conversion as copy_events_on, with the shift measured from the
        first day of the range to ``new_start_day``.

        Raises:
            StateError: if no calendar is active.
            ValidationError: if the range ends before it starts.
            NotFoundError: if the target is missing or the range is empty.
            ConflictError: if any copy duplicates an event in the target;
                in that case nothing is copied.
        """
        source = self._require_active()
        target = self._require_target(target_calendar)

        start_day = parse_date(start_day)
        end_day = parse_date(end_day)
        if end_day < start_day:
            raise ValidationError("End date cannot be before start date")
        new_start_day = parse_date(new_start_day)

        range_start = start_of_day(start_day)
        range_end = end_of_day(end_day).replace(microsecond=0)

        events = source.events_between(range_start, range_end)
        if not events:
            raise NotFoundError("No events found in this range of times")
        return self._copy_shifted(events, source, target, range_start, start_of_day(new_start_day))

    def _copy_shifted(self, events: list[Event], source: EventStore, target: EventStore,
                      old_origin: datetime, new_origin: datetime) -> list[Event]:
        # Whole-day offset measured on the source calendar's local clock
        shift = new_origin - old_origin
        copies = [
            event.copy_to(
                convert_local(event.start, source.timezone, target.timezone) + shift,
                convert_local(event.end, source.timezone, target.timezone) + shift,
            )
            for event in events
        ]
        target.create_events(copies)
        _debug_print(f"Copied {len(copies)} event(s) shifted by {shift}")
        return copies
