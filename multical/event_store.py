"""
Per-calendar event store for multical.

An EventStore owns the events of one calendar: a map from exact start
timestamp to the events starting then, an interval index for overlap
queries, and the calendar's timezone. It enforces the duplicate invariant
(no two events with the same subject, start and end) and implements the
three edit scopes: one event, one occurrence and the rest of its series,
or the whole series.
"""

import uuid
from datetime import datetime, tzinfo
from typing import Iterable, Optional, Union

from icalendar import Calendar as ICalCalendar, Event as ICalEvent

from .debug import debug_print
from .event import Event, Property, format_schedule, is_valid_status
from .exceptions import ConflictError, NotFoundError, ValidationError
from .interval_tree import IntervalTree
from .series import EventSeries
from .timezone_utils import (
    DateLike, DateTimeLike, convert_local, end_of_day, localize,
    parse_date, parse_datetime, resolve_timezone, start_of_day, zone_name,
)


def _debug_print(message: str) -> None:
    debug_print("STORE", message)


BUSY = "Busy"
AVAILABLE = "Available"


class EventStore:
    """
    Events of a single calendar, indexed by start time.

    All times are naive wall-clock values in the store's timezone. Query
    methods return new lists of immutable Events, so callers cannot reach
    into the store's internal structures.
    """

    def __init__(self, timezone: Union[str, tzinfo] = "UTC"):
        self._timezone = resolve_timezone(timezone)
        # start -> events starting then, in insertion order
        self._events_by_start: dict[datetime, list[Event]] = {}
        self._index: IntervalTree[datetime] = IntervalTree()

    @property
    def timezone(self):
        """The store's pytz timezone."""
        return self._timezone

    @property
    def timezone_name(self) -> str:
        return zone_name(self._timezone)

    def __len__(self) -> int:
        return len(self._index)

    def __contains__(self, event: Event) -> bool:
        return self._find_same_key(event) is not None

    @property
    def event_count(self) -> int:
        return len(self)

    # ==================== Internal Storage ====================

    def _find_same_key(self, event: Event, ignoring: Iterable[Event] = ()) -> Optional[Event]:
        """Stored event with the same identity as ``event``, skipping ``ignoring``."""
        skipped = [id(e) for e in ignoring]
        for existing in self._events_by_start.get(event.start, []):
            if existing == event and id(existing) not in skipped:
                return existing
        return None

    def _insert(self, event: Event) -> None:
        self._events_by_start.setdefault(event.start, []).append(event)
        self._index.insert(event.start, event.end, event)

    def _remove(self, event: Event) -> None:
        bucket = self._events_by_start.get(event.start, [])
        for i, existing in enumerate(bucket):
            if existing is event:
                del bucket[i]
                break
        if not bucket:
            self._events_by_start.pop(event.start, None)
        self._index.remove(event.start, event)

    def _check_no_conflicts(self, new_events: list[Event], replacing: Iterable[Event] = ()) -> None:
        """
        Ensure ``new_events`` can be added without breaking the duplicate invariant.

        Events in ``replacing`` are about to be removed and do not count as
        conflicts. New events are also checked against each other.

        Raises:
            ConflictError: naming the first event that would be duplicated.
        """
        replacing = list(replacing)
        seen: set[tuple] = set()
        for event in new_events:
            if event.key in seen or self._find_same_key(event, replacing) is not None:
                raise ConflictError(
                    f"An event with the same name and time already exists: "
                    f"{event.subject} ({event.start:%Y-%m-%dT%H:%M} - {event.end:%Y-%m-%dT%H:%M})",
                    event=event,
                )
            seen.add(event.key)

    def _replace_events(self, replacements: list[tuple[Event, Event]]) -> None:
        """
        Swap old events for their replacements in one step.

        The new events are checked against the store minus the old ones, so
        an event may move onto the slot it or a sibling just vacated. On a
        conflict nothing changes.
        """
        old_events = [old for old, _ in replacements]
        new_events = [new for _, new in replacements]
        self._check_no_conflicts(new_events, replacing=old_events)
        for old in old_events:
            self._remove(old)
        for new in new_events:
            self._insert(new)

    # ==================== Creation ====================

    def create_event(self, event: Event) -> Event:
        """
        Add a single event.

        Raises:
            ValidationError: if event is None.
            ConflictError: if an event with the same subject, start and end exists.
        """
        if event is None:
            raise ValidationError("Event cannot be empty")
        self._check_no_conflicts([event])
        self._insert(event)
        _debug_print(f"Created {event!r} in {self.timezone_name}")
        return event

    def create_series(self, series: EventSeries) -> list[Event]:
        """
        Expand a series and add all of its occurrences.

        Every occurrence is checked before any is added; if one would
        duplicate an existing event the whole series is rejected.

        Returns:
            The occurrences that were added, in date order.
        """
        events = self.create_events(series.generate_events())
        _debug_print(f"Created series {series.series_id} with {len(events)} occurrences")
        return events

    def create_events(self, events: list[Event]) -> list[Event]:
        """
        Add several events, all or nothing.

        Raises:
            ConflictError: if any event duplicates a stored event or another
                event in the batch; nothing is added in that case.
        """
        events = list(events)
        self._check_no_conflicts(events)
        for event in events:
            self._insert(event)
        return events

    def create_series_n_times(self, event: Event, weekdays: str, occurrences: int) -> list[Event]:
        """Repeat ``event`` on the given weekdays for a number of occurrences."""
        series = EventSeries.from_event(event, weekdays, occurrences=occurrences)
        return self.create_series(series)

    def create_series_until(self, event: Event, weekdays: str, until: DateLike) -> list[Event]:
        """Repeat ``event`` on the given weekdays up to and including ``until``."""
        series = EventSeries.from_event(event, weekdays, until=parse_date(until))
        return self.create_series(series)

    # ==================== Lookup ====================

    def find_event(self, subject: str, start: DateTimeLike) -> Optional[Event]:
        """First event with this subject starting at ``start``, ignoring end time."""
        start = parse_datetime(start)
        for event in self._events_by_start.get(start, []):
            if event.subject == subject:
                return event
        return None

    def get_event(self, subject: str, start: DateTimeLike, end: DateTimeLike) -> Optional[Event]:
        start = parse_datetime(start)
        end = parse_datetime(end)
        for event in self._events_by_start.get(start, []):
            if event.subject == subject and event.end == end:
                return event
        return None

    def get_all_events(self) -> list[Event]:
        """All events in start order."""
        return list(self._index)

    def get_series_events(self, series_id: str) -> list[Event]:
        """All occurrences of a series in start order."""
        if not series_id:
            return []
        return [event for event in self._index if event.series_id == series_id]

    def remove_event(self, event: Event) -> None:
        """
        Remove the stored event with the same subject, start and end.

        Raises:
            NotFoundError: if no such event is stored.
        """
        stored = self._find_same_key(event)
        if stored is None:
            raise NotFoundError("Event not found")
        self._remove(stored)
        _debug_print(f"Removed {stored!r}")

    # ==================== Editing ====================

    def edit_event(self, property: str, subject: str, start: DateTimeLike,
                   end: DateTimeLike, new_value: Optional[str]) -> Event:
        """
        Edit one property of the event matching subject, start and end.

        Returns:
            The replacement event.

        Raises:
            ValidationError: for a bad property name or new value.
            NotFoundError: if no event matches.
            ConflictError: if the edited event would duplicate another.
        """
        prop = Property.from_string(property)
        target = self.get_event(subject, start, end)
        if target is None:
            raise NotFoundError("Event not found")
        replacements = self._build_replacements([target], target, prop, new_value)
        self._replace_events(replacements)
        _debug_print(f"Edited {prop} of {target!r}")
        return replacements[0][1]

    def edit_events(self, property: str, subject: str, start: DateTimeLike,
                    new_value: Optional[str]) -> list[Event]:
        """
        Edit an event and, if it belongs to a series, every later occurrence.

        The event is found by subject and start alone. Occurrences starting
        before ``start`` are left untouched. A start or end edit moves every
        targeted occurrence by the offset the found event moves, rather than
        setting the same timestamp on all of them.

        Returns:
            The replacement events.
        """
        prop = Property.from_string(property)
        start = parse_datetime(start)
        target = self.find_event(subject, start)
        if target is None:
            raise NotFoundError("No matching events found")
        if target.is_part_of_series:
            targets = [e for e in self.get_series_events(target.series_id) if e.start >= start]
        else:
            targets = [target]
        return self._edit_all(targets, target, prop, new_value)

    def edit_event_series(self, property: str, subject: str, start: DateTimeLike,
                          new_value: Optional[str]) -> list[Event]:
        """
        Edit every occurrence of the series the matching event belongs to.

        An event that is not part of a series is edited on its own. Start
        and end edits shift each occurrence by the found event's offset, so
        every occurrence keeps its own date.

        Returns:
            The replacement events.
        """
        prop = Property.from_string(property)
        target = self.find_event(subject, start)
        if target is None:
            raise NotFoundError("Event not found")
        if target.is_part_of_series:
            targets = self.get_series_events(target.series_id)
        else:
            targets = [target]
        return self._edit_all(targets, target, prop, new_value)

    def _edit_all(self, targets: list[Event], anchor: Event, prop: Property,
                  new_value: Optional[str]) -> list[Event]:
        replacements = self._build_replacements(targets, anchor, prop, new_value)
        self._replace_events(replacements)
        _debug_print(f"Edited {prop} of {len(replacements)} event(s) anchored at {anchor!r}")
        return [new for _, new in replacements]

    def _build_replacements(self, targets: list[Event], anchor: Event, prop: Property,
                            new_value: Optional[str]) -> list[tuple[Event, Event]]:
        """
        Compute the replacement for each target event.

        Start and end edits move every target by the offset the anchor
        moves, so the anchor lands exactly on the new value and the other
        occurrences keep their own dates.

        Raises:
            ValidationError: if any replacement is invalid; nothing has
                been changed at that point.
        """
        if prop is Property.SUBJECT:
            return [(e, e.with_changes(subject=new_value)) for e in targets]

        if prop is Property.START:
            offset = parse_datetime(new_value) - anchor.start
            replacements = []
            for event in targets:
                new_start = event.start + offset
                if new_start > event.end:
                    raise ValidationError("New start time would be after the end time")
                replacements.append((event, event.with_changes(start=new_start)))
            return replacements

        if prop is Property.END:
            offset = parse_datetime(new_value) - anchor.end
            replacements = []
            for event in targets:
                new_end = event.end + offset
                if new_end < event.start:
                    raise ValidationError("End time cannot be before start time")
                replacements.append((event, event.with_changes(end=new_end)))
            return replacements

        if prop is Property.DESCRIPTION:
            return [(e, e.with_changes(description=new_value or "")) for e in targets]

        if prop is Property.LOCATION:
            return [(e, e.with_changes(location=new_value or "")) for e in targets]

        if prop is Property.STATUS:
            if not is_valid_status(new_value):
                raise ValidationError("Invalid status")
            return [(e, e.with_changes(status=new_value or "")) for e in targets]

        raise ValidationError(f"Invalid property: {prop}")

    # ==================== Queries ====================

    def events_between(self, start: DateTimeLike, end: DateTimeLike) -> list[Event]:
        """
        Events whose interval overlaps [start, end], sorted by start.

        Touching endpoints count as overlapping.
        """
        start = parse_datetime(start) if isinstance(start, str) else start
        end = parse_datetime(end) if isinstance(end, str) else end
        if end < start:
            raise ValidationError("End of range cannot be before its start")
        return self._index.find_intersecting(start, end)

    def events_on(self, day: DateLike) -> list[Event]:
        """Events overlapping any part of a calendar day."""
        day = parse_date(day)
        return self.events_between(start_of_day(day), end_of_day(day))

    def day_schedule(self, day: DateLike) -> str:
        """Bullet list of the events on a day; empty string if there are none."""
        return format_schedule(self.events_on(day))

    def range_schedule(self, start: DateTimeLike, end: DateTimeLike) -> str:
        """Bullet list of the events overlapping [start, end]."""
        return format_schedule(self.events_between(parse_datetime(start), parse_datetime(end)))

    def is_free(self, instant: DateTimeLike) -> str:
        """
        "Busy" if an event covers the instant (start and end included),
        otherwise "Available".
        """
        instant = parse_datetime(instant)
        return BUSY if self._index.find_covering(instant) else AVAILABLE

    # ==================== Timezone ====================

    def update_timezone(self, new_timezone) -> None:
        """
        Move the store to another timezone.

        Each event keeps its absolute instant: its wall-clock start and end
        are read in the old zone and rewritten in the new one. The index is
        rebuilt under the new start times; series membership and order are
        unchanged.

        Raises:
            ConflictError: if two events would become identical, which can
                happen when a wall time falls in a daylight-saving gap. The
                store is left unchanged.
        """
        new_tz = resolve_timezone(new_timezone)
        old_tz = self._timezone
        events = self.get_all_events()

        converted = [
            event.copy_to(
                convert_local(event.start, old_tz, new_tz),
                convert_local(event.end, old_tz, new_tz),
            )
            for event in events
        ]
        self._check_no_conflicts(converted, replacing=events)

        self._events_by_start = {}
        self._index = IntervalTree()
        self._timezone = new_tz
        for event in converted:
            self._insert(event)
        _debug_print(f"Moved {len(converted)} event(s) from {zone_name(old_tz)} to {zone_name(new_tz)}")

    # ==================== Export ====================

    def export_icalendar(self) -> str:
        """
        Render the store as iCalendar (VCALENDAR) text.

        Times are written with the store's timezone. Series membership is
        kept in an X-MULTICAL-SERIES property. Nothing is written to disk.
        """
        vcal = ICalCalendar()
        vcal.add('prodid', '-//multical//multical//EN')
        vcal.add('version', '2.0')
        vcal.add('x-wr-timezone', self.timezone_name)

        for event in self.get_all_events():
            vevent = ICalEvent()
            vevent.add('uid', _event_uid(event))
            vevent.add('summary', event.subject)
            vevent.add('dtstart', localize(event.start, self._timezone))
            vevent.add('dtend', localize(event.end, self._timezone))
            if event.description:
                vevent.add('description', event.description)
            if event.location:
                vevent.add('location', event.location)
            if event.status:
                vevent.add('class', event.status.upper())
            if event.series_id:
                vevent.add('x-multical-series', event.series_id)
            vcal.add_component(vevent)

        return vcal.to_ical().decode('utf-8')


def _event_uid(event: Event) -> str:
    """Stable UID derived from the event's identity."""
    name = f"{event.subject}|{event.start.isoformat()}|{event.end.isoformat()}"
    return f"{uuid.uuid5(uuid.NAMESPACE_URL, name)}@multical"
