"""
Unit tests for EventStore: creation, edit scopes, queries and timezone moves.
"""

from datetime import date, datetime

import pytest

from multical.event import Event
from multical.event_store import AVAILABLE, BUSY, EventStore
from multical.exceptions import ConflictError, NotFoundError, ValidationError


@pytest.fixture
def weekly_lecture(store, lecture):
    """Four Monday lectures: Jan 6, 13, 20 and 27."""
    store.create_series_n_times(lecture, "M", 4)
    return store


def _starts(events):
    return [e.start for e in events]


# ==================== Creation ====================

class TestCreateEvent:

    def test_create_and_find(self, store, flight):
        store.create_event(flight)
        assert len(store) == 1
        assert flight in store
        assert store.find_event("Flight", "2025-01-01T09:00") is flight
        assert store.get_event("Flight", "2025-01-01T09:00", "2025-01-01T12:00") is flight

    def test_duplicate_rejected_and_store_unchanged(self, store, flight):
        store.create_event(flight)
        duplicate = Event.build("Flight", flight.start, flight.end, location="Gate 4")

        with pytest.raises(ConflictError) as exc_info:
            store.create_event(duplicate)

        assert exc_info.value.event == duplicate
        assert len(store) == 1
        assert store.get_all_events()[0].location == ""

    def test_same_start_different_subject_allowed(self, store, flight, dentist):
        store.create_event(flight)
        store.create_event(dentist)
        assert store.event_count == 2
        assert store.day_schedule("2025-01-01") == (
            "• Flight (2025-01-01 09:00 - 12:00)\n"
            "• Dentist Appointment (2025-01-01 09:00 - 10:00)\n"
        )

    def test_same_subject_and_start_different_end_allowed(self, store, flight):
        store.create_event(flight)
        store.create_event(Event.build("Flight", flight.start, datetime(2025, 1, 1, 13, 0)))
        assert len(store) == 2

    def test_none_rejected(self, store):
        with pytest.raises(ValidationError):
            store.create_event(None)

    def test_remove_event(self, store, flight):
        store.create_event(flight)
        store.remove_event(Event.build("Flight", flight.start, flight.end))
        assert len(store) == 0
        with pytest.raises(NotFoundError):
            store.remove_event(flight)


class TestCreateSeries:

    def test_n_times(self, weekly_lecture):
        events = weekly_lecture.get_all_events()
        assert [e.start.date() for e in events] == [
            date(2025, 1, 6), date(2025, 1, 13), date(2025, 1, 20), date(2025, 1, 27),
        ]
        series_id = events[0].series_id
        assert weekly_lecture.get_series_events(series_id) == events

    def test_until(self, store, lecture):
        events = store.create_series_until(lecture, "MW", "2025-01-13")
        assert [e.start.date() for e in events] == [
            date(2025, 1, 6), date(2025, 1, 8), date(2025, 1, 13),
        ]

    def test_series_is_all_or_nothing(self, store, flight):
        store.create_event(flight)
        # Monday 2024-12-30, MWF: the second occurrence lands on the flight
        template = Event.build("Flight", datetime(2024, 12, 30, 9, 0), datetime(2024, 12, 30, 12, 0))

        with pytest.raises(ConflictError):
            store.create_series_n_times(template, "MWF", 3)

        assert store.get_all_events() == [flight]

    def test_create_events_checks_batch_against_itself(self, store, flight):
        with pytest.raises(ConflictError):
            store.create_events([flight, Event.build("Flight", flight.start, flight.end)])
        assert len(store) == 0


# ==================== Editing ====================

class TestEditEvent:

    def test_edit_location(self, store, flight):
        store.create_event(flight)
        edited = store.edit_event("location", "Flight", "2025-01-01T09:00", "2025-01-01T12:00", "LAX")
        assert edited.location == "LAX"
        assert store.get_all_events() == [edited]
        assert store.get_all_events()[0].location == "LAX"

    def test_edit_start_reindexes(self, store, flight):
        store.create_event(flight)
        store.edit_event("start", "Flight", "2025-01-01T09:00", "2025-01-01T12:00", "2025-01-01T10:30")

        assert store.find_event("Flight", "2025-01-01T09:00") is None
        moved = store.find_event("Flight", "2025-01-01T10:30")
        assert moved.end == datetime(2025, 1, 1, 12, 0)
        assert store.is_free("2025-01-01T10:00") == AVAILABLE

    def test_edit_end_before_start(self, store, flight):
        store.create_event(flight)
        with pytest.raises(ValidationError, match="End time cannot be before start time"):
            store.edit_event("end", "Flight", "2025-01-01T09:00", "2025-01-01T12:00",
                             "2025-01-01T08:00")
        assert store.get_all_events() == [flight]

    def test_edit_start_after_end(self, store, flight):
        store.create_event(flight)
        with pytest.raises(ValidationError, match="after the end time"):
            store.edit_event("start", "Flight", "2025-01-01T09:00", "2025-01-01T12:00",
                             "2025-01-01T13:00")

    def test_edit_status(self, store, flight):
        store.create_event(flight)
        edited = store.edit_event("STATUS", "Flight", "2025-01-01T09:00", "2025-01-01T12:00", "Private")
        assert edited.status == "private"

    def test_invalid_status(self, store, flight):
        store.create_event(flight)
        with pytest.raises(ValidationError, match="Invalid status"):
            store.edit_event("status", "Flight", "2025-01-01T09:00", "2025-01-01T12:00", "busy")

    def test_invalid_property(self, store, flight):
        store.create_event(flight)
        with pytest.raises(ValidationError):
            store.edit_event("color", "Flight", "2025-01-01T09:00", "2025-01-01T12:00", "red")

    def test_missing_event(self, store, flight):
        store.create_event(flight)
        with pytest.raises(NotFoundError, match="Event not found"):
            store.edit_event("location", "Flight", "2025-01-01T09:00", "2025-01-01T11:00", "LAX")

    def test_edit_into_duplicate_is_rejected(self, store, flight, dentist):
        store.create_event(flight)
        store.create_event(Event.build("Flight", dentist.start, dentist.end))

        with pytest.raises(ConflictError):
            store.edit_event("end", "Flight", "2025-01-01T09:00", "2025-01-01T12:00",
                             "2025-01-01T10:00")
        assert len(store) == 2
        assert store.get_event("Flight", "2025-01-01T09:00", "2025-01-01T12:00") is flight

    def test_edit_to_same_value(self, store, flight):
        store.create_event(flight)
        store.edit_event("subject", "Flight", "2025-01-01T09:00", "2025-01-01T12:00", "Flight")
        assert len(store) == 1


class TestEditScopes:

    def test_edit_events_changes_from_occurrence_onward(self, weekly_lecture):
        edited = weekly_lecture.edit_events("location", "Lecture", "2025-01-13T10:00", "Hall B")

        assert [e.start.day for e in edited] == [13, 20, 27]
        locations = [e.location for e in weekly_lecture.get_all_events()]
        assert locations == ["", "Hall B", "Hall B", "Hall B"]

    def test_edit_events_on_single_event(self, store, flight):
        store.create_event(flight)
        edited = store.edit_events("description", "Flight", "2025-01-01T09:00", "Window seat")
        assert len(edited) == 1
        assert store.get_all_events()[0].description == "Window seat"

    def test_edit_events_missing(self, weekly_lecture):
        with pytest.raises(NotFoundError, match="No matching events found"):
            weekly_lecture.edit_events("location", "Lecture", "2025-01-14T10:00", "Hall B")

    def test_edit_series_from_any_occurrence(self, weekly_lecture):
        weekly_lecture.edit_event_series("subject", "Lecture", "2025-01-20T10:00", "Seminar")
        assert [e.subject for e in weekly_lecture.get_all_events()] == ["Seminar"] * 4
        assert weekly_lecture.find_event("Lecture", "2025-01-06T10:00") is None

    def test_series_membership_survives_edits(self, weekly_lecture):
        series_id = weekly_lecture.get_all_events()[0].series_id
        weekly_lecture.edit_events("subject", "Lecture", "2025-01-20T10:00", "Review")
        assert len(weekly_lecture.get_series_events(series_id)) == 4

    def test_series_start_shift(self, weekly_lecture):
        weekly_lecture.edit_event_series("start", "Lecture", "2025-01-13T10:00", "2025-01-13T09:30")
        events = weekly_lecture.get_all_events()
        assert [e.start for e in events] == [
            datetime(2025, 1, d, 9, 30) for d in (6, 13, 20, 27)
        ]
        assert all(e.end.hour == 11 for e in events)

    def test_series_edit_invalid_leaves_all_unchanged(self, weekly_lecture):
        before = weekly_lecture.get_all_events()
        with pytest.raises(ValidationError):
            weekly_lecture.edit_event_series("start", "Lecture", "2025-01-06T10:00", "2025-01-06T11:30")
        assert weekly_lecture.get_all_events() == before

    def test_series_edit_conflict_rolls_back(self, weekly_lecture):
        blocker = Event.build("Lecture", datetime(2025, 1, 20, 9, 0), datetime(2025, 1, 20, 11, 0))
        weekly_lecture.create_event(blocker)
        before = weekly_lecture.get_all_events()

        with pytest.raises(ConflictError):
            weekly_lecture.edit_event_series("start", "Lecture", "2025-01-06T10:00", "2025-01-06T09:00")

        assert weekly_lecture.get_all_events() == before
        assert _starts(weekly_lecture.events_on("2025-01-13")) == [datetime(2025, 1, 13, 10, 0)]


# ==================== Queries ====================

class TestQueries:

    def test_events_between_touching_endpoints(self, store, flight, convention):
        store.create_event(flight)
        store.create_event(convention)
        assert store.events_between("2025-01-01T12:00", "2025-01-03T08:00") == [flight, convention]
        assert store.events_between("2025-01-01T12:01", "2025-01-03T07:59") == []

    def test_events_between_rejects_reversed_range(self, store):
        with pytest.raises(ValidationError):
            store.events_between("2025-01-02T00:00", "2025-01-01T00:00")

    def test_multi_day_event_on_each_day(self, store, holiday):
        store.create_event(holiday)
        for day in ("2025-12-20", "2025-12-25", "2025-12-31"):
            assert store.events_on(day) == [holiday]
        assert store.events_on("2026-01-01") == []

    def test_overnight_event_on_both_days(self, store):
        red_eye = Event.build("Red-eye", datetime(2025, 1, 1, 22, 0), datetime(2025, 1, 2, 6, 0))
        store.create_event(red_eye)
        assert store.events_on(date(2025, 1, 1)) == [red_eye]
        assert store.events_on(date(2025, 1, 2)) == [red_eye]
        assert store.day_schedule("2025-01-02") == "• Red-eye (2025-01-01 22:00 - 2025-01-02 06:00)\n"

    def test_empty_day_schedule(self, store):
        assert store.day_schedule("2025-01-01") == ""

    def test_is_free_boundaries(self, store, flight):
        store.create_event(flight)
        assert store.is_free("2025-01-01T08:59") == AVAILABLE
        assert store.is_free("2025-01-01T09:00") == BUSY
        assert store.is_free("2025-01-01T12:00") == BUSY
        assert store.is_free("2025-01-01T12:01") == AVAILABLE

    def test_range_schedule_sorted(self, store, flight, convention, dentist):
        store.create_event(convention)
        store.create_event(flight)
        store.create_event(dentist)
        assert store.range_schedule("2025-01-01T00:00", "2025-01-05T00:00") == (
            "• Flight (2025-01-01 09:00 - 12:00)\n"
            "• Dentist Appointment (2025-01-01 09:00 - 10:00)\n"
            "• Convention (2025-01-03 08:00 - 17:00)\n"
        )

    def test_results_are_copies(self, store, flight):
        store.create_event(flight)
        store.get_all_events().clear()
        assert len(store) == 1


# ==================== Timezone and Export ====================

class TestTimezone:

    def test_unknown_timezone(self):
        with pytest.raises(ValidationError):
            EventStore("Mars/Olympus_Mons")

    def test_update_timezone_keeps_instants(self, weekly_lecture):
        series_id = weekly_lecture.get_all_events()[0].series_id
        weekly_lecture.update_timezone("America/New_York")

        assert weekly_lecture.timezone_name == "America/New_York"
        events = weekly_lecture.get_all_events()
        assert [e.start for e in events] == [datetime(2025, 1, d, 13, 0) for d in (6, 13, 20, 27)]
        assert all(e.end.hour == 14 for e in events)
        assert weekly_lecture.get_series_events(series_id) == events
        assert weekly_lecture.find_event("Lecture", "2025-01-13T13:00") is not None
        assert weekly_lecture.is_free("2025-01-13T10:30") == AVAILABLE

    def test_update_timezone_rejects_merged_events(self):
        # 02:30 does not exist in New York on 2025-03-09 and lands on the same instant as 03:30
        store = EventStore("America/New_York")
        store.create_event(Event.build("X", datetime(2025, 3, 9, 2, 30), datetime(2025, 3, 9, 4, 0)))
        store.create_event(Event.build("X", datetime(2025, 3, 9, 3, 30), datetime(2025, 3, 9, 4, 0)))
        before = store.get_all_events()

        with pytest.raises(ConflictError):
            store.update_timezone("UTC")

        assert store.timezone_name == "America/New_York"
        assert store.get_all_events() == before
        assert store.find_event("X", "2025-03-09T02:30") is not None


class TestExport:

    def test_export_icalendar(self, store, flight):
        store.create_event(flight.with_changes(location="LAX", status="public"))
        text = store.export_icalendar()

        assert text.startswith("BEGIN:VCALENDAR")
        assert "X-WR-TIMEZONE:America/Los_Angeles" in text
        assert "SUMMARY:Flight" in text
        assert "LOCATION:LAX" in text
        assert "CLASS:PUBLIC" in text
        assert "DTSTART;TZID=America/Los_Angeles:20250101T090000" in text
        assert text.count("BEGIN:VEVENT") == 1

    def test_export_marks_series(self, weekly_lecture):
        text = weekly_lecture.export_icalendar()
        assert text.count("BEGIN:VEVENT") == 4
        assert text.count("X-MULTICAL-SERIES:") == 4

    def test_export_uid_is_stable(self, store, flight):
        store.create_event(flight)
        assert store.export_icalendar() == store.export_icalendar()
