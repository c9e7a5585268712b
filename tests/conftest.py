"""
Pytest configuration and shared fixtures.
Provides reusable events, stores and registries for all tests.
"""

import sys
from datetime import datetime, time
from pathlib import Path

import pytest

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from multical.debug import set_debug
from multical.event import Event, set_all_day_window
from multical.event_store import EventStore
from multical.registry import CalendarRegistry


@pytest.fixture(autouse=True)
def reset_package_state():
    """Restore module-level settings that config tests may change."""
    yield
    set_all_day_window(time(8, 0), time(17, 0))
    set_debug(False)


# ==================== Event Fixtures ====================

@pytest.fixture
def flight():
    """Three-hour event on Wednesday 2025-01-01."""
    return Event.build("Flight", datetime(2025, 1, 1, 9, 0), datetime(2025, 1, 1, 12, 0))


@pytest.fixture
def dentist():
    """Shares its start time with the flight."""
    return Event.build("Dentist Appointment", datetime(2025, 1, 1, 9, 0), datetime(2025, 1, 1, 10, 0))


@pytest.fixture
def convention():
    """All-day event (no end time given)."""
    return Event.build("Convention", datetime(2025, 1, 3, 11, 0))


@pytest.fixture
def holiday():
    """Event spanning several days."""
    return Event.build("Holiday", datetime(2025, 12, 20, 9, 0), datetime(2025, 12, 31, 9, 0))


@pytest.fixture
def lecture():
    """Template for a weekly series starting Monday 2025-01-06."""
    return Event.build("Lecture", datetime(2025, 1, 6, 10, 0), datetime(2025, 1, 6, 11, 0))


# ==================== Store Fixtures ====================

@pytest.fixture
def store():
    """Empty store in Los Angeles time."""
    return EventStore("America/Los_Angeles")


# ==================== Registry Fixtures ====================

@pytest.fixture
def registry():
    """Registry with California, New York and Tokyo calendars and none active."""
    registry = CalendarRegistry()
    registry.create_calendar("California", "America/Los_Angeles")
    registry.create_calendar("New York", "America/New_York")
    registry.create_calendar("Tokyo", "Asia/Tokyo")
    return registry
