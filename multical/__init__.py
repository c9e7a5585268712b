"""
multical - multi-calendar event management core.

This package provides:
- Event values and recurring series (event.py, series.py)
- Per-calendar event store with duplicate checks and edits (event_store.py)
- Interval index for overlap queries (interval_tree.py)
- Named, timezoned calendars with cross-calendar copying (registry.py)
- Timezone helpers built on pytz (timezone_utils.py)
- TOML configuration (config.py)
"""

from .config import Config
from .event import Event, Property, Weekday
from .event_store import EventStore
from .exceptions import (
    CalendarError, ConflictError, NotFoundError, StateError, ValidationError,
)
from .registry import CalendarRegistry
from .series import EventSeries, expand_occurrences

__all__ = [
    'Config',
    'Event',
    'EventSeries',
    'EventStore',
    'CalendarRegistry',
    'Property',
    'Weekday',
    'expand_occurrences',
    # Errors
    'CalendarError',
    'ConflictError',
    'NotFoundError',
    'StateError',
    'ValidationError',
]
