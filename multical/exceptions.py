"""
Exceptions raised by the multical calendar core.

Every failure is deterministic and surfaces to the caller; nothing in the
core retries or silently corrects input.
"""

from typing import Optional


class CalendarError(Exception):
    """Base exception for all calendar errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class ValidationError(CalendarError, ValueError):
    """Raised for malformed input: bad dates, weekdays, properties or statuses."""

    def __init__(self, message: str = "Invalid input") -> None:
        super().__init__(message)


class ConflictError(CalendarError):
    """Raised when an operation would create a duplicate event."""

    def __init__(self, message: str = "An event with the same name and time already exists",
                 event: Optional[object] = None) -> None:
        self.event = event
        super().__init__(message)


class NotFoundError(CalendarError, LookupError):
    """Raised when no matching event or calendar exists."""

    def __init__(self, message: str = "Not found") -> None:
        super().__init__(message)


class StateError(CalendarError):
    """Raised when the registry is in the wrong state (no active calendar, name taken)."""

    def __init__(self, message: str = "No calendar selected") -> None:
        super().__init__(message)
