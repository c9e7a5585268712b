"""
Configuration parser for multical.

Handles TOML file parsing for the default timezone, the all-day event
window, debug output and the calendars to create at startup.
"""

import os
import tomllib
from dataclasses import dataclass, field
from datetime import time
from pathlib import Path
from typing import Optional

from .debug import set_debug
from .event import set_all_day_window
from .exceptions import ValidationError
from .timezone_utils import parse_time_of_day, resolve_timezone


@dataclass
class CalendarConfig:
    """A calendar declared in the configuration file."""
    name: str
    timezone: str


@dataclass
class AllDayConfig:
    """Time-of-day window used for events created without an end time."""
    start: time = time(8, 0)
    end: time = time(17, 0)

    def __post_init__(self):
        if self.end < self.start:
            raise ValidationError("All-day window must end after it starts")


@dataclass
class Config:
    """Main configuration container for multical."""

    default_timezone: str = "UTC"
    debug: bool = False
    all_day: AllDayConfig = field(default_factory=AllDayConfig)
    calendars: list[CalendarConfig] = field(default_factory=list)

    @classmethod
    def get_default_config_path(cls) -> Path:
        """Get the default configuration file path."""
        xdg_config = os.environ.get('XDG_CONFIG_HOME', os.path.expanduser('~/.config'))
        return Path(xdg_config) / 'multical' / 'multical.toml'

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> 'Config':
        """
        Load configuration from a TOML file.

        Raises:
            FileNotFoundError: if the file does not exist.
            ValidationError: for an unknown timezone or malformed times.
        """
        if config_path is None:
            config_path = cls.get_default_config_path()
        config_path = Path(config_path)

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'rb') as f:
            data = tomllib.load(f)

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> 'Config':
        """Build a Config from already parsed TOML data."""
        general = data.get('General', {})
        default_timezone = general.get('default_timezone', 'UTC')
        resolve_timezone(default_timezone)
        debug = bool(general.get('debug', False))

        all_day_data = data.get('AllDay', {})
        all_day = AllDayConfig(
            start=parse_time_of_day(all_day_data.get('start', '08:00')),
            end=parse_time_of_day(all_day_data.get('end', '17:00')),
        )

        # Supports both [Calendar.Name] and [Calendar] with nested tables
        calendars = []
        for key, value in data.items():
            if key.startswith('Calendar.') and isinstance(value, dict):
                name = key.split('.', 1)[1]
                calendars.append(CalendarConfig(
                    name=name,
                    timezone=value.get('timezone', default_timezone),
                ))
            elif key == 'Calendar' and isinstance(value, dict):
                for sub_key, sub_value in value.items():
                    if isinstance(sub_value, dict):
                        calendars.append(CalendarConfig(
                            name=sub_key,
                            timezone=sub_value.get('timezone', default_timezone),
                        ))

        return cls(
            default_timezone=default_timezone,
            debug=debug,
            all_day=all_day,
            calendars=calendars,
        )

    def apply(self) -> None:
        """Install the all-day window and debug flag for the whole package."""
        set_all_day_window(self.all_day.start, self.all_day.end)
        set_debug(self.debug)
