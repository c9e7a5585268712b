"""
Debug output for multical.

Modules print timestamped diagnostic lines to stderr through a small
per-module ``_debug_print`` helper. Output is off unless enabled, either
from configuration (``[General] debug = true``) or by calling set_debug().
"""

import sys
from datetime import datetime


_debug_enabled: bool = False


def set_debug(enabled: bool):
    """Enable or disable debug output for the whole package."""
    global _debug_enabled
    _debug_enabled = bool(enabled)


def is_debug_enabled() -> bool:
    return _debug_enabled


def debug_print(tag: str, message: str) -> None:
    """Print a timestamped, tagged line to stderr when debugging is on."""
    if not _debug_enabled:
        return
    timestamp = datetime.now().strftime("%H:%M:%S")
    print(f"[{timestamp}] {tag}: {message}", file=sys.stderr)
