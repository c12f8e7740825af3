"""
Timing utilities.

Helper functions for time-related operations.
"""

from datetime import date
from typing import Optional


def format_uptime(seconds: float) -> str:
    """
    Format uptime in human-readable format.

    Args:
        seconds: Uptime in seconds

    Returns:
        Formatted string (e.g., "1d 2h 30m 45s")
    """
    seconds = int(seconds)

    days = seconds // 86400
    hours = (seconds % 86400) // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60

    parts = []
    if days > 0:
        parts.append(f'{days}d')
    if hours > 0:
        parts.append(f'{hours}h')
    if minutes > 0:
        parts.append(f'{minutes}m')
    parts.append(f'{secs}s')

    return ' '.join(parts)


def parse_day(value: Optional[str], default: date) -> date:
    """
    Parse a YYYY-MM-DD day key.

    Args:
        value: Day string, or None/empty for the default
        default: Day used when value is missing

    Raises:
        ValueError: If value is not a valid date
    """
    if not value:
        return default
    return date.fromisoformat(value)
