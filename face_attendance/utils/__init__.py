"""
Utility modules package.
"""

from .timing import format_uptime, parse_day

__all__ = [
    'format_uptime',
    'parse_day',
]
