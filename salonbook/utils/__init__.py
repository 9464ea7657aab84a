"""Utility functions for salonbook."""

from salonbook.utils.clock import (
    add_minutes,
    format_clock,
    from_minutes,
    parse_calendar_date,
    parse_clock,
    to_minutes,
    weekday_index,
)

__all__ = [
    "add_minutes",
    "format_clock",
    "from_minutes",
    "parse_calendar_date",
    "parse_clock",
    "to_minutes",
    "weekday_index",
]
