"""Calendar-date and clock-time helpers.

Dates are built from their year/month/day components and anchored at UTC
midnight before the weekday is read, so the result never depends on the
host timezone. Clock times are naive and carry no date.
"""

import re
from datetime import date, datetime, time, timezone

from salonbook.errors import BookingValidationError

MINUTES_PER_DAY = 24 * 60

_DATE_PATTERN = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_CLOCK_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


def parse_calendar_date(value: str | date) -> date:
    """Parse a "YYYY-MM-DD" string into a calendar date.

    Args:
        value: ISO date string or an existing date

    Returns:
        The calendar date

    Raises:
        BookingValidationError: If the string is malformed or not a real date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    match = _DATE_PATTERN.match(value.strip()) if isinstance(value, str) else None
    if match is None:
        raise BookingValidationError(f"Invalid date '{value}', expected YYYY-MM-DD")

    year, month, day = (int(part) for part in match.groups())
    try:
        anchored = datetime(year, month, day, tzinfo=timezone.utc)
    except ValueError as e:
        raise BookingValidationError(f"Invalid date '{value}': {e}") from e
    return anchored.date()


def weekday_index(day: date) -> int:
    """Return the weekday of a date (Monday=0 ... Sunday=6)."""
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc).weekday()


def parse_clock(value: str | time) -> time:
    """Parse "HH:MM" (or "HH:MM:SS") into a naive clock time.

    Raises:
        BookingValidationError: If the value is not a valid time of day
    """
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0, tzinfo=None)

    match = _CLOCK_PATTERN.match(value.strip()) if isinstance(value, str) else None
    if match is None:
        raise BookingValidationError(f"Invalid time '{value}', expected HH:MM")

    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise BookingValidationError(f"Invalid time '{value}', out of range")
    return time(hour, minute)


def format_clock(value: time) -> str:
    """Format a clock time as zero-padded "HH:MM"."""
    return f"{value.hour:02d}:{value.minute:02d}"


def to_minutes(value: time) -> int:
    """Minutes since midnight."""
    return value.hour * 60 + value.minute


def from_minutes(minutes: int) -> time:
    """Convert minutes since midnight back into a clock time.

    Raises:
        BookingValidationError: If the value falls outside a single day
    """
    if minutes < 0 or minutes >= MINUTES_PER_DAY:
        raise BookingValidationError(
            f"Time {minutes // 60:02d}:{minutes % 60:02d} is outside a single day",
            minutes=minutes,
        )
    return time(minutes // 60, minutes % 60)


def add_minutes(start: time, minutes: int) -> time:
    """Compute start + minutes on the same calendar day.

    An end of exactly 24:00 is rejected too; services finish by 23:59.
    """
    end = to_minutes(start) + minutes
    if end >= MINUTES_PER_DAY:
        raise BookingValidationError(
            f"{format_clock(start)} + {minutes} min ends at or after midnight; "
            "services must finish by 23:59",
            start_time=format_clock(start),
            minutes=minutes,
        )
    return from_minutes(end)
