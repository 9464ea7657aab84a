"""Availability resolution.

Resolves the open window of a resource for one calendar date from its
weekly availability map, falling back to the salon-wide default hours
when the map is empty.
"""

import logging
from collections.abc import Mapping
from datetime import date

from salonbook.config import DEFAULT_CLOSE_TIME, DEFAULT_CLOSED_DAYS, DEFAULT_OPEN_TIME
from salonbook.models import DayHours, Resource, TimeWindow, Weekday
from salonbook.utils.clock import parse_calendar_date, parse_clock, weekday_index

logger = logging.getLogger(__name__)


def default_weekly_hours(
    open_time: str = DEFAULT_OPEN_TIME,
    close_time: str = DEFAULT_CLOSE_TIME,
    closed_days: tuple[str, ...] = DEFAULT_CLOSED_DAYS,
) -> dict[Weekday, DayHours]:
    """Build the fallback week: open_time-close_time, closed on closed_days.

    Defaults to Monday-Saturday 09:00-18:00, Sunday closed.
    """
    start = parse_clock(open_time)
    end = parse_clock(close_time)
    closed = {Weekday(day) for day in closed_days}
    return {
        day: DayHours(open=day not in closed, start=start, end=end) for day in Weekday
    }


DEFAULT_WEEKLY_HOURS = default_weekly_hours()


def resolve_window(
    availability: Mapping[Weekday, DayHours] | Resource | None,
    day: date | str,
    fallback: Mapping[Weekday, DayHours] | None = None,
) -> TimeWindow | None:
    """Resolve the open window for a calendar date.

    Args:
        availability: Weekly hours map, or a Resource carrying one
        day: Calendar date (date or "YYYY-MM-DD")
        fallback: Week used only when the map is entirely empty
            (default: DEFAULT_WEEKLY_HOURS)

    Returns:
        TimeWindow for the day, or None when the resource is closed

    Rules:
        - Empty/unset map: the fallback week applies
        - Non-empty map: an absent weekday, open=False, or a missing
          start/end means closed; the fallback never fills gaps
        - A window whose start is not before its end is closed
    """
    if isinstance(availability, Resource):
        availability = availability.availability

    weekday = Weekday.from_index(weekday_index(parse_calendar_date(day)))

    if not availability:
        availability = DEFAULT_WEEKLY_HOURS if fallback is None else fallback

    hours = availability.get(weekday)
    if hours is None or not hours.open or hours.start is None or hours.end is None:
        logger.debug(f"Closed on {weekday.value}")
        return None

    window = TimeWindow(start=hours.start, end=hours.end)
    if window.is_empty:
        logger.debug(f"Empty window on {weekday.value}: {hours.start}-{hours.end}")
        return None

    return window
