"""Conflict detection between candidate slots and booked appointments."""

from collections.abc import Iterable
from datetime import time

from salonbook.models import BlockingInterval
from salonbook.utils.clock import to_minutes


def overlaps(start: int, end: int, other_start: int, other_end: int) -> bool:
    """Half-open interval overlap on minutes since midnight."""
    return start < other_end and end > other_start


def find_overlapping(
    start: time,
    duration: int,
    existing: Iterable[BlockingInterval],
) -> list[BlockingInterval]:
    """Return the blocking intervals that [start, start + duration) overlaps.

    Works in integer minutes, so an end past midnight compares correctly.
    """
    begin = to_minutes(start)
    finish = begin + duration
    return [
        interval
        for interval in existing
        if overlaps(begin, finish, to_minutes(interval.start), to_minutes(interval.end))
    ]


def filter_conflicts(
    candidates: Iterable[time],
    existing: Iterable[BlockingInterval],
    service_duration: int,
) -> list[time]:
    """Drop candidates whose service interval overlaps a blocking appointment.

    Args:
        candidates: Start times in chronological order
        existing: Blocking intervals already filtered to the same resource,
            date and pending/confirmed status
        service_duration: Length of the requested service in minutes

    Returns:
        The surviving candidates, input order preserved
    """
    blocked = [(to_minutes(a.start), to_minutes(a.end)) for a in existing]

    available = []
    for candidate in candidates:
        begin = to_minutes(candidate)
        finish = begin + service_duration
        if not any(overlaps(begin, finish, a_start, a_end) for a_start, a_end in blocked):
            available.append(candidate)
    return available
