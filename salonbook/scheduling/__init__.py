"""Scheduling services.

- Availability resolution (availability.py)
- Slot generation (slots.py)
- Conflict detection (conflicts.py)
- Booking engine (booking.py)
"""

from salonbook.scheduling.availability import (
    DEFAULT_WEEKLY_HOURS,
    default_weekly_hours,
    resolve_window,
)
from salonbook.scheduling.booking import BookingEngine, normalize_email
from salonbook.scheduling.conflicts import filter_conflicts, find_overlapping, overlaps
from salonbook.scheduling.slots import generate_slots, iter_slots

__all__ = [
    "BookingEngine",
    "DEFAULT_WEEKLY_HOURS",
    "default_weekly_hours",
    "filter_conflicts",
    "find_overlapping",
    "generate_slots",
    "iter_slots",
    "normalize_email",
    "overlaps",
    "resolve_window",
]
