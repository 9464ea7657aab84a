"""Slot generation.

Enumerates candidate start times inside an open window at a fixed
granularity. The first hour steps from the window start; every later hour
restarts on the clock grid at :00, so a 09:15 opening yields 09:15, 09:45,
10:00, 10:30. Candidates are naive clock times with no date component.
"""

from collections.abc import Iterator
from datetime import time

from salonbook.config import SLOT_GRANULARITY_MINUTES
from salonbook.errors import BookingValidationError
from salonbook.models import TimeWindow
from salonbook.utils.clock import from_minutes, to_minutes


def iter_slots(
    window: TimeWindow,
    granularity_minutes: int = SLOT_GRANULARITY_MINUTES,
    *,
    service_duration: int | None = None,
    trim_overrunning: bool = False,
) -> Iterator[time]:
    """Yield candidate start times while < window.end.

    Within the opening hour candidates step from window.start; each
    following hour starts again at :00.

    Args:
        window: Half-open open window
        granularity_minutes: Spacing between consecutive candidates
        service_duration: Service length in minutes (needed for trimming)
        trim_overrunning: Drop candidates whose service would end after
            window.end. Off by default: a candidate close to closing time
            is offered even if the service runs past it.

    Raises:
        BookingValidationError: On a non-positive granularity, or when
            trimming is requested without a service duration
    """
    if granularity_minutes <= 0:
        raise BookingValidationError(
            f"Granularity must be positive, got {granularity_minutes}"
        )
    if trim_overrunning and service_duration is None:
        raise BookingValidationError("trim_overrunning requires service_duration")

    start = to_minutes(window.start)
    end = to_minutes(window.end)

    first_hour, last_hour = start // 60, end // 60

    for hour in range(first_hour, last_hour + 1):
        first_minute = start % 60 if hour == first_hour else 0
        limit = end % 60 if hour == last_hour else 60

        for minute in range(first_minute, limit, granularity_minutes):
            minutes = hour * 60 + minute
            if trim_overrunning and minutes + service_duration > end:
                return
            yield from_minutes(minutes)


def generate_slots(
    window: TimeWindow,
    granularity_minutes: int = SLOT_GRANULARITY_MINUTES,
    *,
    service_duration: int | None = None,
    trim_overrunning: bool = False,
) -> list[time]:
    """Ordered list of candidate start times (see iter_slots)."""
    return list(
        iter_slots(
            window,
            granularity_minutes,
            service_duration=service_duration,
            trim_overrunning=trim_overrunning,
        )
    )
