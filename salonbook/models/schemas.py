"""Pydantic models for the booking domain.

Weekdays and appointment statuses are closed enumerations; clock times
serialize as "HH:MM" and calendar dates as "YYYY-MM-DD".
"""

from datetime import date, datetime, time
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, PlainSerializer

from salonbook.errors import BookingError
from salonbook.utils.clock import format_clock, parse_calendar_date, parse_clock


def _coerce_clock(value: object) -> object:
    if isinstance(value, (str, time)):
        try:
            return parse_clock(value)
        except BookingError as e:
            raise ValueError(e.message) from e
    return value


def _coerce_date(value: object) -> object:
    if isinstance(value, (str, date)):
        try:
            return parse_calendar_date(value)
        except BookingError as e:
            raise ValueError(e.message) from e
    return value


ClockTime = Annotated[
    time,
    BeforeValidator(_coerce_clock),
    PlainSerializer(format_clock, return_type=str),
]
CalendarDate = Annotated[
    date,
    BeforeValidator(_coerce_date),
    PlainSerializer(lambda d: d.isoformat(), return_type=str),
]


# =============================================================================
# Enumerations
# =============================================================================


class Weekday(str, Enum):
    """Availability map keys, in Monday-first order."""

    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def from_index(cls, index: int) -> "Weekday":
        """Map Monday=0 ... Sunday=6 to a Weekday."""
        return list(cls)[index]


class AppointmentStatus(str, Enum):
    """Appointment lifecycle states."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_blocking(self) -> bool:
        return self in BLOCKING_STATUSES


BLOCKING_STATUSES = frozenset({AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED})

# pending -> confirmed -> completed, or pending/confirmed -> cancelled
ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset(
        {AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED}
    ),
    AppointmentStatus.CONFIRMED: frozenset(
        {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}
    ),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
}


# =============================================================================
# Availability
# =============================================================================


class DayHours(BaseModel):
    """Working hours for one weekday of a resource."""

    open: bool = True
    start: ClockTime | None = None
    end: ClockTime | None = None


class TimeWindow(BaseModel):
    """Half-open [start, end) range a resource is open on a given date."""

    model_config = ConfigDict(frozen=True)

    start: ClockTime
    end: ClockTime

    @property
    def is_empty(self) -> bool:
        return self.start >= self.end


class BlockingInterval(BaseModel):
    """The occupied [start, end) range of a pending or confirmed appointment."""

    model_config = ConfigDict(frozen=True)

    start: ClockTime
    end: ClockTime


# =============================================================================
# Records
# =============================================================================


class Tenant(BaseModel):
    """A salon: the isolation boundary for all other records."""

    id: str
    name: str
    created_at: datetime = Field(default_factory=datetime.now)


class Resource(BaseModel):
    """A professional whose time is booked."""

    id: str
    tenant_id: str
    name: str
    availability: dict[Weekday, DayHours] = Field(
        default_factory=dict,
        description="Weekly hours; an empty map means the default window applies",
    )
    active: bool = True


class Service(BaseModel):
    """A bookable service."""

    id: str
    tenant_id: str
    name: str
    duration: int = Field(gt=0, description="Duration in minutes")
    price: float = Field(ge=0)


class ServiceQuote(BaseModel):
    """Duration and price of a service, as the engine needs them."""

    duration: int = Field(gt=0)
    price: float = Field(ge=0)


class Client(BaseModel):
    """A salon client, unique by email within a tenant."""

    id: str
    tenant_id: str
    email: str
    name: str
    phone: str | None = None
    total_spent: float = 0.0
    visit_count: int = 0
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class NewAppointment(BaseModel):
    """An appointment ready to be inserted."""

    tenant_id: str
    resource_id: str
    service_id: str
    client_id: str
    date: CalendarDate
    start_time: ClockTime
    end_time: ClockTime
    status: AppointmentStatus = AppointmentStatus.PENDING
    price: float = Field(ge=0)
    notes: str | None = None

    @property
    def interval(self) -> BlockingInterval:
        return BlockingInterval(start=self.start_time, end=self.end_time)


class Appointment(NewAppointment):
    """A persisted appointment."""

    id: str
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
