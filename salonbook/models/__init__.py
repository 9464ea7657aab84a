"""Domain models for the booking engine."""

from salonbook.models.schemas import (
    ALLOWED_TRANSITIONS,
    BLOCKING_STATUSES,
    Appointment,
    AppointmentStatus,
    BlockingInterval,
    Client,
    DayHours,
    NewAppointment,
    Resource,
    Service,
    ServiceQuote,
    Tenant,
    TimeWindow,
    Weekday,
)

__all__ = [
    # Enumerations
    "ALLOWED_TRANSITIONS",
    "BLOCKING_STATUSES",
    "AppointmentStatus",
    "Weekday",
    # Records
    "Appointment",
    "BlockingInterval",
    "Client",
    "DayHours",
    "NewAppointment",
    "Resource",
    "Service",
    "ServiceQuote",
    "Tenant",
    "TimeWindow",
]
