"""Salonbook - appointment availability and booking engine.

Computes bookable slots for a professional from weekly working hours,
service duration and existing appointments, and books them without
double-booking. Storage is reached through ports (salonbook.ports) with
SQLite and in-memory adapters provided.
"""

from salonbook.errors import (
    BookingError,
    BookingValidationError,
    ConflictError,
    ErrorDetail,
    ErrorType,
    NotFoundError,
    StoreError,
)
from salonbook.models import Appointment, AppointmentStatus, Weekday
from salonbook.scheduling import BookingEngine
from salonbook.storage import InMemoryStore, SalonDB

__all__ = [
    # Engine
    "BookingEngine",
    # Errors
    "BookingError",
    "BookingValidationError",
    "ConflictError",
    "ErrorDetail",
    "ErrorType",
    "NotFoundError",
    "StoreError",
    # Models
    "Appointment",
    "AppointmentStatus",
    "Weekday",
    # Storage
    "InMemoryStore",
    "SalonDB",
]
