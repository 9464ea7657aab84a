"""Booking API request/response models.

Records (Resource, Service, Appointment, ...) are returned as-is from
salonbook.models; these are the request bodies and envelopes around them.
"""

from pydantic import BaseModel, Field

from salonbook.models import AppointmentStatus, DayHours, Weekday


# =============================================================================
# Request Models (for creation)
# =============================================================================


class CreateTenant(BaseModel):
    """Request to create a tenant."""

    name: str = Field(min_length=1)
    id: str | None = None


class CreateResource(BaseModel):
    """Request to create a professional."""

    name: str = Field(min_length=1)
    availability: dict[Weekday, DayHours] = Field(default_factory=dict)
    id: str | None = None


class UpdateResource(BaseModel):
    """Request to activate or deactivate a professional."""

    active: bool


class CreateService(BaseModel):
    """Request to create a service."""

    name: str = Field(min_length=1)
    duration: int = Field(gt=0, le=24 * 60)
    price: float = Field(default=0.0, ge=0)
    id: str | None = None


class CreateBooking(BaseModel):
    """Public booking request."""

    resource_id: str
    service_id: str
    date: str = Field(description="YYYY-MM-DD")
    start_time: str = Field(description="HH:MM")
    client_name: str
    client_email: str
    client_phone: str | None = None


class ScheduleAppointment(BaseModel):
    """Administrative appointment creation for an existing client."""

    resource_id: str
    service_id: str
    client_id: str
    date: str = Field(description="YYYY-MM-DD")
    start_time: str = Field(description="HH:MM")
    status: AppointmentStatus = AppointmentStatus.PENDING
    price: float | None = Field(default=None, ge=0)
    notes: str | None = None


class UpdateStatus(BaseModel):
    """Request to move an appointment to a new status."""

    status: AppointmentStatus


# =============================================================================
# Response Models
# =============================================================================


class SlotList(BaseModel):
    """Available start times for one resource, service and date."""

    date: str
    resource_id: str
    service_id: str
    slots: list[str]
