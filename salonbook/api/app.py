"""FastAPI application factory for the booking API."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from salonbook.api.models import (
    CreateBooking,
    CreateResource,
    CreateService,
    CreateTenant,
    ScheduleAppointment,
    SlotList,
    UpdateResource,
    UpdateStatus,
)
from salonbook.errors import BookingError, ErrorDetail, ErrorType
from salonbook.models import Appointment, AppointmentStatus, Resource, Service, Tenant
from salonbook.scheduling import BookingEngine
from salonbook.storage import SalonDB

logger = logging.getLogger(__name__)

STATUS_CODES = {
    ErrorType.NOT_FOUND: 404,
    ErrorType.VALIDATION_ERROR: 422,
    ErrorType.CONFLICT: 409,
    ErrorType.STORE_ERROR: 503,
    ErrorType.UNKNOWN_ERROR: 500,
}


def create_app(db: SalonDB | None = None, engine: BookingEngine | None = None) -> FastAPI:
    """Create FastAPI app with optional database and engine injection.

    Args:
        db: Database instance. If None, opens the configured SQLite file.
        engine: Booking engine. If None, one is built over db.

    Returns:
        Configured FastAPI application.
    """
    if db is None:
        db = SalonDB()
    if engine is None:
        engine = BookingEngine.from_store(db)

    app = FastAPI(title="Salon Booking API", version="0.1.0")

    # Store db and engine in app state for access in routes
    app.state.db = db
    app.state.engine = engine

    @app.exception_handler(BookingError)
    async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
        detail = ErrorDetail.from_exception(exc, operation=request.url.path)
        if exc.error_type == ErrorType.STORE_ERROR:
            logger.error(f"{request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=STATUS_CODES[exc.error_type],
            content=detail.model_dump(mode="json"),
        )

    # --- Admin Routes ---

    @app.post("/tenants", response_model=Tenant, status_code=201)
    def create_tenant(data: CreateTenant) -> Tenant:
        """Create a new tenant."""
        return app.state.db.create_tenant(name=data.name, tenant_id=data.id)

    @app.post("/tenants/{tenant_id}/resources", response_model=Resource, status_code=201)
    def create_resource(tenant_id: str, data: CreateResource) -> Resource:
        """Create a professional with weekly availability."""
        return app.state.db.create_resource(
            tenant_id,
            data.name,
            availability=data.availability,
            resource_id=data.id,
        )

    @app.get("/tenants/{tenant_id}/resources/{resource_id}", response_model=Resource)
    def get_resource(tenant_id: str, resource_id: str) -> Resource:
        """Get a professional by ID."""
        return app.state.db.get_resource(tenant_id, resource_id)

    @app.patch("/tenants/{tenant_id}/resources/{resource_id}", response_model=Resource)
    def update_resource(tenant_id: str, resource_id: str, data: UpdateResource) -> Resource:
        """Activate or deactivate a professional."""
        return app.state.db.set_resource_active(tenant_id, resource_id, data.active)

    @app.post("/tenants/{tenant_id}/services", response_model=Service, status_code=201)
    def create_service(tenant_id: str, data: CreateService) -> Service:
        """Create a bookable service."""
        return app.state.db.create_service(
            tenant_id,
            data.name,
            duration=data.duration,
            price=data.price,
            service_id=data.id,
        )

    @app.get("/tenants/{tenant_id}/services/{service_id}", response_model=Service)
    def get_service(tenant_id: str, service_id: str) -> Service:
        """Get a service by ID."""
        return app.state.db.get_service(tenant_id, service_id)

    # --- Availability Routes ---

    @app.get(
        "/tenants/{tenant_id}/resources/{resource_id}/slots", response_model=SlotList
    )
    def list_slots(tenant_id: str, resource_id: str, service_id: str, date: str) -> SlotList:
        """Bookable start times for a service on a date (empty when closed)."""
        slots = app.state.engine.get_available_slots(tenant_id, resource_id, service_id, date)
        return SlotList(date=date, resource_id=resource_id, service_id=service_id, slots=slots)

    # --- Booking Routes ---

    @app.post("/tenants/{tenant_id}/bookings", response_model=Appointment, status_code=201)
    def create_booking(tenant_id: str, data: CreateBooking) -> Appointment:
        """Public booking: creates or refreshes the client, then books the slot."""
        return app.state.engine.create_booking(
            tenant_id,
            data.resource_id,
            data.service_id,
            data.date,
            data.start_time,
            client_name=data.client_name,
            client_email=data.client_email,
            client_phone=data.client_phone,
        )

    # --- Appointment Routes ---

    @app.post(
        "/tenants/{tenant_id}/appointments", response_model=Appointment, status_code=201
    )
    def schedule_appointment(tenant_id: str, data: ScheduleAppointment) -> Appointment:
        """Administrative appointment creation for an existing client."""
        return app.state.engine.schedule_appointment(
            tenant_id,
            data.resource_id,
            data.service_id,
            data.client_id,
            data.date,
            data.start_time,
            status=data.status,
            price=data.price,
            notes=data.notes,
        )

    @app.get("/tenants/{tenant_id}/appointments", response_model=list[Appointment])
    def list_appointments(
        tenant_id: str,
        date_from: str | None = None,
        date_to: str | None = None,
        resource_id: str | None = None,
        status: AppointmentStatus | None = None,
    ) -> list[Appointment]:
        """Agenda listing, ordered by date and start time."""
        return app.state.engine.list_appointments(
            tenant_id,
            date_from=date_from,
            date_to=date_to,
            resource_id=resource_id,
            status=status,
        )

    @app.get(
        "/tenants/{tenant_id}/appointments/{appointment_id}", response_model=Appointment
    )
    def get_appointment(tenant_id: str, appointment_id: str) -> Appointment:
        """Get an appointment by ID."""
        return app.state.engine.get_appointment(tenant_id, appointment_id)

    @app.patch(
        "/tenants/{tenant_id}/appointments/{appointment_id}/status",
        response_model=Appointment,
    )
    def update_status(tenant_id: str, appointment_id: str, data: UpdateStatus) -> Appointment:
        """Confirm, complete or cancel an appointment."""
        return app.state.engine.transition_status(tenant_id, appointment_id, data.status)

    @app.get("/health")
    def health() -> dict:
        """Health check endpoint."""
        return {"status": "ok"}

    return app
