"""Booking engine.

Ties availability resolution, slot generation and conflict filtering into
get_available_slots(), and runs the booking transaction in create_booking().

The in-process conflict check only improves the error users see; the
guarantee against double-booking is the store's insert-time constraint,
which turns a lost race into ConflictError.
"""

import logging
import time
from collections.abc import Callable, Mapping
from datetime import date
from typing import TypeVar

from salonbook.config import (
    MAX_CLIENT_NAME_LENGTH,
    SLOT_GRANULARITY_MINUTES,
    STORE_MAX_RETRIES,
    STORE_RETRY_BASE_DELAY,
    STORE_RETRY_MAX_DELAY,
    TRIM_OVERRUNNING_SLOTS,
)
from salonbook.errors import BookingValidationError, ConflictError, NotFoundError, StoreError
from salonbook.models import (
    ALLOWED_TRANSITIONS,
    Appointment,
    AppointmentStatus,
    DayHours,
    NewAppointment,
    Resource,
    Weekday,
)
from salonbook.ports import AppointmentStore, ClientStore, ResourceDirectory, ServiceCatalog
from salonbook.scheduling.availability import resolve_window
from salonbook.scheduling.conflicts import filter_conflicts, find_overlapping
from salonbook.scheduling.slots import iter_slots
from salonbook.utils.clock import add_minutes, format_clock, parse_calendar_date, parse_clock

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _require_text(value: str | None, field: str) -> str:
    if value is None or not str(value).strip():
        raise BookingValidationError(f"{field} is required", field=field)
    return str(value).strip()


def normalize_email(email: str | None) -> str:
    """Strip and lowercase an email, rejecting obviously malformed values."""
    email = _require_text(email, "client_email").lower()
    local, _, domain = email.partition("@")
    if not local or not domain or " " in email:
        raise BookingValidationError(f"Invalid email '{email}'", field="client_email")
    return email


class BookingEngine:
    """Availability queries and booking commands over injected ports.

    Example:
        db = SalonDB("salon.db")
        engine = BookingEngine.from_store(db)
        engine.get_available_slots("t1", "res_1", "svc_1", "2026-01-05")
    """

    def __init__(
        self,
        resources: ResourceDirectory,
        services: ServiceCatalog,
        appointments: AppointmentStore,
        clients: ClientStore,
        *,
        granularity_minutes: int = SLOT_GRANULARITY_MINUTES,
        trim_overrunning: bool = TRIM_OVERRUNNING_SLOTS,
        fallback_hours: Mapping[Weekday, DayHours] | None = None,
        max_retries: int = STORE_MAX_RETRIES,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the engine.

        Args:
            resources: Resource lookup port
            services: Service duration/price port
            appointments: Appointment persistence port
            clients: Client persistence port
            granularity_minutes: Spacing between candidate slots
            trim_overrunning: Drop slots whose service would run past closing
            fallback_hours: Week used for resources without availability
            max_retries: Attempts for reads failing with StoreError
            sleep: Backoff sleep function (injectable for tests)
        """
        self._resources = resources
        self._services = services
        self._appointments = appointments
        self._clients = clients
        self.granularity_minutes = granularity_minutes
        self.trim_overrunning = trim_overrunning
        self._fallback_hours = fallback_hours
        self._max_retries = max(1, max_retries)
        self._sleep = sleep

    @classmethod
    def from_store(cls, store, **kwargs) -> "BookingEngine":
        """Build an engine from an adapter that implements every port."""
        return cls(store, store, store, store, **kwargs)

    # =========================================================================
    # Reads
    # =========================================================================

    def _read(self, operation: str, func: Callable[..., T], *args) -> T:
        """Run an idempotent read with exponential backoff on StoreError."""
        last_exception = None

        for attempt in range(self._max_retries):
            try:
                return func(*args)
            except StoreError as e:
                last_exception = e

                if attempt == self._max_retries - 1:
                    raise
                delay = min(STORE_RETRY_BASE_DELAY * (2**attempt), STORE_RETRY_MAX_DELAY)
                logger.warning(
                    f"{operation} failed (attempt {attempt + 1}/{self._max_retries}): {e}. "
                    f"Retrying in {delay:.1f}s..."
                )
                self._sleep(delay)

        raise last_exception

    def _active_resource(self, tenant_id: str, resource_id: str) -> Resource:
        """Look up a resource; an inactive professional is not bookable."""
        resource = self._read(
            "get_resource", self._resources.get_resource, tenant_id, resource_id
        )
        if not resource.active:
            raise NotFoundError(
                f"Resource is inactive: {resource_id}", tenant_id=tenant_id, id=resource_id
            )
        return resource

    def get_available_slots(
        self,
        tenant_id: str,
        resource_id: str,
        service_id: str,
        day: date | str,
    ) -> list[str]:
        """Bookable start times for a resource, service and date.

        Args:
            tenant_id: Salon identifier
            resource_id: Professional identifier
            service_id: Service identifier (its duration drives overlap checks)
            day: Calendar date, "YYYY-MM-DD"

        Returns:
            Chronological "HH:MM" strings; empty when the resource is closed

        Raises:
            NotFoundError: Unknown tenant, resource or service, or an inactive resource
            BookingValidationError: Malformed date
            StoreError: Persistence failure after retries
        """
        day = parse_calendar_date(day)

        resource = self._active_resource(tenant_id, resource_id)
        quote = self._read(
            "get_duration", self._services.get_duration, tenant_id, service_id
        )

        window = resolve_window(resource, day, self._fallback_hours)
        if window is None:
            logger.debug(f"{resource_id} closed on {day.isoformat()}")
            return []

        candidates = iter_slots(
            window,
            self.granularity_minutes,
            service_duration=quote.duration,
            trim_overrunning=self.trim_overrunning,
        )
        existing = self._read(
            "find_blocking", self._appointments.find_blocking, tenant_id, resource_id, day
        )
        available = filter_conflicts(candidates, existing, quote.duration)

        logger.debug(
            f"{resource_id} on {day.isoformat()}: {len(available)} slots "
            f"({len(existing)} blocking appointments)"
        )
        return [format_clock(slot) for slot in available]

    def get_appointment(self, tenant_id: str, appointment_id: str) -> Appointment:
        return self._read(
            "get_appointment", self._appointments.get_appointment, tenant_id, appointment_id
        )

    def list_appointments(
        self,
        tenant_id: str,
        date_from: date | str | None = None,
        date_to: date | str | None = None,
        resource_id: str | None = None,
        status: AppointmentStatus | str | None = None,
    ) -> list[Appointment]:
        """Agenda listing ordered by date and start time."""
        if date_from is not None:
            date_from = parse_calendar_date(date_from)
        if date_to is not None:
            date_to = parse_calendar_date(date_to)
        if status is not None:
            status = _parse_status(status)
        return self._read(
            "list_appointments",
            self._appointments.list_appointments,
            tenant_id,
            date_from,
            date_to,
            resource_id,
            status,
        )

    # =========================================================================
    # Writes (never retried)
    # =========================================================================

    def _prepare(
        self,
        tenant_id: str,
        resource_id: str,
        service_id: str,
        day: date | str,
        start_time: str,
    ):
        """Validate inputs and compute the interval and price of a booking."""
        day = parse_calendar_date(day)
        start = parse_clock(start_time)

        self._active_resource(tenant_id, resource_id)
        quote = self._read(
            "get_duration", self._services.get_duration, tenant_id, service_id
        )
        end = add_minutes(start, quote.duration)

        existing = self._read(
            "find_blocking", self._appointments.find_blocking, tenant_id, resource_id, day
        )
        clashes = find_overlapping(start, quote.duration, existing)
        if clashes:
            logger.warning(
                f"Slot {format_clock(start)}-{format_clock(end)} on {day.isoformat()} "
                f"for {resource_id} is already taken"
            )
            raise ConflictError(
                f"{format_clock(start)}-{format_clock(end)} on {day.isoformat()} "
                "overlaps an existing appointment",
                resource_id=resource_id,
                date=day.isoformat(),
                start_time=format_clock(start),
            )
        return day, start, end, quote

    def create_booking(
        self,
        tenant_id: str,
        resource_id: str,
        service_id: str,
        day: date | str,
        start_time: str,
        client_name: str,
        client_email: str,
        client_phone: str | None = None,
    ) -> Appointment:
        """Book a slot on behalf of a (possibly new) client.

        Steps:
            1. Validate input; look up the resource and the service
               duration/price (NotFoundError if absent)
            2. end_time = start_time + duration (same day only)
            3. Reject early if the interval overlaps a blocking appointment
            4. Find or create the client by (tenant, email), refreshing
               name and phone
            5. Insert a pending appointment; the store's constraint
               raises ConflictError if a concurrent booking won the race

        The client is resolved after the lookups and the overlap check, not
        before them, so a rejected booking never creates or edits a client.

        Returns:
            The persisted appointment

        Raises:
            NotFoundError, BookingValidationError, ConflictError, StoreError
        """
        name = _require_text(client_name, "client_name")
        if len(name) > MAX_CLIENT_NAME_LENGTH:
            raise BookingValidationError(
                f"client_name exceeds {MAX_CLIENT_NAME_LENGTH} characters", field="client_name"
            )
        email = normalize_email(client_email)
        phone = client_phone.strip() if client_phone and client_phone.strip() else None

        day, start, end, quote = self._prepare(
            tenant_id, resource_id, service_id, day, start_time
        )

        client = self._clients.find_or_create(tenant_id, email, name, phone)

        appointment = self._appointments.insert(
            NewAppointment(
                tenant_id=tenant_id,
                resource_id=resource_id,
                service_id=service_id,
                client_id=client.id,
                date=day,
                start_time=start,
                end_time=end,
                status=AppointmentStatus.PENDING,
                price=quote.price,
            )
        )
        logger.info(
            f"Booked {appointment.id}: {resource_id} {day.isoformat()} "
            f"{format_clock(start)}-{format_clock(end)} for {client.id}"
        )
        return appointment

    def schedule_appointment(
        self,
        tenant_id: str,
        resource_id: str,
        service_id: str,
        client_id: str,
        day: date | str,
        start_time: str,
        status: AppointmentStatus | str = AppointmentStatus.PENDING,
        price: float | None = None,
        notes: str | None = None,
    ) -> Appointment:
        """Administrative create path for an existing client.

        Uses the same end-time and overlap rules as create_booking. The
        initial status must be blocking (pending or confirmed); price
        defaults to the service price.
        """
        client_id = _require_text(client_id, "client_id")
        status = _parse_status(status)
        if not status.is_blocking:
            raise BookingValidationError(
                f"New appointments must be pending or confirmed, got '{status.value}'",
                field="status",
            )
        if price is not None and price < 0:
            raise BookingValidationError("Price must not be negative", field="price")

        day, start, end, quote = self._prepare(
            tenant_id, resource_id, service_id, day, start_time
        )

        appointment = self._appointments.insert(
            NewAppointment(
                tenant_id=tenant_id,
                resource_id=resource_id,
                service_id=service_id,
                client_id=client_id,
                date=day,
                start_time=start,
                end_time=end,
                status=status,
                price=quote.price if price is None else price,
                notes=notes,
            )
        )
        logger.info(
            f"Scheduled {appointment.id} ({status.value}): {resource_id} "
            f"{day.isoformat()} {format_clock(start)}-{format_clock(end)}"
        )
        return appointment

    def transition_status(
        self,
        tenant_id: str,
        appointment_id: str,
        status: AppointmentStatus | str,
    ) -> Appointment:
        """Move an appointment along pending -> confirmed -> completed,
        or to cancelled from pending/confirmed.

        Raises:
            NotFoundError: Unknown appointment
            BookingValidationError: Transition not allowed
            ConflictError: The status changed since it was read
        """
        target = _parse_status(status)
        current = self.get_appointment(tenant_id, appointment_id)

        if target not in ALLOWED_TRANSITIONS[current.status]:
            raise BookingValidationError(
                f"Cannot move appointment from '{current.status.value}' to '{target.value}'",
                appointment_id=appointment_id,
            )

        # Compare-and-set: a concurrent transition surfaces as ConflictError
        updated = self._appointments.update_status(
            tenant_id, appointment_id, target, expected=current.status
        )
        logger.info(f"{appointment_id}: {current.status.value} -> {target.value}")
        return updated


def _parse_status(value: AppointmentStatus | str) -> AppointmentStatus:
    try:
        return AppointmentStatus(value)
    except ValueError as e:
        raise BookingValidationError(f"Unknown status '{value}'", field="status") from e
