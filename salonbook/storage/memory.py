"""In-memory storage adapter.

Implements the same ports as SalonDB with plain dictionaries. A single
lock makes the overlap check and the write one atomic step, mirroring the
SQLite triggers. Useful for tests and for embedding the engine without a
database file.
"""

import threading
from datetime import date, datetime

from salonbook.errors import ConflictError, NotFoundError
from salonbook.models import (
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
    Weekday,
)
from salonbook.ports import AppointmentStore, ClientStore, ResourceDirectory, ServiceCatalog
from salonbook.scheduling.conflicts import find_overlapping
from salonbook.storage.database import generate_id
from salonbook.utils.clock import to_minutes


class InMemoryStore(ResourceDirectory, ServiceCatalog, AppointmentStore, ClientStore):
    """Dictionary-backed adapter implementing all booking-engine ports."""

    def __init__(self):
        self._lock = threading.RLock()
        self.tenants: dict[str, Tenant] = {}
        self.resources: dict[str, Resource] = {}
        self.services: dict[str, Service] = {}
        self.clients: dict[str, Client] = {}
        self.appointments: dict[str, Appointment] = {}

    def _require_tenant(self, tenant_id: str) -> None:
        if tenant_id not in self.tenants:
            raise NotFoundError(f"Tenant not found: {tenant_id}", tenant_id=tenant_id)

    # =========================================================================
    # Admin records
    # =========================================================================

    def create_tenant(self, name: str, tenant_id: str | None = None) -> Tenant:
        tenant = Tenant(id=tenant_id or generate_id("tnt"), name=name)
        with self._lock:
            self.tenants[tenant.id] = tenant
        return tenant

    def create_resource(
        self,
        tenant_id: str,
        name: str,
        availability: dict[Weekday | str, DayHours | dict] | None = None,
        resource_id: str | None = None,
    ) -> Resource:
        with self._lock:
            self._require_tenant(tenant_id)
            resource = Resource(
                id=resource_id or generate_id("res"),
                tenant_id=tenant_id,
                name=name,
                availability=availability or {},
            )
            self.resources[resource.id] = resource
        return resource

    def set_resource_active(self, tenant_id: str, resource_id: str, active: bool) -> Resource:
        with self._lock:
            resource = self.get_resource(tenant_id, resource_id).model_copy(
                update={"active": active}
            )
            self.resources[resource_id] = resource
        return resource

    def create_service(
        self,
        tenant_id: str,
        name: str,
        duration: int,
        price: float = 0.0,
        service_id: str | None = None,
    ) -> Service:
        with self._lock:
            self._require_tenant(tenant_id)
            service = Service(
                id=service_id or generate_id("svc"),
                tenant_id=tenant_id,
                name=name,
                duration=duration,
                price=price,
            )
            self.services[service.id] = service
        return service

    # =========================================================================
    # Ports
    # =========================================================================

    def get_resource(self, tenant_id: str, resource_id: str) -> Resource:
        self._require_tenant(tenant_id)
        resource = self.resources.get(resource_id)
        if resource is None or resource.tenant_id != tenant_id:
            raise NotFoundError(f"Resource not found: {resource_id}", id=resource_id)
        return resource

    def get_duration(self, tenant_id: str, service_id: str) -> ServiceQuote:
        self._require_tenant(tenant_id)
        service = self.services.get(service_id)
        if service is None or service.tenant_id != tenant_id:
            raise NotFoundError(f"Service not found: {service_id}", id=service_id)
        return ServiceQuote(duration=service.duration, price=service.price)

    def find_or_create(
        self, tenant_id: str, email: str, name: str, phone: str | None = None
    ) -> Client:
        with self._lock:
            self._require_tenant(tenant_id)
            for client in self.clients.values():
                if client.tenant_id == tenant_id and client.email == email:
                    updated = client.model_copy(
                        update={"name": name, "phone": phone, "updated_at": datetime.now()}
                    )
                    self.clients[client.id] = updated
                    return updated

            client = Client(
                id=generate_id("cli"), tenant_id=tenant_id, email=email, name=name, phone=phone
            )
            self.clients[client.id] = client
            return client

    def find_blocking(
        self, tenant_id: str, resource_id: str, day: date
    ) -> list[BlockingInterval]:
        with self._lock:
            blocking = [
                a.interval
                for a in self.appointments.values()
                if a.tenant_id == tenant_id
                and a.resource_id == resource_id
                and a.date == day
                and a.status in BLOCKING_STATUSES
            ]
        return sorted(blocking, key=lambda interval: interval.start)

    def insert(self, appointment: NewAppointment) -> Appointment:
        with self._lock:
            self._require_tenant(appointment.tenant_id)
            if appointment.client_id not in self.clients:
                raise NotFoundError(f"Client not found: {appointment.client_id}")
            if appointment.status in BLOCKING_STATUSES:
                self._check_overlap(appointment)

            record = Appointment(id=generate_id("apt"), **appointment.model_dump())
            self.appointments[record.id] = record
        return record

    def _check_overlap(self, appointment: NewAppointment, exclude_id: str | None = None) -> None:
        existing = [
            a.interval
            for a in self.appointments.values()
            if a.id != exclude_id
            and a.tenant_id == appointment.tenant_id
            and a.resource_id == appointment.resource_id
            and a.date == appointment.date
            and a.status in BLOCKING_STATUSES
        ]
        duration = to_minutes(appointment.end_time) - to_minutes(appointment.start_time)
        if find_overlapping(appointment.start_time, duration, existing):
            raise ConflictError("The requested time overlaps an existing appointment")

    def get_appointment(self, tenant_id: str, appointment_id: str) -> Appointment:
        return self._appointment(tenant_id, appointment_id)

    def _appointment(self, tenant_id: str, appointment_id: str) -> Appointment:
        self._require_tenant(tenant_id)
        appointment = self.appointments.get(appointment_id)
        if appointment is None or appointment.tenant_id != tenant_id:
            raise NotFoundError(f"Appointment not found: {appointment_id}", id=appointment_id)
        return appointment

    def list_appointments(
        self,
        tenant_id: str,
        date_from: date | None = None,
        date_to: date | None = None,
        resource_id: str | None = None,
        status: AppointmentStatus | None = None,
    ) -> list[Appointment]:
        with self._lock:
            selected = [
                a
                for a in self.appointments.values()
                if a.tenant_id == tenant_id
                and (date_from is None or a.date >= date_from)
                and (date_to is None or a.date <= date_to)
                and (resource_id is None or a.resource_id == resource_id)
                and (status is None or a.status == status)
            ]
        return sorted(selected, key=lambda a: (a.date, a.start_time))

    def update_status(
        self,
        tenant_id: str,
        appointment_id: str,
        status: AppointmentStatus,
        expected: AppointmentStatus | None = None,
    ) -> Appointment:
        with self._lock:
            current = self._appointment(tenant_id, appointment_id)
            if expected is not None and current.status != AppointmentStatus(expected):
                raise ConflictError(
                    f"Appointment {appointment_id} is now '{current.status.value}', "
                    f"expected '{AppointmentStatus(expected).value}'",
                    appointment_id=appointment_id,
                    status=current.status.value,
                )
            updated = current.model_copy(
                update={"status": AppointmentStatus(status), "updated_at": datetime.now()}
            )
            if updated.status in BLOCKING_STATUSES:
                self._check_overlap(updated, exclude_id=appointment_id)
            self.appointments[appointment_id] = updated
        return updated
