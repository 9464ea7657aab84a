"""Storage ports consumed by the booking engine.

The engine only talks to these interfaces, so it runs unchanged against
SQLite, the in-memory store, or any other adapter. Adapters signal missing
records with NotFoundError, overlap violations with ConflictError and
persistence failures with StoreError.
"""

from abc import ABC, abstractmethod
from datetime import date

from salonbook.models import (
    Appointment,
    AppointmentStatus,
    BlockingInterval,
    Client,
    NewAppointment,
    Resource,
    ServiceQuote,
)


class ResourceDirectory(ABC):
    """Lookup of professionals and their weekly availability."""

    @abstractmethod
    def get_resource(self, tenant_id: str, resource_id: str) -> Resource:
        """Return the resource, scoped to the tenant.

        Raises:
            NotFoundError: If the tenant or the resource does not exist
        """


class ServiceCatalog(ABC):
    """Lookup of service duration and price."""

    @abstractmethod
    def get_duration(self, tenant_id: str, service_id: str) -> ServiceQuote:
        """Return duration (minutes) and price of a service.

        Raises:
            NotFoundError: If the service does not exist for the tenant
        """


class AppointmentStore(ABC):
    """Persistence of appointments."""

    @abstractmethod
    def find_blocking(
        self, tenant_id: str, resource_id: str, day: date
    ) -> list[BlockingInterval]:
        """Intervals of pending/confirmed appointments for a resource and date."""

    @abstractmethod
    def insert(self, appointment: NewAppointment) -> Appointment:
        """Persist an appointment.

        Must reject, atomically with the write, a blocking appointment that
        overlaps another blocking appointment of the same resource and date.

        Raises:
            ConflictError: On overlap
            StoreError: On persistence failure
        """

    @abstractmethod
    def get_appointment(self, tenant_id: str, appointment_id: str) -> Appointment:
        """Return one appointment.

        Raises:
            NotFoundError: If it does not exist for the tenant
        """

    @abstractmethod
    def list_appointments(
        self,
        tenant_id: str,
        date_from: date | None = None,
        date_to: date | None = None,
        resource_id: str | None = None,
        status: AppointmentStatus | None = None,
    ) -> list[Appointment]:
        """List appointments ordered by date, then start time."""

    @abstractmethod
    def update_status(
        self,
        tenant_id: str,
        appointment_id: str,
        status: AppointmentStatus,
        expected: AppointmentStatus | None = None,
    ) -> Appointment:
        """Set the status of an appointment and return the updated record.

        When expected is given the write only happens if the stored status
        still equals it, checked atomically with the write.

        Raises:
            NotFoundError: If it does not exist for the tenant
            ConflictError: If the stored status is no longer expected, or
                the new blocking status would overlap another appointment
        """


class ClientStore(ABC):
    """Persistence of clients."""

    @abstractmethod
    def find_or_create(
        self, tenant_id: str, email: str, name: str, phone: str | None = None
    ) -> Client:
        """Return the client keyed by (tenant_id, email), creating it if needed.

        An existing client gets name and phone overwritten; cumulative
        fields (total_spent, visit_count) are left untouched.
        """
