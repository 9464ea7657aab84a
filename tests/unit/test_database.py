"""Tests for salonbook.storage.database module."""

import sqlite3
from datetime import date

import pytest

from salonbook.errors import BookingValidationError, ConflictError, NotFoundError, StoreError
from salonbook.models import AppointmentStatus, NewAppointment, Weekday
from salonbook.scheduling import BookingEngine
from salonbook.storage import SalonDB
from tests.conftest import MONDAY, TENANT, book_directly, seed_store


@pytest.fixture
def memory_db():
    """Seeded single-connection in-memory database."""
    db = SalonDB(":memory:")
    seed_store(db)
    yield db
    db.close()


@pytest.fixture
def pooled_db(tmp_path):
    """Seeded file database using the connection pool."""
    db = SalonDB(tmp_path / "pooled.db", use_pool=True, pool_size=2)
    seed_store(db)
    yield db
    db.close()


class TestSchema:
    """Tests for schema creation."""

    def test_creates_database_file(self, tmp_path):
        """Opening a path should create the file and parent directories."""
        path = tmp_path / "nested" / "salon.db"

        db = SalonDB(path)
        db.close()

        assert path.exists()

    def test_init_schema_is_idempotent(self, seeded_db):
        """Running init_schema again keeps existing data."""
        seeded_db.init_schema()

        assert seeded_db.get_tenant(TENANT).name == "Studio Bela"

    def test_tables_and_triggers(self, temp_db):
        """Schema should create the five tables and both overlap triggers."""
        conn = sqlite3.connect(temp_db.db_path)
        names = {
            row[0]
            for row in conn.execute(
                "SELECT name FROM sqlite_master WHERE type IN ('table', 'trigger')"
            )
        }
        conn.close()

        assert {"tenants", "resources", "services", "clients", "appointments"} <= names
        assert {"appointments_no_overlap_insert", "appointments_no_overlap_update"} <= names


class TestTenantsResourcesServices:
    """Tests for admin record CRUD."""

    def test_generated_ids(self, temp_db):
        """IDs are generated with a type prefix when not supplied."""
        tenant = temp_db.create_tenant("Salon")
        resource = temp_db.create_resource(tenant.id, "Ana")
        service = temp_db.create_service(tenant.id, "Cut", duration=30)

        assert tenant.id.startswith("tnt_")
        assert resource.id.startswith("res_")
        assert service.id.startswith("svc_")

    def test_missing_tenant(self, temp_db):
        """get_tenant raises NotFoundError for unknown IDs."""
        with pytest.raises(NotFoundError):
            temp_db.get_tenant("nope")

    def test_availability_round_trip(self, seeded_db):
        """Weekly hours survive storage as JSON."""
        resource = seeded_db.get_resource(TENANT, "ana")

        assert list(resource.availability) == [Weekday.MONDAY]
        assert resource.availability[Weekday.MONDAY].start.hour == 9
        assert resource.availability[Weekday.MONDAY].end.hour == 18

    def test_resource_without_availability(self, seeded_db):
        """A resource created without hours has an empty map."""
        assert seeded_db.get_resource(TENANT, "bruno").availability == {}

    def test_update_availability(self, seeded_db):
        """Replacing the map is visible to later reads."""
        seeded_db.update_availability(
            TENANT, "bruno", {"tuesday": {"start": "12:00", "end": "20:00"}}
        )

        resource = seeded_db.get_resource(TENANT, "bruno")
        assert set(resource.availability) == {Weekday.TUESDAY}
        assert resource.availability[Weekday.TUESDAY].start.hour == 12

    def test_set_resource_active(self, seeded_db):
        """The active flag persists."""
        seeded_db.set_resource_active(TENANT, "ana", False)

        assert seeded_db.get_resource(TENANT, "ana").active is False

    def test_set_resource_active_unknown(self, seeded_db):
        """Toggling a missing resource is NotFoundError."""
        with pytest.raises(NotFoundError, match="Resource"):
            seeded_db.set_resource_active(TENANT, "nobody", False)

    def test_resource_scoped_to_tenant(self, seeded_db):
        """A resource is invisible from another tenant."""
        seeded_db.create_tenant("Other", tenant_id="other")

        with pytest.raises(NotFoundError, match="Resource"):
            seeded_db.get_resource("other", "ana")

    def test_missing_tenant_named_in_error(self, seeded_db):
        """Lookups under an unknown tenant report the tenant."""
        with pytest.raises(NotFoundError, match="Tenant"):
            seeded_db.get_resource("ghost", "ana")

    def test_resource_for_unknown_tenant(self, temp_db):
        """Foreign keys turn a dangling tenant into NotFoundError."""
        with pytest.raises(NotFoundError):
            temp_db.create_resource("ghost", "Ana")

    def test_duplicate_id_is_validation_error(self, seeded_db):
        """Primary key clashes are rejected."""
        with pytest.raises(BookingValidationError):
            seeded_db.create_tenant("Again", tenant_id=TENANT)

    def test_get_duration(self, seeded_db):
        """get_duration returns duration and price."""
        quote = seeded_db.get_duration(TENANT, "color")

        assert quote.duration == 45
        assert quote.price == 120.0

    def test_unknown_service(self, seeded_db):
        """Unknown services raise NotFoundError."""
        with pytest.raises(NotFoundError, match="Service"):
            seeded_db.get_duration(TENANT, "perm")


class TestClients:
    """Tests for client upsert."""

    def test_creates_client(self, seeded_db):
        """A new email creates a client with zeroed totals."""
        client = seeded_db.find_or_create(TENANT, "maria@example.com", "Maria", "555")

        assert client.id.startswith("cli_")
        assert client.total_spent == 0
        assert client.visit_count == 0
        assert client.phone == "555"

    def test_upsert_updates_contact_only(self, seeded_db):
        """Existing clients keep their id and totals; name and phone are overwritten."""
        first = seeded_db.find_or_create(TENANT, "maria@example.com", "Maria", "555")
        with seeded_db._get_connection() as conn:
            conn.execute(
                "UPDATE clients SET total_spent = 300, visit_count = 4 WHERE id = ?",
                (first.id,),
            )
            conn.commit()

        second = seeded_db.find_or_create(TENANT, "maria@example.com", "Maria Silva", None)

        assert second.id == first.id
        assert second.name == "Maria Silva"
        assert second.phone is None
        assert second.total_spent == 300
        assert second.visit_count == 4

    def test_same_email_different_tenants(self, seeded_db):
        """Email uniqueness is per tenant."""
        seeded_db.create_tenant("Other", tenant_id="other")

        a = seeded_db.find_or_create(TENANT, "maria@example.com", "Maria")
        b = seeded_db.find_or_create("other", "maria@example.com", "Maria")

        assert a.id != b.id

    def test_get_client(self, seeded_db):
        """Clients can be read back by id."""
        created = seeded_db.find_or_create(TENANT, "maria@example.com", "Maria")

        assert seeded_db.get_client(TENANT, created.id).email == "maria@example.com"


class TestAppointments:
    """Tests for appointment persistence and the overlap triggers."""

    def test_insert_and_get(self, seeded_db):
        """Inserted appointments read back with HH:MM times."""
        created = book_directly(seeded_db, "10:00", "10:45")

        fetched = seeded_db.get_appointment(TENANT, created.id)

        assert fetched.id == created.id
        assert fetched.model_dump(mode="json")["start_time"] == "10:00"
        assert fetched.model_dump(mode="json")["end_time"] == "10:45"
        assert fetched.status == AppointmentStatus.CONFIRMED

    def test_find_blocking_ordered_and_filtered(self, seeded_db):
        """Only pending/confirmed intervals for the resource and date, by start."""
        book_directly(seeded_db, "14:00", "14:45")
        book_directly(seeded_db, "09:00", "09:45", status=AppointmentStatus.PENDING)
        book_directly(seeded_db, "11:00", "11:45", status=AppointmentStatus.CANCELLED)
        book_directly(seeded_db, "10:00", "10:45", resource_id="bruno")

        intervals = seeded_db.find_blocking(TENANT, "ana", date(2026, 1, 5))

        assert [i.start.hour for i in intervals] == [9, 14]

    def test_trigger_rejects_overlap(self, seeded_db):
        """The insert trigger turns an overlap into ConflictError."""
        book_directly(seeded_db, "10:00", "10:45")

        with pytest.raises(ConflictError):
            book_directly(seeded_db, "10:30", "11:15")

    def test_trigger_allows_adjacent(self, seeded_db):
        """Touching intervals are not an overlap."""
        book_directly(seeded_db, "10:00", "10:45")

        assert book_directly(seeded_db, "10:45", "11:30").start_time.minute == 45

    def test_trigger_ignores_non_blocking(self, seeded_db):
        """Cancelled appointments neither block nor are blocked."""
        book_directly(seeded_db, "10:00", "10:45")

        cancelled = book_directly(seeded_db, "10:00", "10:45", status=AppointmentStatus.CANCELLED)

        assert cancelled.status == AppointmentStatus.CANCELLED

    def test_update_trigger_rejects_reactivation_into_overlap(self, seeded_db):
        """Moving a cancelled appointment back to a blocking status is checked too."""
        cancelled = book_directly(seeded_db, "10:00", "10:45", status=AppointmentStatus.CANCELLED)
        book_directly(seeded_db, "10:00", "10:45")

        with pytest.raises(ConflictError):
            seeded_db.update_status(TENANT, cancelled.id, AppointmentStatus.PENDING)

    def test_update_status(self, seeded_db):
        """update_status persists the new status."""
        created = book_directly(seeded_db, "10:00", "10:45", status=AppointmentStatus.PENDING)

        updated = seeded_db.update_status(TENANT, created.id, AppointmentStatus.CONFIRMED)

        assert updated.status == AppointmentStatus.CONFIRMED
        assert seeded_db.get_appointment(TENANT, created.id).status == AppointmentStatus.CONFIRMED

    def test_update_status_with_stale_expected(self, seeded_db):
        """The UPDATE only matches the expected status; a mismatch is a conflict."""
        created = book_directly(seeded_db, "10:00", "10:45", status=AppointmentStatus.PENDING)
        seeded_db.update_status(TENANT, created.id, AppointmentStatus.CANCELLED)

        with pytest.raises(ConflictError, match="cancelled"):
            seeded_db.update_status(
                TENANT,
                created.id,
                AppointmentStatus.CONFIRMED,
                expected=AppointmentStatus.PENDING,
            )

        stored = seeded_db.get_appointment(TENANT, created.id)
        assert stored.status == AppointmentStatus.CANCELLED

    def test_update_status_with_matching_expected(self, seeded_db):
        """A matching expected status lets the write through."""
        created = book_directly(seeded_db, "10:00", "10:45", status=AppointmentStatus.PENDING)

        updated = seeded_db.update_status(
            TENANT, created.id, AppointmentStatus.CONFIRMED, expected=AppointmentStatus.PENDING
        )

        assert updated.status == AppointmentStatus.CONFIRMED

    def test_update_status_unknown_with_expected(self, seeded_db):
        """A missing appointment is still NotFoundError when expected is given."""
        with pytest.raises(NotFoundError):
            seeded_db.update_status(
                TENANT,
                "apt_missing",
                AppointmentStatus.CONFIRMED,
                expected=AppointmentStatus.PENDING,
            )

    def test_update_status_unknown(self, seeded_db):
        """Updating a missing appointment raises NotFoundError."""
        with pytest.raises(NotFoundError):
            seeded_db.update_status(TENANT, "apt_missing", AppointmentStatus.CANCELLED)

    def test_insert_unknown_client(self, seeded_db):
        """A dangling client reference is NotFoundError."""
        with pytest.raises(NotFoundError):
            seeded_db.insert(
                NewAppointment(
                    tenant_id=TENANT,
                    resource_id="ana",
                    service_id="color",
                    client_id="cli_missing",
                    date=MONDAY,
                    start_time="10:00",
                    end_time="10:45",
                    price=120.0,
                )
            )

    def test_list_appointments(self, seeded_db):
        """Listing is ordered by date then start time and honours filters."""
        book_directly(seeded_db, "14:00", "14:45")
        book_directly(seeded_db, "10:00", "10:45")
        book_directly(seeded_db, "10:00", "10:45", day="2026-01-12")

        all_items = seeded_db.list_appointments(TENANT)
        monday = seeded_db.list_appointments(
            TENANT, date_from=date(2026, 1, 5), date_to=date(2026, 1, 5)
        )

        assert [(a.date.day, a.start_time.hour) for a in all_items] == [(5, 10), (5, 14), (12, 10)]
        assert len(monday) == 2

    def test_storage_failure_is_store_error(self, seeded_db):
        """Non-integrity sqlite errors surface as StoreError."""
        with pytest.raises(StoreError):
            with seeded_db._get_connection() as conn:
                conn.execute("SELECT * FROM no_such_table")


class TestConnectionModes:
    """Tests for the in-memory and pooled connection modes."""

    def test_memory_mode_books(self, memory_db):
        """:memory: keeps data across operations on one shared connection."""
        engine = BookingEngine.from_store(memory_db)

        appointment = engine.create_booking(
            TENANT, "ana", "color", MONDAY, "10:00",
            client_name="Maria", client_email="maria@example.com",
        )

        assert memory_db.get_appointment(TENANT, appointment.id).id == appointment.id
        assert "10:00" not in engine.get_available_slots(TENANT, "ana", "color", MONDAY)

    def test_memory_mode_trigger(self, memory_db):
        """Overlap triggers work on the shared connection."""
        book_directly(memory_db, "10:00", "10:45")

        with pytest.raises(ConflictError):
            book_directly(memory_db, "10:15", "10:30")

    def test_memory_mode_recovers_after_conflict(self, memory_db):
        """A rolled-back conflict leaves the connection usable."""
        book_directly(memory_db, "10:00", "10:45")
        with pytest.raises(ConflictError):
            book_directly(memory_db, "10:15", "10:30")

        assert book_directly(memory_db, "11:00", "11:45").start_time.hour == 11

    def test_pooled_mode(self, pooled_db):
        """Pooled connections read and write like per-operation ones."""
        book_directly(pooled_db, "10:00", "10:45")

        with pytest.raises(ConflictError):
            book_directly(pooled_db, "10:30", "11:00")

        assert len(pooled_db.list_appointments(TENANT)) == 1
