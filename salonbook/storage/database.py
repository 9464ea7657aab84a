"""SQLite Storage - Persistence adapter for the booking engine.

Implements every engine port (resources, services, appointments, clients)
on top of SQLite. The no-double-booking guarantee lives here: triggers
abort any insert or update that would make two pending/confirmed
appointments of one resource overlap on the same date, inside the same
write transaction as the change itself.

Supports optional connection pooling for high-throughput scenarios.
"""

import logging
import sqlite3
import threading
import uuid
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from queue import Empty, Queue
from typing import Iterator

import orjson

from salonbook.config import DATABASE_PATH, DB_TIMEOUT
from salonbook.errors import (
    BookingValidationError,
    ConflictError,
    NotFoundError,
    StoreError,
)
from salonbook.models import (
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
from salonbook.utils.clock import format_clock

logger = logging.getLogger(__name__)

MEMORY = ":memory:"

# Message raised by the overlap triggers; used to tell conflicts apart
# from other integrity failures.
OVERLAP_ERROR = "appointment_overlap"

_BLOCKING_SQL = "('pending', 'confirmed')"

SCHEMA = f"""
    -- Tenants
    CREATE TABLE IF NOT EXISTS tenants (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        created_at TEXT NOT NULL
    );

    -- Resources (professionals)
    CREATE TABLE IF NOT EXISTS resources (
        id TEXT PRIMARY KEY,
        tenant_id TEXT NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
        name TEXT NOT NULL,
        availability TEXT NOT NULL DEFAULT '{{}}',
        active INTEGER NOT NULL DEFAULT 1
    );

    -- Services
    CREATE TABLE IF NOT EXISTS services (
        id TEXT PRIMARY KEY,
        tenant_id TEXT NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
        name TEXT NOT NULL,
        duration INTEGER NOT NULL CHECK(duration > 0),
        price REAL NOT NULL DEFAULT 0 CHECK(price >= 0)
    );

    -- Clients
    CREATE TABLE IF NOT EXISTS clients (
        id TEXT PRIMARY KEY,
        tenant_id TEXT NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
        email TEXT NOT NULL,
        name TEXT NOT NULL,
        phone TEXT,
        total_spent REAL NOT NULL DEFAULT 0,
        visit_count INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        UNIQUE(tenant_id, email)
    );

    -- Appointments (times are zero-padded HH:MM, so text order is time order)
    CREATE TABLE IF NOT EXISTS appointments (
        id TEXT PRIMARY KEY,
        tenant_id TEXT NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
        resource_id TEXT NOT NULL REFERENCES resources(id),
        service_id TEXT NOT NULL REFERENCES services(id),
        client_id TEXT NOT NULL REFERENCES clients(id),
        date TEXT NOT NULL,
        start_time TEXT NOT NULL,
        end_time TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'pending'
            CHECK(status IN ('pending', 'confirmed', 'completed', 'cancelled')),
        price REAL NOT NULL CHECK(price >= 0),
        notes TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        CHECK(start_time < end_time)
    );
    CREATE INDEX IF NOT EXISTS idx_appointments_resource_date
        ON appointments(tenant_id, resource_id, date);

    -- No two blocking appointments of a resource may overlap on a date
    CREATE TRIGGER IF NOT EXISTS appointments_no_overlap_insert
    BEFORE INSERT ON appointments
    WHEN NEW.status IN {_BLOCKING_SQL}
    BEGIN
        SELECT RAISE(ABORT, '{OVERLAP_ERROR}')
        WHERE EXISTS (
            SELECT 1 FROM appointments
            WHERE tenant_id = NEW.tenant_id
              AND resource_id = NEW.resource_id
              AND date = NEW.date
              AND status IN {_BLOCKING_SQL}
              AND start_time < NEW.end_time
              AND end_time > NEW.start_time
        );
    END;

    CREATE TRIGGER IF NOT EXISTS appointments_no_overlap_update
    BEFORE UPDATE OF status, date, start_time, end_time, resource_id ON appointments
    WHEN NEW.status IN {_BLOCKING_SQL}
    BEGIN
        SELECT RAISE(ABORT, '{OVERLAP_ERROR}')
        WHERE EXISTS (
            SELECT 1 FROM appointments
            WHERE id != NEW.id
              AND tenant_id = NEW.tenant_id
              AND resource_id = NEW.resource_id
              AND date = NEW.date
              AND status IN {_BLOCKING_SQL}
              AND start_time < NEW.end_time
              AND end_time > NEW.start_time
        );
    END;
"""


def generate_id(prefix: str) -> str:
    """Generate a prefixed UUID."""
    return f"{prefix}_{uuid.uuid4().hex[:8]}"


def _connect(db_path: Path | str) -> sqlite3.Connection:
    conn = sqlite3.connect(db_path, timeout=DB_TIMEOUT, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


class ConnectionPool:
    """Thread-safe SQLite connection pool.

    Maintains a pool of reusable connections for high-throughput scenarios.
    Connections are returned to the pool after use instead of being closed.
    """

    def __init__(self, db_path: Path, pool_size: int = 5):
        """Initialize connection pool.

        Args:
            db_path: Path to SQLite database
            pool_size: Maximum number of connections to maintain
        """
        self._db_path = db_path
        self._pool_size = pool_size
        self._pool: Queue[sqlite3.Connection] = Queue(maxsize=pool_size)
        self._lock = threading.Lock()
        self._total_connections = 0

    @contextmanager
    def get_connection(self) -> Iterator[sqlite3.Connection]:
        """Get a connection from the pool.

        Creates a new connection if pool is empty and under limit,
        otherwise blocks until one is returned.

        Yields:
            Database connection (returned to pool on exit)
        """
        conn = None
        try:
            try:
                conn = self._pool.get_nowait()
            except Empty:
                with self._lock:
                    if self._total_connections < self._pool_size:
                        conn = _connect(self._db_path)
                        self._total_connections += 1

                if conn is None:
                    conn = self._pool.get()  # Blocking wait

            yield conn

        finally:
            if conn is not None:
                # Never hand out a connection with an open transaction
                if conn.in_transaction:
                    conn.rollback()
                self._pool.put_nowait(conn)

    def close_all(self) -> None:
        """Close all connections in the pool."""
        while True:
            try:
                conn = self._pool.get_nowait()
                conn.close()
            except Empty:
                break
        with self._lock:
            self._total_connections = 0


class SalonDB(ResourceDirectory, ServiceCatalog, AppointmentStore, ClientStore):
    """SQLite adapter implementing all booking-engine ports.

    Supports three connection modes:
    - Default: Creates new connection per operation (simple, safe)
    - Pooled: Reuses connections from pool (high-throughput)
    - ":memory:": One shared connection, operations serialized by a lock

    Example:
        db = SalonDB("salon.db")
        tenant = db.create_tenant("Studio Bela")
        engine = BookingEngine.from_store(db)
    """

    def __init__(
        self,
        db_path: str | Path | None = None,
        use_pool: bool = False,
        pool_size: int = 5,
    ):
        """Initialize database connection.

        Args:
            db_path: Path to SQLite database file, or ":memory:"
                (default: outputs/salonbook.db)
            use_pool: Enable connection pooling for high-throughput scenarios
            pool_size: Maximum connections in pool (only used if use_pool=True)
        """
        if db_path is None:
            db_path = DATABASE_PATH

        self._pool: ConnectionPool | None = None
        self._shared: sqlite3.Connection | None = None
        self._shared_lock = threading.Lock()

        if str(db_path) == MEMORY:
            self.db_path = MEMORY
            self._shared = _connect(MEMORY)
        else:
            self.db_path = Path(db_path)
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            if use_pool:
                self._pool = ConnectionPool(self.db_path, pool_size)

        self.init_schema()

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Get a database connection, translating sqlite errors.

        Yields:
            Database connection

        Raises:
            ConflictError: An overlap trigger aborted the statement
            NotFoundError: A foreign key points at a missing record
            BookingValidationError: Another constraint rejected the data
            StoreError: Any other sqlite failure
        """
        try:
            if self._shared is not None:
                with self._shared_lock:
                    try:
                        yield self._shared
                    finally:
                        if self._shared.in_transaction:
                            self._shared.rollback()
            elif self._pool is not None:
                with self._pool.get_connection() as conn:
                    yield conn
            else:
                conn = _connect(self.db_path)
                try:
                    yield conn
                finally:
                    conn.close()
        except sqlite3.IntegrityError as e:
            message = str(e)
            if OVERLAP_ERROR in message:
                raise ConflictError(
                    "The requested time overlaps an existing appointment"
                ) from e
            if "FOREIGN KEY" in message:
                raise NotFoundError(f"Referenced record does not exist ({message})") from e
            raise BookingValidationError(f"Rejected by storage: {message}") from e
        except sqlite3.Error as e:
            raise StoreError(f"Storage failure: {e}") from e

    def init_schema(self) -> None:
        """Create tables and triggers if they don't exist."""
        with self._get_connection() as conn:
            conn.executescript(SCHEMA)
            conn.commit()
        logger.debug(f"Schema ready: {self.db_path}")

    def close(self) -> None:
        """Close database connections."""
        if self._pool is not None:
            self._pool.close_all()
        if self._shared is not None:
            self._shared.close()

    # =========================================================================
    # Tenant operations
    # =========================================================================

    def create_tenant(self, name: str, tenant_id: str | None = None) -> Tenant:
        """Create a new tenant."""
        tenant = Tenant(id=tenant_id or generate_id("tnt"), name=name)

        with self._get_connection() as conn:
            conn.execute(
                "INSERT INTO tenants (id, name, created_at) VALUES (?, ?, ?)",
                (tenant.id, tenant.name, tenant.created_at.isoformat()),
            )
            conn.commit()
        return tenant

    def get_tenant(self, tenant_id: str) -> Tenant:
        """Get tenant by ID.

        Raises:
            NotFoundError: If the tenant does not exist
        """
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM tenants WHERE id = ?", (tenant_id,)
            ).fetchone()

        if row is None:
            raise NotFoundError(f"Tenant not found: {tenant_id}", tenant_id=tenant_id)

        return Tenant(
            id=row["id"],
            name=row["name"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def _missing(self, conn: sqlite3.Connection, tenant_id: str, kind: str, record_id: str):
        """Build the NotFoundError for a record, naming the tenant if that is what's missing."""
        tenant = conn.execute("SELECT 1 FROM tenants WHERE id = ?", (tenant_id,)).fetchone()
        if tenant is None:
            return NotFoundError(f"Tenant not found: {tenant_id}", tenant_id=tenant_id)
        return NotFoundError(f"{kind} not found: {record_id}", tenant_id=tenant_id, id=record_id)

    # =========================================================================
    # Resource operations
    # =========================================================================

    def create_resource(
        self,
        tenant_id: str,
        name: str,
        availability: dict[Weekday | str, DayHours | dict] | None = None,
        resource_id: str | None = None,
    ) -> Resource:
        """Create a professional with an optional weekly availability map."""
        resource = Resource(
            id=resource_id or generate_id("res"),
            tenant_id=tenant_id,
            name=name,
            availability=availability or {},
        )

        with self._get_connection() as conn:
            conn.execute(
                """INSERT INTO resources (id, tenant_id, name, availability, active)
                   VALUES (?, ?, ?, ?, ?)""",
                (
                    resource.id,
                    tenant_id,
                    name,
                    self._dump_availability(resource),
                    int(resource.active),
                ),
            )
            conn.commit()
        return resource

    def update_availability(
        self,
        tenant_id: str,
        resource_id: str,
        availability: dict[Weekday | str, DayHours | dict] | None,
    ) -> Resource:
        """Replace a resource's weekly availability map."""
        current = self.get_resource(tenant_id, resource_id)
        resource = Resource.model_validate(
            {**current.model_dump(), "availability": availability or {}}
        )

        with self._get_connection() as conn:
            conn.execute(
                "UPDATE resources SET availability = ? WHERE id = ? AND tenant_id = ?",
                (self._dump_availability(resource), resource_id, tenant_id),
            )
            conn.commit()
        return resource

    def set_resource_active(self, tenant_id: str, resource_id: str, active: bool) -> Resource:
        """Activate or deactivate a professional; inactive ones are not bookable."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                "UPDATE resources SET active = ? WHERE id = ? AND tenant_id = ?",
                (int(active), resource_id, tenant_id),
            )
            conn.commit()
            if cursor.rowcount == 0:
                raise self._missing(conn, tenant_id, "Resource", resource_id)

        return self.get_resource(tenant_id, resource_id)

    def get_resource(self, tenant_id: str, resource_id: str) -> Resource:
        """Get a resource scoped to its tenant."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM resources WHERE id = ? AND tenant_id = ?",
                (resource_id, tenant_id),
            ).fetchone()
            if row is None:
                raise self._missing(conn, tenant_id, "Resource", resource_id)

        return Resource(
            id=row["id"],
            tenant_id=row["tenant_id"],
            name=row["name"],
            availability=orjson.loads(row["availability"]),
            active=bool(row["active"]),
        )

    @staticmethod
    def _dump_availability(resource: Resource) -> str:
        return orjson.dumps(resource.model_dump(mode="json")["availability"]).decode()

    # =========================================================================
    # Service operations
    # =========================================================================

    def create_service(
        self,
        tenant_id: str,
        name: str,
        duration: int,
        price: float = 0.0,
        service_id: str | None = None,
    ) -> Service:
        """Create a bookable service."""
        service = Service(
            id=service_id or generate_id("svc"),
            tenant_id=tenant_id,
            name=name,
            duration=duration,
            price=price,
        )

        with self._get_connection() as conn:
            conn.execute(
                """INSERT INTO services (id, tenant_id, name, duration, price)
                   VALUES (?, ?, ?, ?, ?)""",
                (service.id, tenant_id, name, service.duration, service.price),
            )
            conn.commit()
        return service

    def get_service(self, tenant_id: str, service_id: str) -> Service:
        """Get a service scoped to its tenant."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM services WHERE id = ? AND tenant_id = ?",
                (service_id, tenant_id),
            ).fetchone()
            if row is None:
                raise self._missing(conn, tenant_id, "Service", service_id)

        return Service(
            id=row["id"],
            tenant_id=row["tenant_id"],
            name=row["name"],
            duration=row["duration"],
            price=row["price"],
        )

    def get_duration(self, tenant_id: str, service_id: str) -> ServiceQuote:
        service = self.get_service(tenant_id, service_id)
        return ServiceQuote(duration=service.duration, price=service.price)

    # =========================================================================
    # Client operations
    # =========================================================================

    def find_or_create(
        self, tenant_id: str, email: str, name: str, phone: str | None = None
    ) -> Client:
        """Upsert a client by (tenant_id, email).

        Name and phone are last-write-wins; total_spent and visit_count
        are owned by the completion workflow and never touched here.
        """
        now = datetime.now().isoformat()

        with self._get_connection() as conn:
            conn.execute(
                """INSERT INTO clients
                   (id, tenant_id, email, name, phone, total_spent, visit_count,
                    created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, 0, 0, ?, ?)
                   ON CONFLICT(tenant_id, email) DO UPDATE SET
                       name = excluded.name,
                       phone = excluded.phone,
                       updated_at = excluded.updated_at""",
                (generate_id("cli"), tenant_id, email, name, phone, now, now),
            )
            conn.commit()
            row = conn.execute(
                "SELECT * FROM clients WHERE tenant_id = ? AND email = ?",
                (tenant_id, email),
            ).fetchone()

        return self._row_to_client(row)

    def get_client(self, tenant_id: str, client_id: str) -> Client:
        """Get a client scoped to its tenant."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM clients WHERE id = ? AND tenant_id = ?",
                (client_id, tenant_id),
            ).fetchone()
            if row is None:
                raise self._missing(conn, tenant_id, "Client", client_id)

        return self._row_to_client(row)

    @staticmethod
    def _row_to_client(row: sqlite3.Row) -> Client:
        return Client(
            id=row["id"],
            tenant_id=row["tenant_id"],
            email=row["email"],
            name=row["name"],
            phone=row["phone"],
            total_spent=row["total_spent"],
            visit_count=row["visit_count"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    # =========================================================================
    # Appointment operations
    # =========================================================================

    def find_blocking(
        self, tenant_id: str, resource_id: str, day: date
    ) -> list[BlockingInterval]:
        """Intervals of pending/confirmed appointments, ordered by start."""
        with self._get_connection() as conn:
            rows = conn.execute(
                f"""SELECT start_time, end_time FROM appointments
                    WHERE tenant_id = ? AND resource_id = ? AND date = ?
                      AND status IN {_BLOCKING_SQL}
                    ORDER BY start_time""",
                (tenant_id, resource_id, day.isoformat()),
            ).fetchall()

        return [BlockingInterval(start=row["start_time"], end=row["end_time"]) for row in rows]

    def insert(self, appointment: NewAppointment) -> Appointment:
        """Insert an appointment; the overlap trigger runs in the same transaction."""
        now = datetime.now()
        record = Appointment(
            id=generate_id("apt"),
            created_at=now,
            updated_at=now,
            **appointment.model_dump(),
        )

        with self._get_connection() as conn:
            conn.execute(
                """INSERT INTO appointments
                   (id, tenant_id, resource_id, service_id, client_id, date,
                    start_time, end_time, status, price, notes, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    record.id,
                    record.tenant_id,
                    record.resource_id,
                    record.service_id,
                    record.client_id,
                    record.date.isoformat(),
                    format_clock(record.start_time),
                    format_clock(record.end_time),
                    record.status.value,
                    record.price,
                    record.notes,
                    now.isoformat(),
                    now.isoformat(),
                ),
            )
            conn.commit()
        return record

    def get_appointment(self, tenant_id: str, appointment_id: str) -> Appointment:
        """Get an appointment scoped to its tenant."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM appointments WHERE id = ? AND tenant_id = ?",
                (appointment_id, tenant_id),
            ).fetchone()
            if row is None:
                raise self._missing(conn, tenant_id, "Appointment", appointment_id)

        return self._row_to_appointment(row)

    def list_appointments(
        self,
        tenant_id: str,
        date_from: date | None = None,
        date_to: date | None = None,
        resource_id: str | None = None,
        status: AppointmentStatus | None = None,
    ) -> list[Appointment]:
        """List appointments with optional filters."""
        query = "SELECT * FROM appointments WHERE tenant_id = ?"
        params: list = [tenant_id]

        if date_from:
            query += " AND date >= ?"
            params.append(date_from.isoformat())
        if date_to:
            query += " AND date <= ?"
            params.append(date_to.isoformat())
        if resource_id:
            query += " AND resource_id = ?"
            params.append(resource_id)
        if status:
            query += " AND status = ?"
            params.append(AppointmentStatus(status).value)

        query += " ORDER BY date, start_time"
        with self._get_connection() as conn:
            rows = conn.execute(query, params).fetchall()

        return [self._row_to_appointment(row) for row in rows]

    def update_status(
        self,
        tenant_id: str,
        appointment_id: str,
        status: AppointmentStatus,
        expected: AppointmentStatus | None = None,
    ) -> Appointment:
        """Set an appointment's status.

        With expected, the UPDATE also matches on the current status, so a
        concurrent transition that got there first leaves no row to update.
        """
        query = """UPDATE appointments SET status = ?, updated_at = ?
                   WHERE id = ? AND tenant_id = ?"""
        params = [
            AppointmentStatus(status).value,
            datetime.now().isoformat(),
            appointment_id,
            tenant_id,
        ]
        if expected is not None:
            query += " AND status = ?"
            params.append(AppointmentStatus(expected).value)

        with self._get_connection() as conn:
            cursor = conn.execute(query, params)
            conn.commit()
            if cursor.rowcount == 0:
                row = conn.execute(
                    "SELECT status FROM appointments WHERE id = ? AND tenant_id = ?",
                    (appointment_id, tenant_id),
                ).fetchone()
                if row is None:
                    raise self._missing(conn, tenant_id, "Appointment", appointment_id)
                raise ConflictError(
                    f"Appointment {appointment_id} is now '{row['status']}', "
                    f"expected '{AppointmentStatus(expected).value}'",
                    appointment_id=appointment_id,
                    status=row["status"],
                )

        return self.get_appointment(tenant_id, appointment_id)

    @staticmethod
    def _row_to_appointment(row: sqlite3.Row) -> Appointment:
        return Appointment(
            id=row["id"],
            tenant_id=row["tenant_id"],
            resource_id=row["resource_id"],
            service_id=row["service_id"],
            client_id=row["client_id"],
            date=row["date"],
            start_time=row["start_time"],
            end_time=row["end_time"],
            status=row["status"],
            price=row["price"],
            notes=row["notes"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
