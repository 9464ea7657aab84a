"""Shared test fixtures for salonbook tests."""

from pathlib import Path
from typing import Generator

import pytest

from salonbook.models import AppointmentStatus, NewAppointment
from salonbook.scheduling import BookingEngine
from salonbook.storage import InMemoryStore, SalonDB

# 2026-01-05 is a Monday
MONDAY = "2026-01-05"
TUESDAY = "2026-01-06"
WEDNESDAY = "2026-01-07"
SUNDAY = "2026-01-04"

TENANT = "studio-bela"

MONDAY_ONLY = {"monday": {"start": "09:00", "end": "18:00"}}


def seed_store(store) -> None:
    """Create the tenant, resources and services shared by most tests."""
    store.create_tenant("Studio Bela", tenant_id=TENANT)
    store.create_resource(TENANT, "Ana", availability=MONDAY_ONLY, resource_id="ana")
    store.create_resource(TENANT, "Bruno", resource_id="bruno")  # no availability set
    store.create_service(TENANT, "Coloring", duration=45, price=120.0, service_id="color")
    store.create_service(TENANT, "Haircut", duration=30, price=60.0, service_id="cut")


def book_directly(
    store,
    start: str,
    end: str,
    day: str = MONDAY,
    resource_id: str = "ana",
    status: AppointmentStatus = AppointmentStatus.CONFIRMED,
):
    """Insert an appointment through the store, bypassing the engine."""
    client = store.find_or_create(TENANT, "existing@example.com", "Existing Client")
    return store.insert(
        NewAppointment(
            tenant_id=TENANT,
            resource_id=resource_id,
            service_id="color",
            client_id=client.id,
            date=day,
            start_time=start,
            end_time=end,
            status=status,
            price=120.0,
        )
    )


@pytest.fixture
def memory_store() -> InMemoryStore:
    """Seeded in-memory store."""
    store = InMemoryStore()
    seed_store(store)
    return store


@pytest.fixture
def engine(memory_store) -> BookingEngine:
    """Engine over the seeded in-memory store."""
    return BookingEngine.from_store(memory_store, granularity_minutes=30, trim_overrunning=False)


@pytest.fixture
def temp_db(tmp_path: Path) -> Generator[SalonDB, None, None]:
    """Empty SQLite database in a temporary directory."""
    db = SalonDB(db_path=tmp_path / "test.db")
    yield db
    db.close()


@pytest.fixture
def seeded_db(temp_db) -> SalonDB:
    """SQLite database with the shared seed data."""
    seed_store(temp_db)
    return temp_db


@pytest.fixture
def db_engine(seeded_db) -> BookingEngine:
    """Engine over the seeded SQLite database."""
    return BookingEngine.from_store(seeded_db, granularity_minutes=30, trim_overrunning=False)
