"""Tests for the booking HTTP API."""

import pytest
from fastapi.testclient import TestClient

from salonbook.api import create_app
from salonbook.storage import SalonDB
from tests.conftest import MONDAY, TENANT, TUESDAY, seed_store


@pytest.fixture
def client():
    """Test client over a seeded in-memory database."""
    db = SalonDB(":memory:")
    seed_store(db)
    app = create_app(db=db)
    yield TestClient(app)
    db.close()


def booking(start="10:00", email="maria@example.com", **overrides):
    body = {
        "resource_id": "ana",
        "service_id": "color",
        "date": MONDAY,
        "start_time": start,
        "client_name": "Maria",
        "client_email": email,
    }
    body.update(overrides)
    return body


class TestAdminRoutes:
    """Tests for tenant, resource and service routes."""

    def test_create_tenant_and_resource(self, client):
        """POST /tenants then /resources should return the new records."""
        tenant = client.post("/tenants", json={"name": "Salon Two"})
        assert tenant.status_code == 201
        tenant_id = tenant.json()["id"]

        resource = client.post(
            f"/tenants/{tenant_id}/resources",
            json={
                "name": "Carla",
                "availability": {"friday": {"start": "10:00", "end": "16:00"}},
            },
        )

        assert resource.status_code == 201
        assert resource.json()["availability"]["friday"] == {
            "open": True,
            "start": "10:00",
            "end": "16:00",
        }

    def test_get_resource(self, client):
        """GET a resource by id."""
        response = client.get(f"/tenants/{TENANT}/resources/ana")

        assert response.status_code == 200
        assert response.json()["name"] == "Ana"

    def test_resource_for_missing_tenant(self, client):
        """Creating under an unknown tenant is 404."""
        response = client.post("/tenants/ghost/resources", json={"name": "X"})

        assert response.status_code == 404

    def test_create_service_validation(self, client):
        """A zero duration is rejected by request validation."""
        response = client.post(
            f"/tenants/{TENANT}/services", json={"name": "Nothing", "duration": 0}
        )

        assert response.status_code == 422

    def test_deactivate_resource(self, client):
        """PATCH active=false hides the resource from availability."""
        response = client.patch(f"/tenants/{TENANT}/resources/ana", json={"active": False})

        assert response.status_code == 200
        assert response.json()["active"] is False

        slots = client.get(
            f"/tenants/{TENANT}/resources/ana/slots",
            params={"service_id": "color", "date": MONDAY},
        )
        assert slots.status_code == 404

    def test_deactivate_unknown_resource(self, client):
        """PATCH on a missing resource is 404."""
        response = client.patch(f"/tenants/{TENANT}/resources/nobody", json={"active": False})

        assert response.status_code == 404

    def test_get_service(self, client):
        """GET a service by id."""
        response = client.get(f"/tenants/{TENANT}/services/cut")

        assert response.json()["duration"] == 30


class TestSlotRoutes:
    """Tests for the availability route."""

    def test_list_slots(self, client):
        """Slots come back as HH:MM strings."""
        response = client.get(
            f"/tenants/{TENANT}/resources/ana/slots",
            params={"service_id": "color", "date": MONDAY},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["date"] == MONDAY
        assert data["slots"][:2] == ["09:00", "09:30"]

    def test_closed_day_is_empty(self, client):
        """A closed day returns an empty list, not an error."""
        response = client.get(
            f"/tenants/{TENANT}/resources/ana/slots",
            params={"service_id": "color", "date": TUESDAY},
        )

        assert response.status_code == 200
        assert response.json()["slots"] == []

    def test_unknown_service_is_404(self, client):
        """Unknown services map to 404 with an error payload."""
        response = client.get(
            f"/tenants/{TENANT}/resources/ana/slots",
            params={"service_id": "perm", "date": MONDAY},
        )

        assert response.status_code == 404
        assert response.json()["type"] == "not_found"

    def test_bad_date_is_422(self, client):
        """Malformed dates map to 422."""
        response = client.get(
            f"/tenants/{TENANT}/resources/ana/slots",
            params={"service_id": "color", "date": "tomorrow"},
        )

        assert response.status_code == 422
        assert response.json()["type"] == "validation_error"


class TestBookingRoutes:
    """Tests for booking and appointment routes."""

    def test_create_booking(self, client):
        """POST /bookings creates a pending appointment and hides the slot."""
        response = client.post(f"/tenants/{TENANT}/bookings", json=booking())

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert data["start_time"] == "10:00"
        assert data["end_time"] == "10:45"

        slots = client.get(
            f"/tenants/{TENANT}/resources/ana/slots",
            params={"service_id": "color", "date": MONDAY},
        ).json()["slots"]
        assert "10:00" not in slots

    def test_overlapping_booking_is_409(self, client):
        """A second overlapping booking returns 409."""
        client.post(f"/tenants/{TENANT}/bookings", json=booking())

        response = client.post(
            f"/tenants/{TENANT}/bookings", json=booking("10:30", email="joao@example.com")
        )

        assert response.status_code == 409
        assert response.json()["type"] == "conflict"

    def test_booking_past_midnight_is_422(self, client):
        """A start whose service would cross midnight is rejected."""
        response = client.post(f"/tenants/{TENANT}/bookings", json=booking("23:30"))

        assert response.status_code == 422

    def test_get_and_list_appointments(self, client):
        """Created appointments appear in the agenda."""
        created = client.post(f"/tenants/{TENANT}/bookings", json=booking()).json()

        fetched = client.get(f"/tenants/{TENANT}/appointments/{created['id']}")
        agenda = client.get(
            f"/tenants/{TENANT}/appointments",
            params={"date_from": MONDAY, "date_to": MONDAY, "status": "pending"},
        )

        assert fetched.json()["id"] == created["id"]
        assert [a["id"] for a in agenda.json()] == [created["id"]]

    def test_unknown_appointment_is_404(self, client):
        """Missing appointments are 404."""
        response = client.get(f"/tenants/{TENANT}/appointments/apt_missing")

        assert response.status_code == 404

    def test_status_transitions(self, client):
        """PATCH status confirms, then refuses to reopen a cancelled appointment."""
        created = client.post(f"/tenants/{TENANT}/bookings", json=booking()).json()
        url = f"/tenants/{TENANT}/appointments/{created['id']}/status"

        confirmed = client.patch(url, json={"status": "confirmed"})
        cancelled = client.patch(url, json={"status": "cancelled"})
        reopened = client.patch(url, json={"status": "pending"})

        assert confirmed.json()["status"] == "confirmed"
        assert cancelled.json()["status"] == "cancelled"
        assert reopened.status_code == 422

    def test_schedule_appointment(self, client):
        """Admin scheduling for an existing client accepts status, price and notes."""
        created = client.post(f"/tenants/{TENANT}/bookings", json=booking()).json()

        response = client.post(
            f"/tenants/{TENANT}/appointments",
            json={
                "resource_id": "ana",
                "service_id": "cut",
                "client_id": created["client_id"],
                "date": MONDAY,
                "start_time": "15:00",
                "status": "confirmed",
                "price": 50,
                "notes": "walk-in",
            },
        )

        assert response.status_code == 201
        assert response.json()["price"] == 50
        assert response.json()["notes"] == "walk-in"

    def test_health(self, client):
        """GET /health reports ok."""
        assert client.get("/health").json() == {"status": "ok"}
