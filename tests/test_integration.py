from datetime import date

import pytest
from fastapi.testclient import TestClient

from delivery_planner.api.dependencies import get_registry_client, get_scheduler
from delivery_planner.main import create_app
from delivery_planner.models.domain import Driver, Material
from delivery_planner.persistence.deliveries import InMemoryDeliveryRepository
from delivery_planner.services.policy import AllocationPolicy
from delivery_planner.services.slots.service import DeliveryScheduler
from delivery_planner.services.splitting.catalog import MaterialsCatalog

TODAY = date(2025, 5, 20)


class DummyRegistry:
    def fetch_materials(self):
        return MaterialsCatalog(
            [
                Material(material_id="cement", name="Portland Cement", category="Cement", unit="bag"),
                Material(material_id="steel", name="Rebar 12mm", category="Steel & Reinforcement", unit="bar"),
            ]
        )

    def fetch_drivers(self, active_only=True):
        return [Driver(driver_id="D1", name="Kumara Perera"), Driver(driver_id="D2", name="Nimal Silva")]


@pytest.fixture
def api_client() -> TestClient:
    app = create_app()
    scheduler = DeliveryScheduler(InMemoryDeliveryRepository(), AllocationPolicy(), clock=lambda: TODAY)
    app.dependency_overrides[get_scheduler] = lambda: scheduler
    app.dependency_overrides[get_registry_client] = lambda: DummyRegistry()
    return TestClient(app)


def _delivery_payload(driver: str, district: str = "Colombo", slot: str = "09:00-11:00", on: str = "2025-06-01") -> dict:
    return {
        "order_id": "ORD-7892",
        "customer": "Royal Builders",
        "address": "123 Galle Road, Colombo 04",
        "district": district,
        "delivery_date": on,
        "time_slot": slot,
        "driver_id": driver,
    }


def test_health(api_client: TestClient):
    response = api_client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_create_and_capacity_conflict(api_client: TestClient):
    for driver in ("D1", "D2", "D3"):
        response = api_client.post("/api/deliveries", json=_delivery_payload(driver))
        assert response.status_code == 201
        assert response.json()["status"] == "Scheduled"

    rejected = api_client.post("/api/deliveries", json=_delivery_payload("D4"))
    assert rejected.status_code == 409
    assert rejected.json()["detail"]["reason"] == "capacity_exceeded"

    accepted = api_client.post("/api/deliveries", json=_delivery_payload("D4", district="Gampaha"))
    assert accepted.status_code == 201

    listing = api_client.get("/api/deliveries", params={"district": "Colombo"})
    assert len(listing.json()) == 3

    slots = api_client.get("/api/deliveries/slots", params={"date": "2025-06-01", "district": "Colombo"})
    assert slots.status_code == 200
    assert all(entry["remaining"] == 3 for entry in slots.json())


def test_availability_check_and_past_date(api_client: TestClient):
    api_client.post("/api/deliveries", json=_delivery_payload("D1"))

    conflict = api_client.post(
        "/api/deliveries/availability",
        json={"delivery_date": "2025-06-01", "time_slot": "09:00-11:00", "district": "Kandy", "driver_id": "D1"},
    )
    assert conflict.json()["accepted"] is False
    assert conflict.json()["reason"] == "driver_conflict"

    past = api_client.post("/api/deliveries", json=_delivery_payload("D2", on="2025-05-19"))
    assert past.status_code == 409
    assert past.json()["detail"]["reason"] == "past_date"


def test_invalid_slot_label_is_unprocessable(api_client: TestClient):
    response = api_client.post("/api/deliveries", json=_delivery_payload("D1", slot="morning"))
    assert response.status_code == 422


def test_update_status_cancel_and_delete(api_client: TestClient):
    created = api_client.post("/api/deliveries", json=_delivery_payload("D1")).json()
    delivery_id = created["id"]

    resaved = api_client.put(f"/api/deliveries/{delivery_id}", json={})
    assert resaved.status_code == 200

    in_transit = api_client.patch(f"/api/deliveries/{delivery_id}/status", json={"status": "In Transit"})
    assert in_transit.json()["status"] == "In Transit"

    cancel = api_client.post(f"/api/deliveries/{delivery_id}/cancel")
    assert cancel.status_code == 400

    assert api_client.delete(f"/api/deliveries/{delivery_id}").status_code == 204
    assert api_client.delete(f"/api/deliveries/{delivery_id}").status_code == 404


def test_driver_availability_from_registry(api_client: TestClient):
    api_client.post("/api/deliveries", json=_delivery_payload("D1"))

    response = api_client.post(
        "/api/drivers/availability",
        json={"delivery_date": "2025-06-01", "time_slot": "09:00-11:00"},
    )

    payload = response.json()
    assert response.status_code == 200
    assert [entry["available"] for entry in payload["drivers"]] == [False, True]
    assert payload["default_driver_id"] == "D2"


def test_order_preview_and_confirm(api_client: TestClient):
    lines = [
        {"material_id": "steel", "quantity": 5},
        {"material_id": "cement", "quantity": 10},
        {"material_id": "badMaterialId", "quantity": 3},
    ]

    preview = api_client.post("/api/orders/preview", json={"lines": lines, "base_date": "2025-06-01", "base_time": "08:00"})
    payload = preview.json()
    assert preview.status_code == 200
    assert [c["category"] for c in payload["candidates"]] == ["Cement", "Steel & Reinforcement"]
    assert [c["proposed_time"] for c in payload["candidates"]] == ["08:00", "10:00"]
    assert payload["total_items"] == 15

    confirm = api_client.post(
        "/api/orders/preview/confirm",
        json={
            "lines": lines,
            "base_date": "2025-06-01",
            "order_id": "ORD-9001",
            "customer": "Lanka Contractors",
            "address": "45 Kandy Road, Kiribathgoda",
            "district": "Gampaha",
            "assignments": [
                {"sequence_number": 1, "time_slot": "08:00-10:00", "driver_id": "D1"},
                {"sequence_number": 2, "time_slot": "08:00-10:00", "driver_id": "D1"},
            ],
        },
    )
    results = confirm.json()["results"]
    assert [r["accepted"] for r in results] == [True, False]
    assert results[1]["reason"] == "driver_conflict"
    assert results[0]["delivery_id"].startswith("DEL-")


def test_preview_with_no_valid_lines_is_empty(api_client: TestClient):
    response = api_client.post(
        "/api/orders/preview",
        json={"lines": [{"material_id": "", "quantity": 2}], "materials": []},
    )
    assert response.status_code == 200
    assert response.json() == {"candidates": [], "total_items": 0}
