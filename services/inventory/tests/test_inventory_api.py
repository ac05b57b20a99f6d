from fastapi.testclient import TestClient

from services.inventory.application.allocator import InventoryAllocator
from services.inventory.infrastructure.seed import build_catalog
from services.inventory.main import create_app


def make_client():
    return TestClient(create_app(allocator=InventoryAllocator(build_catalog())))


def test_list_inventory():
    resp = make_client().get('/inventory/')
    assert resp.status_code == 200
    assert [item["product_id"] for item in resp.json()] == [
        "PROD-001", "PROD-002", "PROD-003", "PROD-004", "PROD-005"
    ]


def test_check_selected_products():
    resp = make_client().get('/inventory/', params={"product_ids": ["PROD-005", "PROD-777"]})
    assert resp.status_code == 200
    webcam, unknown = resp.json()
    assert webcam["free_to_reserve"] == 5
    assert unknown["product_name"] == "Unknown"
    assert unknown["warehouse_location"] == "N/A"


def test_get_single_product():
    client = make_client()
    assert client.get('/inventory/PROD-004').json()["product_name"] == "Laptop Stand"
    assert client.get('/inventory/PROD-404').status_code == 404


def test_reserve_and_fetch_reservation():
    client = make_client()
    resp = client.post('/inventory/reservations', json={
        "order_id": "ORD-ABC",
        "items": [{"product_id": "PROD-005", "quantity": 10}],
    })
    assert resp.status_code == 201
    body = resp.json()
    assert body["all_reserved"] is False
    assert body["results"][0]["status"] == "LOW_STOCK"

    fetched = client.get(f'/inventory/reservations/{body["reservation_id"]}')
    assert fetched.status_code == 200
    assert fetched.json()["order_id"] == "ORD-ABC"
    assert client.get('/inventory/PROD-005').json()["reserved_quantity"] == 5


def test_unknown_reservation_is_404():
    assert make_client().get('/inventory/reservations/RES-NOPE').status_code == 404


def test_reserve_rejects_empty_items():
    resp = make_client().post('/inventory/reservations', json={"order_id": "ORD-1", "items": []})
    assert resp.status_code == 422


def test_readiness_reports_catalog():
    resp = make_client().get('/health/ready')
    assert resp.json()["checks"]["catalog:records"]["observedValue"] == 5
