import pytest
from fastapi.testclient import TestClient

from shared.core import TransientCallError
from services.gateway.core_settings import Settings
from services.gateway.infrastructure.backends import LocalInventoryBackend, LocalOrderBackend
from services.gateway.main import create_app
from services.inventory.application.allocator import InventoryAllocator
from services.inventory.infrastructure.seed import build_catalog
from services.orders.application.service import OrderService

ORDER_PAYLOAD = {
    "customer": {
        "customer_id": "CUST-42",
        "first_name": "Grace",
        "last_name": "Hopper",
        "email": "grace@example.com",
        "phone": "555-0100",
        "shipping_address": {
            "street": "42 Harbor Rd",
            "city": "Arlington",
            "state": "VA",
            "zip_code": "22201",
            "country": "USA",
        },
    },
    "items": [
        {"product_id": "PROD-001", "product_name": "Wireless Headphones", "quantity": 2,
         "unit_price": "49.99"},
        {"product_id": "PROD-005", "product_name": "Webcam", "quantity": 10, "unit_price": "89.99"},
    ],
    "notes": "Leave at the front desk",
}


async def no_sleep(_delay):
    return None


class UnavailableInventory:
    async def reserve(self, order_id, lines):
        raise TransientCallError("inventory-service unreachable", service="inventory-service")

    async def check_inventory(self, product_ids):
        raise TransientCallError("inventory-service unreachable", service="inventory-service")


class FailingOrders:
    def __init__(self, error):
        self.error = error

    async def create_order(self, draft):
        raise self.error

    async def get_order(self, order_id):
        raise self.error


class CountingInventory(LocalInventoryBackend):
    def __init__(self):
        super().__init__(InventoryAllocator(build_catalog()))
        self.reserve_calls = 0

    async def reserve(self, order_id, lines):
        self.reserve_calls += 1
        return await super().reserve(order_id, lines)


def make_client(inventory_backend=None, order_backend=None, **settings_overrides):
    settings = Settings(**settings_overrides)
    app = create_app(
        settings,
        order_backend=order_backend or LocalOrderBackend(OrderService()),
        inventory_backend=inventory_backend or LocalInventoryBackend(InventoryAllocator(build_catalog())),
        sleep=no_sleep,
    )
    return TestClient(app)


@pytest.fixture
def client():
    return make_client()


def test_create_order_with_inventory(client):
    resp = client.post("/api/v1/orders", json=ORDER_PAYLOAD)
    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["order_id"].startswith("ORD-")
    assert body["status"] == "CONFIRMED"
    assert body["message"] == "Order successfully created and confirmed"
    assert body["inventory_reserved"] is False
    statuses = {line["product_id"]: line["status"] for line in body["inventory_results"]}
    assert statuses == {"PROD-001": "RESERVED", "PROD-005": "LOW_STOCK"}
    assert resp.headers["X-Request-ID"]


def test_create_order_only(client):
    resp = client.post("/api/v1/orders/simple", json=ORDER_PAYLOAD)
    assert resp.status_code == 201
    body = resp.json()
    assert body["inventory_reserved"] is None
    assert body["reservation_id"] is None
    assert float(body["total_amount"]) == pytest.approx(999.88)


def test_get_order_round_trip(client):
    order_id = client.post("/api/v1/orders/simple", json=ORDER_PAYLOAD).json()["order_id"]

    resp = client.get(f"/api/v1/orders/{order_id}")
    assert resp.status_code == 200
    assert resp.json()["order_id"] == order_id


def test_unknown_order_is_404(client):
    resp = client.get("/api/v1/orders/ORD-DOESNOTX")
    assert resp.status_code == 404
    body = resp.json()
    assert body["error_code"] == "ORDER_NOT_FOUND"
    assert body["category"] == "NOT_FOUND"
    assert body["path"] == "/api/v1/orders/ORD-DOESNOTX"
    assert "timestamp" in body


def test_invalid_body_is_400(client):
    payload = dict(ORDER_PAYLOAD, items=[dict(ORDER_PAYLOAD["items"][0], quantity=0)])
    resp = client.post("/api/v1/orders", json=payload)
    assert resp.status_code == 400
    body = resp.json()
    assert body["error_code"] == "VALIDATION_ERROR"
    assert body["category"] == "VALIDATION"
    assert "items.0.quantity" in body["message"]


def test_empty_items_are_rejected(client):
    resp = client.post("/api/v1/orders", json=dict(ORDER_PAYLOAD, items=[]))
    assert resp.status_code == 400


def test_check_inventory(client):
    resp = client.get("/api/v1/inventory", params={"product_ids": ["PROD-002", "PROD-404"]})
    assert resp.status_code == 200
    body = resp.json()
    assert body[0]["available_quantity"] == 250
    assert body[1]["product_name"] == "Unknown"


def test_inventory_outage_degrades_order_and_fails_check():
    client = make_client(UnavailableInventory(), INVENTORY_CB_FAILURE_THRESHOLD=2)

    resp = client.post("/api/v1/orders", json=ORDER_PAYLOAD)
    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["inventory_reserved"] is False
    assert body["inventory_results"] == []
    assert body["order_id"] in body["message"]

    resp = client.get("/api/v1/inventory", params={"product_ids": ["PROD-001"]})
    assert resp.status_code == 503
    assert resp.json()["error_code"] == "INVENTORY_CHECK_FAILED"

    breakers = client.get("/api/v1/circuit-breakers").json()
    assert breakers["inventory-service"]["state"] == "OPEN"
    assert breakers["order-service"]["state"] == "CLOSED"

    ready = client.get("/health/ready")
    assert ready.status_code in [200, 503]
    assert ready.json()["checks"]["circuit:inventory-service"]["status"] == "warn"


def test_health_endpoints(client):
    for endpoint in ["/health", "/health/live", "/health/ready", "/health/startup", "/metrics"]:
        resp = client.get(endpoint)
        assert resp.status_code in [200, 503]
        assert resp.json()


def test_order_service_outage_is_503_and_skips_inventory():
    inventory = CountingInventory()
    client = make_client(
        inventory,
        order_backend=FailingOrders(TransientCallError("order-service unreachable", service="order-service")),
    )

    resp = client.post("/api/v1/orders", json=ORDER_PAYLOAD)
    assert resp.status_code == 503
    body = resp.json()
    assert body["error_code"] == "ORDER_CREATION_FAILED"
    assert body["category"] == "UNAVAILABLE"
    assert body["path"] == "/api/v1/orders"
    assert inventory.reserve_calls == 0


def test_unexpected_order_backend_error_is_500():
    client = make_client(order_backend=FailingOrders(RuntimeError("serializer exploded")))

    resp = client.post("/api/v1/orders/simple", json=ORDER_PAYLOAD)
    assert resp.status_code == 500
    body = resp.json()
    assert body["error_code"] == "ORDER_CREATION_FAILED"
    assert body["category"] == "INTERNAL"


def test_unhandled_route_error_is_500_internal_error():
    app = make_client().app

    async def broken(draft):
        raise KeyError("customer")

    app.state.orchestrator.create_order_only = broken
    client = TestClient(app, raise_server_exceptions=False)

    resp = client.post("/api/v1/orders/simple", json=ORDER_PAYLOAD)
    assert resp.status_code == 500
    body = resp.json()
    assert body["error_code"] == "INTERNAL_ERROR"
    assert body["category"] == "INTERNAL"
    assert body["message"] == "Internal server error"
