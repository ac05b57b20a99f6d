"""
Integration tests for the order fulfillment gateway.

The gateway talks to the order and inventory services over HTTP exactly as in
a deployment; the transport is httpx.ASGITransport so all three apps run
in-process.
"""

import httpx
import pytest

from services.gateway.core_settings import Settings as GatewaySettings
from services.gateway.infrastructure.backends import HttpInventoryBackend, HttpOrderBackend
from services.gateway.main import create_app as create_gateway
from services.inventory.application.allocator import InventoryAllocator
from services.inventory.infrastructure.seed import build_catalog
from services.inventory.main import create_app as create_inventory
from services.orders.application.service import OrderService
from services.orders.main import create_app as create_orders

ORDER_URL = "http://orders.test"
INVENTORY_URL = "http://inventory.test"
GATEWAY_URL = "http://gateway.test"

ORDER_PAYLOAD = {
    "customer": {
        "customer_id": "CUST-1001",
        "first_name": "Katherine",
        "last_name": "Johnson",
        "email": "katherine@example.com",
        "shipping_address": {
            "street": "1 Langley Blvd",
            "city": "Hampton",
            "state": "VA",
            "zip_code": "23681",
            "country": "USA",
        },
    },
    "items": [
        {"product_id": "PROD-002", "product_name": "Phone Case", "quantity": 2, "unit_price": "19.99"},
        {"product_id": "PROD-005", "product_name": "Webcam", "quantity": 3, "unit_price": "89.99"},
    ],
    "priority": True,
}


async def no_sleep(_delay):
    return None


def asgi_client(app, base_url):
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url=base_url)


class HeaderRecorder:
    """ASGI wrapper noting one request header before handing over to the app"""

    def __init__(self, app, header):
        self.app = app
        self.header = header.lower().encode()
        self.seen = []

    async def __call__(self, scope, receive, send):
        if scope["type"] == "http":
            self.seen.append(dict(scope["headers"]).get(self.header, b"").decode())
        await self.app(scope, receive, send)


class Platform:
    """Gateway wired to live order and inventory apps"""

    def __init__(self, inventory_app=None, orders_app=None):
        self.allocator = InventoryAllocator(build_catalog())
        self.orders_app = orders_app or create_orders(order_service=OrderService())
        self.inventory_app = inventory_app or create_inventory(allocator=self.allocator)
        self.gateway_app = create_gateway(
            GatewaySettings(INVENTORY_CB_FAILURE_THRESHOLD=2),
            order_backend=HttpOrderBackend(ORDER_URL, client=asgi_client(self.orders_app, ORDER_URL)),
            inventory_backend=HttpInventoryBackend(
                INVENTORY_URL, client=asgi_client(self.inventory_app, INVENTORY_URL)
            ),
            sleep=no_sleep,
        )
        self.client = asgi_client(self.gateway_app, GATEWAY_URL)

    async def close(self):
        await self.client.aclose()
        await self.gateway_app.state.orchestrator.orders.close()
        await self.gateway_app.state.orchestrator.inventory.close()


class TestPlatformIntegration:
    """End-to-end flows through the gateway"""

    @pytest.mark.asyncio
    async def test_order_with_inventory(self):
        platform = Platform()
        try:
            resp = await platform.client.post("/api/v1/orders", json=ORDER_PAYLOAD)
            assert resp.status_code == 201
            body = resp.json()
            assert body["success"] is True
            assert body["inventory_reserved"] is True
            assert body["reservation_id"].startswith("RES-")

            order = await platform.client.get(f"/api/v1/orders/{body['order_id']}")
            assert order.status_code == 200
            assert order.json()["total_amount"] == "309.95"

            stock = await platform.client.get("/api/v1/inventory", params={"product_ids": ["PROD-005"]})
            assert stock.json()[0]["reserved_quantity"] == 3
        finally:
            await platform.close()

    @pytest.mark.asyncio
    async def test_correlation_id_reaches_backends(self):
        orders_app = HeaderRecorder(create_orders(order_service=OrderService()), "X-Correlation-ID")
        inventory_app = HeaderRecorder(
            create_inventory(allocator=InventoryAllocator(build_catalog())), "X-Correlation-ID"
        )
        platform = Platform(inventory_app=inventory_app, orders_app=orders_app)
        try:
            resp = await platform.client.post(
                "/api/v1/orders", json=ORDER_PAYLOAD, headers={"X-Correlation-ID": "trace-77"}
            )
            assert resp.status_code == 201
            assert resp.headers["X-Correlation-ID"] == "trace-77"
            assert orders_app.seen == ["trace-77"]
            assert inventory_app.seen == ["trace-77"]
        finally:
            await platform.close()

    @pytest.mark.asyncio
    async def test_unknown_order_is_404(self):
        platform = Platform()
        try:
            resp = await platform.client.get("/api/v1/orders/ORD-NOTREAL")
            assert resp.status_code == 404
            assert resp.json()["error_code"] == "ORDER_NOT_FOUND"
            breakers = (await platform.client.get("/api/v1/circuit-breakers")).json()
            assert breakers["order-service"]["state"] == "CLOSED"
        finally:
            await platform.close()

    @pytest.mark.asyncio
    async def test_inventory_outage_keeps_the_order(self):
        async def broken_inventory(scope, receive, send):
            await send({"type": "http.response.start", "status": 503,
                        "headers": [(b"content-type", b"application/json")]})
            await send({"type": "http.response.body", "body": b'{"detail": "maintenance"}'})

        platform = Platform(inventory_app=broken_inventory)
        try:
            first = await platform.client.post("/api/v1/orders", json=ORDER_PAYLOAD)
            assert first.status_code == 201
            assert first.json()["inventory_reserved"] is False

            breakers = (await platform.client.get("/api/v1/circuit-breakers")).json()
            assert breakers["inventory-service"]["state"] == "OPEN"

            second = await platform.client.post("/api/v1/orders", json=ORDER_PAYLOAD)
            body = second.json()
            assert body["success"] is True
            assert "circuit open" in body["message"]

            order = await platform.client.get(f"/api/v1/orders/{body['order_id']}")
            assert order.status_code == 200
        finally:
            await platform.close()
