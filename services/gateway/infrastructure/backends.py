"""
Backend clients used by the gateway.

The orchestrator only sees the ``OrderBackend`` and ``InventoryBackend``
protocols. The local implementations call the services in-process; the HTTP
implementations talk to the services' REST APIs with httpx and translate
transport failures into the shared error taxonomy.
"""

from typing import Any, List, Optional, Protocol, Sequence

import httpx
from pydantic import ValidationError

from shared.core import (
    ErrorCategory,
    NotFoundError,
    StructuralError,
    TransientCallError,
    get_logger,
)
from shared.core.logging_config import CORRELATION_ID_HEADER, correlation_id_var

from services.gateway.core_settings import INVENTORY_SERVICE, ORDER_SERVICE
from services.inventory.application.allocator import InventoryAllocator
from services.inventory.application.schemas import InventoryRead, ReservationRead
from services.inventory.domain.models import InventoryRecord, Reservation, ReservationLine
from services.orders.application.schemas import OrderDraft, OrderRead
from services.orders.application.service import OrderService
from services.orders.domain.models import Order

logger = get_logger(__name__)


class OrderBackend(Protocol):
    async def create_order(self, draft: OrderDraft) -> Order: ...

    async def get_order(self, order_id: str) -> Order: ...


class InventoryBackend(Protocol):
    async def reserve(self, order_id: str, lines: Sequence[ReservationLine]) -> Reservation: ...

    async def check_inventory(self, product_ids: Sequence[str]) -> List[InventoryRecord]: ...


class LocalOrderBackend:
    def __init__(self, service: OrderService):
        self.service = service

    async def create_order(self, draft: OrderDraft) -> Order:
        return self.service.create(draft)

    async def get_order(self, order_id: str) -> Order:
        return self.service.get(order_id)


class LocalInventoryBackend:
    def __init__(self, allocator: InventoryAllocator):
        self.allocator = allocator

    async def reserve(self, order_id: str, lines: Sequence[ReservationLine]) -> Reservation:
        return self.allocator.reserve(order_id, lines)

    async def check_inventory(self, product_ids: Sequence[str]) -> List[InventoryRecord]:
        return self.allocator.check_inventory(product_ids)


class _HttpBackend:
    """Shared request handling and error translation for the HTTP clients"""

    service_name = "backend"

    def __init__(self, base_url: str, timeout: float = 30.0,
                 client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def close(self) -> None:
        await self.client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        headers = kwargs.pop("headers", {})
        correlation_id = correlation_id_var.get()
        if correlation_id:
            headers[CORRELATION_ID_HEADER] = correlation_id
        try:
            response = await self.client.request(method, path, headers=headers, **kwargs)
        except httpx.TimeoutException as e:
            raise TransientCallError(
                f"{self.service_name} timed out: {e}", service=self.service_name
            ) from e
        except httpx.TransportError as e:
            raise TransientCallError(
                f"{self.service_name} unreachable: {e}", service=self.service_name
            ) from e

        if response.status_code >= 500:
            raise TransientCallError(
                f"{self.service_name} returned {response.status_code}", service=self.service_name
            )
        if response.status_code == 404:
            raise NotFoundError(self._detail(response), service=self.service_name)
        if response.status_code >= 400:
            raise StructuralError(
                f"{self.service_name} rejected the request: {self._detail(response)}",
                service=self.service_name,
            )
        try:
            return response.json()
        except ValueError as e:
            raise self._malformed(e) from e

    def _parse(self, model, payload):
        try:
            if isinstance(payload, list):
                return [model.model_validate(item) for item in payload]
            return model.model_validate(payload)
        except ValidationError as e:
            raise self._malformed(e) from e

    def _malformed(self, error: Exception) -> StructuralError:
        return StructuralError(
            f"Malformed response from {self.service_name}: {error}",
            service=self.service_name,
            category=ErrorCategory.INTERNAL,
        )

    @staticmethod
    def _detail(response: httpx.Response) -> str:
        try:
            detail = response.json().get("detail")
        except (ValueError, AttributeError):
            detail = None
        return str(detail) if detail else response.text or f"HTTP {response.status_code}"


class HttpOrderBackend(_HttpBackend):
    service_name = ORDER_SERVICE

    async def create_order(self, draft: OrderDraft) -> Order:
        payload = await self._request("POST", "/orders/", json=draft.model_dump(mode="json"))
        return self._parse(OrderRead, payload).to_domain()

    async def get_order(self, order_id: str) -> Order:
        payload = await self._request("GET", f"/orders/{order_id}")
        return self._parse(OrderRead, payload).to_domain()


class HttpInventoryBackend(_HttpBackend):
    service_name = INVENTORY_SERVICE

    async def reserve(self, order_id: str, lines: Sequence[ReservationLine]) -> Reservation:
        body = {
            "order_id": order_id,
            "items": [{"product_id": line.product_id, "quantity": line.quantity} for line in lines],
        }
        payload = await self._request("POST", "/inventory/reservations", json=body)
        return self._parse(ReservationRead, payload).to_domain()

    async def check_inventory(self, product_ids: Sequence[str]) -> List[InventoryRecord]:
        payload = await self._request("GET", "/inventory/", params={"product_ids": list(product_ids)})
        if not isinstance(payload, list):
            raise self._malformed(ValueError("expected a list of inventory records"))
        return [item.to_domain() for item in self._parse(InventoryRead, payload)]
