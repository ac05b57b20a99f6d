"""
Order orchestration across the order and inventory services.

Creating an order and reserving its stock is a two-step saga with no
compensation: once the order exists it is never rolled back, even when the
reservation step fails. That outcome is reported as a successful order with
``inventory_reserved=False`` and an explanatory message.
"""

from typing import List, Sequence

from shared.core import CallResult, NotFoundError, get_logger
from shared.core.logging_config import set_request_context

from services.inventory.domain.models import InventoryRecord, Reservation, ReservationLine
from services.orders.application.schemas import OrderDraft
from services.orders.domain.models import Order
from services.gateway.infrastructure.backends import InventoryBackend, OrderBackend
from services.gateway.resilience import ResilientCaller
from .schemas import (
    ORDER_CREATION_FAILED,
    ORDER_LOOKUP_FAILED,
    ORDER_NOT_FOUND,
    GatewayOutcome,
)
from .stages import RequestStage, RequestTrace

logger = get_logger(__name__)


def reservation_lines(draft: OrderDraft) -> List[ReservationLine]:
    return [ReservationLine(product_id=item.product_id, quantity=item.quantity) for item in draft.items]


def failure_fields(trace: RequestTrace, error: Exception) -> dict:
    return {
        'request_kind': trace.request_kind,
        'stages': [stage.value for stage in trace.history],
        'error_type': type(error).__name__,
    }


class OrderOrchestrator:
    """Sequences order creation and inventory reservation for one request"""

    def __init__(self, orders: OrderBackend, inventory: InventoryBackend,
                 order_calls: ResilientCaller, inventory_calls: ResilientCaller):
        self.orders = orders
        self.inventory = inventory
        self.order_calls = order_calls
        self.inventory_calls = inventory_calls

    async def create_order_with_inventory(self, draft: OrderDraft) -> GatewayOutcome:
        trace = RequestTrace("create_order_with_inventory")
        logger.info(
            f"Gateway: Creating order with inventory for customer: {draft.customer.customer_id}",
            extra={'extra_fields': {'items': len(draft.items), 'priority': draft.priority}}
        )

        order_result = await self._create_order(trace, draft)
        if not order_result.ok:
            return self._order_creation_failed(trace, order_result.error)
        order = order_result.value

        trace.advance(RequestStage.INVENTORY_PENDING)
        lines = reservation_lines(draft)
        reservation_result = await self.inventory_calls.call(
            lambda: self.inventory.reserve(order.order_id, lines),
            description="reserve_inventory",
        )
        if not reservation_result.ok:
            return self._inventory_failed(trace, order, reservation_result.error)

        reservation: Reservation = reservation_result.value
        trace.advance(RequestStage.INVENTORY_RESERVED)
        logger.info(
            f"Gateway: Inventory reserved: {reservation.reservation_id}, "
            f"allReserved: {reservation.overall_fulfilled}"
        )
        return GatewayOutcome.from_order_and_reservation(
            order, reservation, trace.advance(RequestStage.COMPLETED)
        )

    async def create_order_only(self, draft: OrderDraft) -> GatewayOutcome:
        trace = RequestTrace("create_order_only")
        logger.info(
            f"Gateway: Creating order (without inventory) for customer: {draft.customer.customer_id}"
        )

        order_result = await self._create_order(trace, draft)
        if not order_result.ok:
            return self._order_creation_failed(trace, order_result.error)
        return GatewayOutcome.from_order(order_result.value, trace.advance(RequestStage.COMPLETED))

    async def get_order(self, order_id: str) -> GatewayOutcome:
        trace = RequestTrace("get_order")
        trace.advance(RequestStage.ORDER_PENDING)
        result = await self.order_calls.call(
            lambda: self.orders.get_order(order_id),
            description="get_order",
        )
        if not result.ok:
            code = ORDER_NOT_FOUND if isinstance(result.error, NotFoundError) else ORDER_LOOKUP_FAILED
            return GatewayOutcome.failure(code, result.error, trace.advance(RequestStage.ORDER_FAILED))

        trace.advance(RequestStage.ORDER_CREATED)
        return GatewayOutcome.from_order(result.value, trace.advance(RequestStage.COMPLETED))

    async def check_inventory(self, product_ids: Sequence[str]) -> CallResult[List[InventoryRecord]]:
        return await self.inventory_calls.call(
            lambda: self.inventory.check_inventory(list(product_ids)),
            description="check_inventory",
        )

    async def _create_order(self, trace: RequestTrace, draft: OrderDraft) -> CallResult[Order]:
        trace.advance(RequestStage.ORDER_PENDING)
        result = await self.order_calls.call(
            lambda: self.orders.create_order(draft),
            description="create_order",
        )
        if result.ok:
            trace.advance(RequestStage.ORDER_CREATED)
            set_request_context(order_id=result.value.order_id)
            logger.info(f"Gateway: Order created with ID: {result.value.order_id}")
        return result

    # Fallbacks

    def _order_creation_failed(self, trace: RequestTrace, error: Exception) -> GatewayOutcome:
        logger.error(f"Gateway: Error creating order: {error}",
                     extra={'extra_fields': failure_fields(trace, error)})
        return GatewayOutcome.failure(
            ORDER_CREATION_FAILED, error, trace.advance(RequestStage.ORDER_FAILED)
        )

    def _inventory_failed(self, trace: RequestTrace, order: Order, error: Exception) -> GatewayOutcome:
        # The order stays in place; there is no compensating cancellation
        logger.error(
            f"Gateway: Inventory reservation failed for order {order.order_id}: {error}",
            extra={'extra_fields': failure_fields(trace, error)}
        )
        return GatewayOutcome.inventory_unavailable(
            order, error, trace.advance(RequestStage.INVENTORY_FAILED)
        )

