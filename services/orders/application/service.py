import threading
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Callable, Dict, List, Optional

from shared.core import NotFoundError, get_logger

from services.orders.domain.models import Order, OrderStatus, estimate_delivery
from .schemas import OrderDraft

logger = get_logger(__name__)


class OrderNotFoundError(NotFoundError):
    def __init__(self, order_id: str):
        super().__init__(f"Order not found: {order_id}", service="order-service")
        self.order_id = order_id


def generate_order_id() -> str:
    """``ORD-`` followed by 8 uppercase alphanumerics"""
    return "ORD-" + uuid.uuid4().hex[:8].upper()


class OrderService:
    """Creates confirmed orders and keeps them in memory for later lookup"""

    def __init__(self, priority_delivery_days: int = 2, standard_delivery_days: int = 5,
                 clock: Optional[Callable[[], datetime]] = None):
        self.priority_delivery_days = priority_delivery_days
        self.standard_delivery_days = standard_delivery_days
        self._clock = clock or datetime.now
        self._orders: Dict[str, Order] = {}
        self._lock = threading.Lock()

    def create(self, draft: OrderDraft) -> Order:
        items = tuple(item.to_domain() for item in draft.items)
        created_at = self._clock()
        order = Order(
            order_id=generate_order_id(),
            customer=draft.customer.to_domain(),
            items=items,
            priority=draft.priority,
            status=OrderStatus.CONFIRMED,
            total_amount=sum((item.line_total for item in items), Decimal("0")),
            created_at=created_at,
            estimated_delivery_date=estimate_delivery(
                created_at,
                draft.priority,
                priority_days=self.priority_delivery_days,
                standard_days=self.standard_delivery_days,
            ),
            notes=draft.notes,
        )
        with self._lock:
            self._orders[order.order_id] = order

        logger.info(
            f"Created order {order.order_id} with total {order.total_amount}",
            extra={'extra_fields': {
                'order_id': order.order_id,
                'customer_id': order.customer.customer_id,
                'items': len(items),
                'priority': order.priority,
            }}
        )
        return order

    def get(self, order_id: str) -> Order:
        """Return the order, stamping ``updated_at`` with the read time"""
        with self._lock:
            order = self._orders.get(order_id)
            if order is None:
                raise OrderNotFoundError(order_id)
            order = order.touched(self._clock())
            self._orders[order_id] = order
        logger.info(f"Retrieved order {order_id}")
        return order

    def list(self) -> List[Order]:
        with self._lock:
            return list(self._orders.values())
