from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from shared.core import ErrorCategory, categorize

from services.inventory.application.schemas import ReservationLineRead
from services.inventory.domain.models import Reservation
from services.orders.domain.models import Order
from .stages import RequestStage

ORDER_CREATION_FAILED = "ORDER_CREATION_FAILED"
ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
ORDER_LOOKUP_FAILED = "ORDER_LOOKUP_FAILED"
INVENTORY_CHECK_FAILED = "INVENTORY_CHECK_FAILED"
VALIDATION_ERROR = "VALIDATION_ERROR"
INTERNAL_ERROR = "INTERNAL_ERROR"


class GatewayOutcome(BaseModel):
    """
    Result of one gateway operation.

    Successful outcomes carry the order fields and, for inventory-backed
    requests, the reservation. ``inventory_reserved`` and
    ``inventory_results`` stay None for order-only requests. Failed outcomes
    carry only the error fields.
    """
    success: bool
    stage: RequestStage

    order_id: Optional[str] = None
    status: Optional[str] = None
    message: Optional[str] = None
    total_amount: Optional[Decimal] = None
    estimated_delivery_date: Optional[date] = None
    created_at: Optional[datetime] = None

    reservation_id: Optional[str] = None
    inventory_reserved: Optional[bool] = None
    inventory_results: Optional[list[ReservationLineRead]] = None

    error_code: Optional[str] = None
    error_message: Optional[str] = None
    error_category: Optional[ErrorCategory] = None

    @classmethod
    def from_order(cls, order: Order, stage: RequestStage) -> "GatewayOutcome":
        return cls(
            success=True,
            stage=stage,
            order_id=order.order_id,
            status=order.status.value,
            message=order.message,
            total_amount=order.total_amount,
            estimated_delivery_date=order.estimated_delivery_date,
            created_at=order.created_at,
        )

    @classmethod
    def from_order_and_reservation(cls, order: Order, reservation: Reservation,
                                   stage: RequestStage) -> "GatewayOutcome":
        outcome = cls.from_order(order, stage)
        outcome.reservation_id = reservation.reservation_id
        outcome.inventory_reserved = reservation.overall_fulfilled
        outcome.inventory_results = [ReservationLineRead.from_domain(r) for r in reservation.results]
        return outcome

    @classmethod
    def inventory_unavailable(cls, order: Order, error: Exception,
                              stage: RequestStage) -> "GatewayOutcome":
        outcome = cls.from_order(order, stage)
        outcome.inventory_reserved = False
        outcome.inventory_results = []
        outcome.message = (
            f"Order {order.order_id} was created but inventory could not be reserved: {error}"
        )
        return outcome

    @classmethod
    def failure(cls, code: str, error: Exception, stage: RequestStage) -> "GatewayOutcome":
        return cls(
            success=False,
            stage=stage,
            error_code=code,
            error_message=str(error),
            error_category=categorize(error),
        )


class ErrorResponse(BaseModel):
    error_code: str
    message: str
    category: ErrorCategory
    timestamp: datetime
    path: str
