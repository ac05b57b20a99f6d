from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Tuple


class ReservationStatus(str, Enum):
    RESERVED = "RESERVED"
    LOW_STOCK = "LOW_STOCK"
    OUT_OF_STOCK = "OUT_OF_STOCK"


@dataclass(frozen=True)
class InventoryRecord:
    """Stock for one product.

    ``available_quantity`` is total stock and is not decremented by
    reservations; what can still be reserved is ``available - reserved``.
    """
    product_id: str
    product_name: str
    available_quantity: int
    reserved_quantity: int
    warehouse_location: str
    unit_price: Decimal

    def __post_init__(self):
        if self.reserved_quantity < 0 or self.reserved_quantity > self.available_quantity:
            raise ValueError(
                f"{self.product_id}: reserved {self.reserved_quantity} outside "
                f"0..{self.available_quantity}"
            )

    @property
    def free_to_reserve(self) -> int:
        return self.available_quantity - self.reserved_quantity

    def with_reserved(self, extra: int) -> "InventoryRecord":
        return replace(self, reserved_quantity=self.reserved_quantity + extra)

    @classmethod
    def unknown(cls, product_id: str) -> "InventoryRecord":
        """Placeholder reported for product ids missing from the catalog"""
        return cls(product_id, "Unknown", 0, 0, "N/A", Decimal("0"))


@dataclass(frozen=True)
class ReservationLine:
    product_id: str
    quantity: int

    def __post_init__(self):
        if self.quantity <= 0:
            raise ValueError(f"requested quantity must be positive for {self.product_id}")


@dataclass(frozen=True)
class ReservationLineResult:
    product_id: str
    requested_quantity: int
    reserved_quantity: int
    status: ReservationStatus
    message: str


@dataclass(frozen=True)
class Reservation:
    reservation_id: str
    order_id: str
    results: Tuple[ReservationLineResult, ...]
    reserved_at: datetime

    @property
    def overall_fulfilled(self) -> bool:
        return all(r.reserved_quantity == r.requested_quantity for r in self.results)
