from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple


class OrderStatus(str, Enum):
    CONFIRMED = "CONFIRMED"
    PENDING = "PENDING"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class Address:
    street: str
    city: str
    state: str
    zip_code: str
    country: str


@dataclass(frozen=True)
class Customer:
    customer_id: str
    first_name: str
    last_name: str
    email: str
    shipping_address: Address
    phone: Optional[str] = None
    billing_address: Optional[Address] = None


@dataclass(frozen=True)
class OrderLineItem:
    product_id: str
    product_name: str
    quantity: int
    unit_price: Decimal
    total_override: Optional[Decimal] = None

    def __post_init__(self):
        if self.quantity <= 0:
            raise ValueError(f"quantity must be positive for {self.product_id}")
        if self.unit_price <= 0:
            raise ValueError(f"unit price must be positive for {self.product_id}")

    @property
    def line_total(self) -> Decimal:
        if self.total_override is not None:
            return self.total_override
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class Order:
    order_id: str
    customer: Customer
    items: Tuple[OrderLineItem, ...]
    priority: bool
    status: OrderStatus
    total_amount: Decimal
    created_at: datetime
    estimated_delivery_date: date
    notes: Optional[str] = None
    message: str = "Order successfully created and confirmed"
    updated_at: Optional[datetime] = field(default=None, compare=False)

    def touched(self, when: datetime) -> "Order":
        """Copy with ``updated_at`` set; the only field a read may change"""
        return replace(self, updated_at=when)


def estimate_delivery(created_at: datetime, priority: bool,
                      priority_days: int = 2, standard_days: int = 5) -> date:
    days = priority_days if priority else standard_days
    return created_at.date() + timedelta(days=days)
