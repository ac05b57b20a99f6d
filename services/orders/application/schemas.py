from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from services.orders.domain.models import Address, Customer, Order, OrderLineItem, OrderStatus


class AddressIn(BaseModel):
    street: str = Field(min_length=1)
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    zip_code: str = Field(min_length=1)
    country: str = Field(min_length=1)

    def to_domain(self) -> Address:
        return Address(**self.model_dump())

    @classmethod
    def from_domain(cls, address: Address) -> "AddressIn":
        return cls(
            street=address.street,
            city=address.city,
            state=address.state,
            zip_code=address.zip_code,
            country=address.country,
        )


class CustomerIn(BaseModel):
    customer_id: str = Field(min_length=1)
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: str = Field(pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    phone: Optional[str] = None
    shipping_address: AddressIn
    billing_address: Optional[AddressIn] = None

    def to_domain(self) -> Customer:
        return Customer(
            customer_id=self.customer_id,
            first_name=self.first_name,
            last_name=self.last_name,
            email=self.email,
            phone=self.phone,
            shipping_address=self.shipping_address.to_domain(),
            billing_address=self.billing_address.to_domain() if self.billing_address else None,
        )

    @classmethod
    def from_domain(cls, customer: Customer) -> "CustomerIn":
        return cls(
            customer_id=customer.customer_id,
            first_name=customer.first_name,
            last_name=customer.last_name,
            email=customer.email,
            phone=customer.phone,
            shipping_address=AddressIn.from_domain(customer.shipping_address),
            billing_address=(
                AddressIn.from_domain(customer.billing_address) if customer.billing_address else None
            ),
        )


class OrderItemIn(BaseModel):
    product_id: str = Field(min_length=1)
    product_name: str = Field(min_length=1)
    quantity: int = Field(ge=1)
    unit_price: Decimal = Field(gt=0)
    total_price: Optional[Decimal] = None

    def to_domain(self) -> OrderLineItem:
        return OrderLineItem(
            product_id=self.product_id,
            product_name=self.product_name,
            quantity=self.quantity,
            unit_price=self.unit_price,
            total_override=self.total_price,
        )


class OrderDraft(BaseModel):
    """Order as submitted by a client, before the order service assigns an id"""
    customer: CustomerIn
    items: list[OrderItemIn] = Field(min_length=1)
    notes: Optional[str] = None
    priority: bool = False


class OrderItemRead(BaseModel):
    product_id: str
    product_name: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal

    @classmethod
    def from_domain(cls, item: OrderLineItem) -> "OrderItemRead":
        return cls(
            product_id=item.product_id,
            product_name=item.product_name,
            quantity=item.quantity,
            unit_price=item.unit_price,
            total_price=item.line_total,
        )


class OrderRead(BaseModel):
    order_id: str
    status: OrderStatus
    message: str
    customer: CustomerIn
    items: list[OrderItemRead]
    notes: Optional[str] = None
    priority: bool
    total_amount: Decimal
    created_at: datetime
    estimated_delivery_date: date
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, order: Order) -> "OrderRead":
        return cls(
            order_id=order.order_id,
            status=order.status,
            message=order.message,
            customer=CustomerIn.from_domain(order.customer),
            items=[OrderItemRead.from_domain(item) for item in order.items],
            notes=order.notes,
            priority=order.priority,
            total_amount=order.total_amount,
            created_at=order.created_at,
            estimated_delivery_date=order.estimated_delivery_date,
            updated_at=order.updated_at,
        )

    def to_domain(self) -> Order:
        return Order(
            order_id=self.order_id,
            customer=self.customer.to_domain(),
            items=tuple(
                OrderLineItem(
                    product_id=item.product_id,
                    product_name=item.product_name,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    total_override=item.total_price,
                )
                for item in self.items
            ),
            priority=self.priority,
            status=self.status,
            total_amount=self.total_amount,
            created_at=self.created_at,
            estimated_delivery_date=self.estimated_delivery_date,
            notes=self.notes,
            message=self.message,
            updated_at=self.updated_at,
        )
