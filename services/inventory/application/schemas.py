from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from services.inventory.domain.models import (
    InventoryRecord,
    Reservation,
    ReservationLine,
    ReservationLineResult,
    ReservationStatus,
)


class InventoryRead(BaseModel):
    product_id: str
    product_name: str
    available_quantity: int
    reserved_quantity: int
    free_to_reserve: int
    warehouse_location: str
    unit_price: Decimal

    @classmethod
    def from_domain(cls, record: InventoryRecord) -> "InventoryRead":
        return cls(
            product_id=record.product_id,
            product_name=record.product_name,
            available_quantity=record.available_quantity,
            reserved_quantity=record.reserved_quantity,
            free_to_reserve=record.free_to_reserve,
            warehouse_location=record.warehouse_location,
            unit_price=record.unit_price,
        )

    def to_domain(self) -> InventoryRecord:
        return InventoryRecord(
            product_id=self.product_id,
            product_name=self.product_name,
            available_quantity=self.available_quantity,
            reserved_quantity=self.reserved_quantity,
            warehouse_location=self.warehouse_location,
            unit_price=self.unit_price,
        )


class ReserveItem(BaseModel):
    product_id: str = Field(min_length=1)
    quantity: int = Field(ge=1)

    def to_domain(self) -> ReservationLine:
        return ReservationLine(product_id=self.product_id, quantity=self.quantity)


class ReserveInventoryRequest(BaseModel):
    order_id: str = Field(min_length=1)
    items: list[ReserveItem] = Field(min_length=1)


class ReservationLineRead(BaseModel):
    product_id: str
    requested_quantity: int
    reserved_quantity: int
    status: ReservationStatus
    message: str

    @classmethod
    def from_domain(cls, result: ReservationLineResult) -> "ReservationLineRead":
        return cls(
            product_id=result.product_id,
            requested_quantity=result.requested_quantity,
            reserved_quantity=result.reserved_quantity,
            status=result.status,
            message=result.message,
        )

    def to_domain(self) -> ReservationLineResult:
        return ReservationLineResult(**self.model_dump())


class ReservationRead(BaseModel):
    reservation_id: str
    order_id: str
    all_reserved: bool
    reserved_at: datetime
    results: list[ReservationLineRead]

    @classmethod
    def from_domain(cls, reservation: Reservation) -> "ReservationRead":
        return cls(
            reservation_id=reservation.reservation_id,
            order_id=reservation.order_id,
            all_reserved=reservation.overall_fulfilled,
            reserved_at=reservation.reserved_at,
            results=[ReservationLineRead.from_domain(r) for r in reservation.results],
        )

    def to_domain(self) -> Reservation:
        return Reservation(
            reservation_id=self.reservation_id,
            order_id=self.order_id,
            results=tuple(r.to_domain() for r in self.results),
            reserved_at=self.reserved_at,
        )
