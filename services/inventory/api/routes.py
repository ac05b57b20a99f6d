from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from services.inventory.application.allocator import InventoryAllocator, ReservationNotFoundError
from services.inventory.application.schemas import (
    InventoryRead,
    ReservationRead,
    ReserveInventoryRequest,
)

router = APIRouter(prefix="/inventory", tags=["inventory"])


def get_allocator(request: Request) -> InventoryAllocator:
    return request.app.state.allocator


@router.get("/", response_model=list[InventoryRead])
def list_inventory(
    product_ids: Optional[list[str]] = Query(default=None),
    allocator: InventoryAllocator = Depends(get_allocator),
):
    """List the whole catalog, or check specific products (unknown ids report zero stock)."""
    if product_ids:
        records = allocator.check_inventory(product_ids)
    else:
        records = allocator.catalog.snapshot()
    return [InventoryRead.from_domain(r) for r in records]


@router.post("/reservations", response_model=ReservationRead, status_code=201)
def reserve_inventory(payload: ReserveInventoryRequest,
                      allocator: InventoryAllocator = Depends(get_allocator)):
    lines = [item.to_domain() for item in payload.items]
    return ReservationRead.from_domain(allocator.reserve(payload.order_id, lines))


@router.get("/reservations/{reservation_id}", response_model=ReservationRead)
def get_reservation(reservation_id: str, allocator: InventoryAllocator = Depends(get_allocator)):
    try:
        reservation = allocator.get_reservation(reservation_id)
    except ReservationNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    return ReservationRead.from_domain(reservation)


@router.get("/{product_id}", response_model=InventoryRead)
def get_inventory(product_id: str, allocator: InventoryAllocator = Depends(get_allocator)):
    record = allocator.catalog.get(product_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Inventory not found")
    return InventoryRead.from_domain(record)
