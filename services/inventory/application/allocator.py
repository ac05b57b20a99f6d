import threading
import uuid
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from shared.core import NotFoundError, get_logger

from services.inventory.domain.models import (
    InventoryRecord,
    Reservation,
    ReservationLine,
    ReservationLineResult,
    ReservationStatus,
)
from services.inventory.infrastructure.catalog import InventoryCatalog

logger = get_logger(__name__)

MESSAGES = {
    ReservationStatus.RESERVED: "Fully reserved",
    ReservationStatus.LOW_STOCK: "Partially reserved",
    ReservationStatus.OUT_OF_STOCK: "No stock available",
}
PRODUCT_NOT_FOUND = "Product not found"


class ReservationNotFoundError(NotFoundError):
    def __init__(self, reservation_id: str):
        super().__init__(f"Reservation not found: {reservation_id}", service="inventory-service")
        self.reservation_id = reservation_id


def generate_reservation_id() -> str:
    """``RES-`` followed by 8 uppercase alphanumerics"""
    return "RES-" + uuid.uuid4().hex[:8].upper()


def classify(requested: int, reserved: int) -> ReservationStatus:
    if reserved == requested:
        return ReservationStatus.RESERVED
    if reserved > 0:
        return ReservationStatus.LOW_STOCK
    return ReservationStatus.OUT_OF_STOCK


def _take_up_to(requested: int) -> Callable[[InventoryRecord], Tuple[InventoryRecord, int]]:
    def change(record: InventoryRecord) -> Tuple[InventoryRecord, int]:
        to_reserve = max(0, min(record.free_to_reserve, requested))
        if to_reserve == 0:
            return record, 0
        return record.with_reserved(to_reserve), to_reserve
    return change


class InventoryAllocator:
    """
    Reserves stock line by line, partially when stock runs short.

    Lines are independent: a short line does not release what its siblings
    already reserved, and ``Reservation.overall_fulfilled`` only reports
    whether every line was reserved in full. Reserving the same lines twice
    holds stock twice.
    """

    def __init__(self, catalog: InventoryCatalog, clock: Optional[Callable[[], datetime]] = None):
        self.catalog = catalog
        self._clock = clock or datetime.now
        self._reservations: Dict[str, Reservation] = {}
        self._lock = threading.Lock()

    def reserve(self, order_id: str, lines: Sequence[ReservationLine]) -> Reservation:
        logger.info(f"Reserving inventory for order: {order_id}",
                    extra={'extra_fields': {'order_id': order_id, 'lines': len(lines)}})

        results = tuple(self._reserve_line(line) for line in lines)
        reservation = Reservation(
            reservation_id=generate_reservation_id(),
            order_id=order_id,
            results=results,
            reserved_at=self._clock(),
        )
        with self._lock:
            self._reservations[reservation.reservation_id] = reservation

        logger.info(
            f"Reservation {reservation.reservation_id} for order {order_id}: "
            f"fulfilled={reservation.overall_fulfilled}",
            extra={'extra_fields': {
                'reservation_id': reservation.reservation_id,
                'statuses': [r.status.value for r in results],
            }}
        )
        return reservation

    def _reserve_line(self, line: ReservationLine) -> ReservationLineResult:
        reserved = self.catalog.update(line.product_id, _take_up_to(line.quantity))
        if reserved is None:
            return ReservationLineResult(
                product_id=line.product_id,
                requested_quantity=line.quantity,
                reserved_quantity=0,
                status=ReservationStatus.OUT_OF_STOCK,
                message=PRODUCT_NOT_FOUND,
            )
        status = classify(line.quantity, reserved)
        if status is not ReservationStatus.RESERVED:
            logger.warning(f"Short reservation for {line.product_id}: {reserved}/{line.quantity}")
        return ReservationLineResult(
            product_id=line.product_id,
            requested_quantity=line.quantity,
            reserved_quantity=reserved,
            status=status,
            message=MESSAGES[status],
        )

    def check_inventory(self, product_ids: Iterable[str]) -> List[InventoryRecord]:
        return [self.catalog.get(pid) or InventoryRecord.unknown(pid) for pid in product_ids]

    def get_reservation(self, reservation_id: str) -> Reservation:
        with self._lock:
            reservation = self._reservations.get(reservation_id)
        if reservation is None:
            raise ReservationNotFoundError(reservation_id)
        return reservation
