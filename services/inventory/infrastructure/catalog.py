import threading
from typing import Callable, Dict, Iterable, List, Optional, Tuple, TypeVar

from services.inventory.domain.models import InventoryRecord

T = TypeVar("T")


class InventoryCatalog:
    """
    Process-wide store of inventory records, keyed by product id.

    Records are immutable values; the only way to change one is
    :meth:`update`, which runs a read-modify-write under that product's own
    lock. Reservations against different products never contend.
    """

    def __init__(self, records: Iterable[InventoryRecord] = ()):
        self._records: Dict[str, InventoryRecord] = {}
        self._locks: Dict[str, threading.Lock] = {}
        for record in records:
            if record.product_id in self._records:
                raise ValueError(f"Duplicate product id in catalog: {record.product_id}")
            self._records[record.product_id] = record
            self._locks[record.product_id] = threading.Lock()

    def __contains__(self, product_id: str) -> bool:
        return product_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def get(self, product_id: str) -> Optional[InventoryRecord]:
        return self._records.get(product_id)

    def snapshot(self) -> List[InventoryRecord]:
        return [self._records[pid] for pid in sorted(self._records)]

    def update(self, product_id: str,
               change: Callable[[InventoryRecord], Tuple[InventoryRecord, T]]) -> Optional[T]:
        """
        Atomically apply ``change`` to one record.

        ``change`` receives the current record and returns the replacement
        record plus a value handed back to the caller. Returns None without
        calling ``change`` when the product is unknown.
        """
        lock = self._locks.get(product_id)
        if lock is None:
            return None
        with lock:
            updated, value = change(self._records[product_id])
            self._records[product_id] = updated
        return value
