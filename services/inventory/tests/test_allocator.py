import threading
from decimal import Decimal

import pytest

from services.inventory.application.allocator import (
    InventoryAllocator,
    ReservationNotFoundError,
    classify,
)
from services.inventory.domain.models import InventoryRecord, ReservationLine, ReservationStatus
from services.inventory.infrastructure.catalog import InventoryCatalog
from services.inventory.infrastructure.seed import build_catalog, read_seed_file


def record(product_id, available, reserved=0):
    return InventoryRecord(product_id, product_id.title(), available, reserved, "WH-T1", Decimal("1.00"))


@pytest.fixture
def allocator():
    return InventoryAllocator(build_catalog())


@pytest.mark.parametrize("requested, reserved, expected", [
    (3, 3, ReservationStatus.RESERVED),
    (3, 2, ReservationStatus.LOW_STOCK),
    (3, 0, ReservationStatus.OUT_OF_STOCK),
])
def test_classify(requested, reserved, expected):
    assert classify(requested, reserved) is expected


def test_full_reservation_updates_stock(allocator):
    reservation = allocator.reserve("ORD-1", [ReservationLine("PROD-002", 20)])

    line = reservation.results[0]
    assert line.status is ReservationStatus.RESERVED
    assert line.reserved_quantity == 20
    assert line.message == "Fully reserved"
    assert reservation.overall_fulfilled
    assert reservation.reservation_id.startswith("RES-")
    stock = allocator.catalog.get("PROD-002")
    assert (stock.available_quantity, stock.reserved_quantity) == (250, 20)


def test_webcam_runs_out(allocator):
    first = allocator.reserve("ORD-1", [ReservationLine("PROD-005", 10)])
    assert first.results[0].status is ReservationStatus.LOW_STOCK
    assert first.results[0].reserved_quantity == 5
    assert first.results[0].message == "Partially reserved"
    assert not first.overall_fulfilled

    second = allocator.reserve("ORD-2", [ReservationLine("PROD-005", 1)])
    assert second.results[0].status is ReservationStatus.OUT_OF_STOCK
    assert second.results[0].reserved_quantity == 0
    assert second.results[0].message == "No stock available"


def test_unknown_product_is_out_of_stock(allocator):
    reservation = allocator.reserve("ORD-1", [
        ReservationLine("PROD-001", 1),
        ReservationLine("PROD-999", 4),
    ])

    known, unknown = reservation.results
    assert known.status is ReservationStatus.RESERVED
    assert unknown.status is ReservationStatus.OUT_OF_STOCK
    assert unknown.message == "Product not found"
    assert not reservation.overall_fulfilled
    # Sibling lines keep what they reserved
    assert allocator.catalog.get("PROD-001").reserved_quantity == 1


def test_reserving_twice_holds_stock_twice(allocator):
    lines = [ReservationLine("PROD-004", 10)]
    allocator.reserve("ORD-1", lines)
    allocator.reserve("ORD-1", lines)
    assert allocator.catalog.get("PROD-004").reserved_quantity == 20


def test_concurrent_reservations_never_over_allocate():
    allocator = InventoryAllocator(InventoryCatalog([record("PROD-X", 50)]))
    results = []
    results_lock = threading.Lock()

    def worker(n):
        reservation = allocator.reserve(f"ORD-{n}", [ReservationLine("PROD-X", 3)])
        with results_lock:
            results.append(reservation.results[0].reserved_quantity)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(40)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sum(results) == 50
    assert allocator.catalog.get("PROD-X").reserved_quantity == 50


def test_check_inventory_reports_placeholders(allocator):
    records = allocator.check_inventory(["PROD-003", "PROD-404"])

    assert records[0].available_quantity == 500
    assert records[1] == InventoryRecord.unknown("PROD-404")
    assert "PROD-404" not in allocator.catalog


def test_get_reservation(allocator):
    reservation = allocator.reserve("ORD-1", [ReservationLine("PROD-001", 1)])

    assert allocator.get_reservation(reservation.reservation_id) == reservation
    with pytest.raises(ReservationNotFoundError):
        allocator.get_reservation("RES-MISSING")


def test_record_invariants():
    with pytest.raises(ValueError):
        record("PROD-X", 5, reserved=6)
    with pytest.raises(ValueError):
        ReservationLine("PROD-X", 0)


def test_catalog_rejects_duplicates():
    with pytest.raises(ValueError):
        InventoryCatalog([record("PROD-X", 1), record("PROD-X", 2)])


def test_seed_file(tmp_path):
    seed = tmp_path / "inventory.csv"
    seed.write_text(
        "product_id,product_name,available_quantity,reserved_quantity,warehouse_location,unit_price\n"
        "SKU-1,Desk Lamp,12,2,WH-Z9,24.50\n"
        "SKU-2,Monitor Arm,3,,WH-Z9,59.00\n"
    )

    catalog = build_catalog(seed)

    assert len(catalog) == 2
    assert catalog.get("SKU-1").free_to_reserve == 10
    assert catalog.get("SKU-2").reserved_quantity == 0
    assert catalog.get("SKU-2").unit_price == Decimal("59.00")


def test_seed_file_missing_columns(tmp_path):
    seed = tmp_path / "broken.csv"
    seed.write_text("product_id,product_name\nSKU-1,Desk Lamp\n")

    with pytest.raises(ValueError, match="missing columns"):
        read_seed_file(seed)
