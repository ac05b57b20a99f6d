"""Seed data for the inventory catalog.

The catalog starts from the built-in product list unless a CSV file with the
columns ``product_id, product_name, available_quantity, reserved_quantity,
warehouse_location, unit_price`` is supplied.
"""

import csv
from decimal import Decimal
from pathlib import Path
from typing import List, Optional, Union

from shared.core import get_logger

from services.inventory.domain.models import InventoryRecord
from .catalog import InventoryCatalog

logger = get_logger(__name__)

DEFAULT_CATALOG = [
    InventoryRecord("PROD-001", "Wireless Headphones", 100, 0, "WH-A1", Decimal("49.99")),
    InventoryRecord("PROD-002", "Phone Case", 250, 0, "WH-B2", Decimal("19.99")),
    InventoryRecord("PROD-003", "USB Cable", 500, 0, "WH-C3", Decimal("9.99")),
    InventoryRecord("PROD-004", "Laptop Stand", 25, 0, "WH-A1", Decimal("79.99")),
    InventoryRecord("PROD-005", "Webcam", 5, 0, "WH-B2", Decimal("89.99")),
]

REQUIRED_COLUMNS = {
    "product_id",
    "product_name",
    "available_quantity",
    "warehouse_location",
    "unit_price",
}


def read_seed_file(path: Union[str, Path]) -> List[InventoryRecord]:
    path = Path(path)
    with path.open(newline="") as f:
        reader = csv.DictReader(f)
        missing = REQUIRED_COLUMNS - set(reader.fieldnames or ())
        if missing:
            raise ValueError(f"{path} is missing columns: {', '.join(sorted(missing))}")
        records = [
            InventoryRecord(
                product_id=row["product_id"].strip(),
                product_name=row["product_name"].strip(),
                available_quantity=int(row["available_quantity"]),
                reserved_quantity=int(row.get("reserved_quantity") or 0),
                warehouse_location=row["warehouse_location"].strip(),
                unit_price=Decimal(row["unit_price"]),
            )
            for row in reader
        ]
    logger.info(f"Loaded {len(records)} inventory records from {path}")
    return records


def build_catalog(seed_file: Optional[Union[str, Path]] = None) -> InventoryCatalog:
    records = read_seed_file(seed_file) if seed_file else DEFAULT_CATALOG
    return InventoryCatalog(records)
