"""
Bulk item import from comma separated text.

Accepted format:
- first line is the header row, every following non-blank line is an item
- fields are split on "," with no quoting or escaping support
- headers are matched loosely (see ``COLUMN_ALIASES``)

Rows are written one at a time, without a transaction. A failed row is
counted and skipped; the rest of the file is still imported.
"""

import logging
import math
import re
import secrets
import string
import time
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = (".xlsx", ".xls", ".csv")

DEFAULT_UOM = "Unit"

# Alternatives per logical column. The first header (left to right) matching
# any alternative wins, so "Unit Price" before "UOM" is read as the UOM column.
COLUMN_ALIASES = {
    "item_name": (("item name",), ("item", "name"), ("name",)),
    "unit_of_measure": (("uom",), ("unit of measure",), ("unit",)),
    "description": (("description",), ("desc",)),
    "unit_price": (("unit price",), ("price",)),
}

MISSING_COLUMNS_MESSAGE = (
    "File must contain 'Item Name' and 'Unit Price' columns. "
    "Expected columns: Item Name, Unit Price, UOM (optional), Description (optional)"
)
NO_VALID_ITEMS_MESSAGE = "No valid items found in the file"

_LEADING_FLOAT = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")
_BASE36 = string.digits + string.ascii_uppercase


class ImportPayloadError(ValueError):
    """The payload as a whole cannot be imported."""


class ColumnMap(BaseModel):
    item_name: Optional[int] = None
    unit_of_measure: Optional[int] = None
    description: Optional[int] = None
    unit_price: Optional[int] = None


class ParsedImport(BaseModel):
    items: List[dict] = []
    errors: int = 0


class ImportReport(BaseModel):
    succeeded: int = 0
    failed: int = 0

    @property
    def message(self) -> str:
        msg = f"Successfully imported {self.succeeded} items"
        if self.failed:
            msg += f" ({self.failed} errors)"
        return msg


def _header_matches(header: str, aliases) -> bool:
    return any(all(part in header for part in alias) for alias in aliases)


def resolve_columns(header_line: str) -> ColumnMap:
    headers = [h.strip().lower() for h in header_line.split(",")]
    columns = ColumnMap()
    for name, aliases in COLUMN_ALIASES.items():
        for index, header in enumerate(headers):
            if _header_matches(header, aliases):
                setattr(columns, name, index)
                break
    return columns


def parse_price(value) -> Optional[float]:
    """Leading decimal number of ``value`` ("12.5 PHP" -> 12.5), or None.

    Non-finite results such as "1e999" are rejected.
    """
    if value is None:
        return None
    match = _LEADING_FLOAT.match(value.strip())
    if not match:
        return None
    price = float(match.group(0))
    return price if math.isfinite(price) else None


def _field(values: List[str], index: Optional[int]) -> str:
    if index is None or index >= len(values):
        return ""
    return values[index]


def parse_import_payload(raw_text: str) -> ParsedImport:
    lines = raw_text.split("\n")
    columns = resolve_columns(lines[0])
    if columns.item_name is None or columns.unit_price is None:
        raise ImportPayloadError(MISSING_COLUMNS_MESSAGE)

    parsed = ParsedImport()
    for line in lines[1:]:
        if not line.strip():
            continue

        values = [v.strip() for v in line.split(",")]
        item_name = _field(values, columns.item_name)
        unit_price = parse_price(_field(values, columns.unit_price))
        if not item_name or unit_price is None:
            parsed.errors += 1
            continue

        parsed.items.append({
            "item_name": item_name,
            "unit_of_measure": DEFAULT_UOM if columns.unit_of_measure is None
            else _field(values, columns.unit_of_measure),
            "description": "" if columns.description is None
            else _field(values, columns.description),
            "unit_price": unit_price,
        })
    return parsed


def generate_import_item_id(clock=time.time) -> str:
    token = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"ITM-{int(clock() * 1000)}-{token}"


def import_items(collection, raw_text: str, clock=time.time) -> ImportReport:
    """Parse ``raw_text`` and insert every valid row into ``collection``.

    Imported rows get an ``ITM-<timestamp>-<token>`` id rather than the
    ``ITEM-###`` sequence used for items added one by one.
    """
    parsed = parse_import_payload(raw_text)
    if not parsed.items:
        raise ImportPayloadError(NO_VALID_ITEMS_MESSAGE)

    report = ImportReport(failed=parsed.errors)
    for item in parsed.items:
        now = datetime.fromtimestamp(clock(), tz=timezone.utc)
        doc = {
            **item,
            "item_id": generate_import_item_id(clock),
            "created_at": now,
            "updated_at": now,
        }
        try:
            collection.insert_one(doc)
            report.succeeded += 1
        except PyMongoError as e:
            report.failed += 1
            logger.error(f"Error adding imported item {item['item_name']!r}: {e}")

    logger.info(report.message)
    return report
