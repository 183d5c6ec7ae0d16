"""Requisition line composition and status helpers."""

from typing import Iterable, List, Tuple

PENDING = "pending"
ARCHIVED = "archived"


class UnknownItemError(LookupError):
    pass


def line_from_item(item: dict, quantity: int) -> dict:
    unit_price = float(item.get("unit_price") or 0)
    return {
        "item_id": item.get("item_id"),
        "item_name": item.get("item_name") or "",
        "quantity": quantity,
        "unit_of_measure": item.get("unit_of_measure") or "",
        "description": item.get("description") or "",
        "unit_price": unit_price,
        "total_price": quantity * unit_price,
    }


def add_line(lines: List[dict], item: dict, quantity: int) -> List[dict]:
    """Add ``quantity`` of ``item``, merging into an existing line with the same item_id."""
    updated = [dict(line) for line in lines]
    for line in updated:
        if line["item_id"] == item.get("item_id"):
            line["quantity"] += quantity
            line["total_price"] = line["quantity"] * float(item.get("unit_price") or 0)
            return updated
    updated.append(line_from_item(item, quantity))
    return updated


def grand_total(lines: Iterable[dict]) -> float:
    return sum((line.get("total_price") or 0 for line in lines), 0.0)


def compose_lines(catalog: List[dict], requested: Iterable[Tuple[str, int]]) -> List[dict]:
    """Build requisition lines from ``(catalog id, quantity)`` pairs."""
    by_id = {item["id"]: item for item in catalog}
    lines = []
    for item_ref, quantity in requested:
        item = by_id.get(item_ref)
        if item is None:
            raise UnknownItemError(item_ref)
        lines = add_line(lines, item, quantity)
    return lines


def toggle_status(status: str) -> str:
    return PENDING if status == ARCHIVED else ARCHIVED
