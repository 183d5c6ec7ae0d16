import pytest

from requisitions import (
    ARCHIVED,
    PENDING,
    UnknownItemError,
    add_line,
    compose_lines,
    grand_total,
    toggle_status,
)

WIDGET = {"id": "a1", "item_id": "ITEM-001", "item_name": "Widget", "unit_of_measure": "Box",
          "description": "A widget", "unit_price": 12.5}
GADGET = {"id": "b2", "item_id": "ITEM-002", "item_name": "Gadget", "unit_of_measure": "Pc",
          "description": "", "unit_price": 4}


def test_same_item_twice_is_merged():
    lines = add_line([], WIDGET, 2)
    lines = add_line(lines, WIDGET, 3)
    assert len(lines) == 1
    assert lines[0]["quantity"] == 5
    assert lines[0]["total_price"] == 5 * 12.5


def test_add_line_keeps_order_and_does_not_mutate():
    first = add_line([], WIDGET, 1)
    second = add_line(first, GADGET, 2)
    third = add_line(second, WIDGET, 1)
    assert [l["item_id"] for l in third] == ["ITEM-001", "ITEM-002"]
    assert first[0]["quantity"] == 1
    assert second[0]["quantity"] == 1


def test_grand_total():
    lines = add_line(add_line([], WIDGET, 2), GADGET, 3)
    assert grand_total(lines) == 2 * 12.5 + 3 * 4
    assert grand_total([]) == 0


def test_compose_lines_from_catalog():
    lines = compose_lines([WIDGET, GADGET], [("a1", 2), ("b2", 1), ("a1", 3)])
    assert [(l["item_name"], l["quantity"]) for l in lines] == [("Widget", 5), ("Gadget", 1)]


def test_compose_lines_unknown_item():
    with pytest.raises(UnknownItemError):
        compose_lines([WIDGET], [("missing", 1)])


def test_toggle_status():
    assert toggle_status(PENDING) == ARCHIVED
    assert toggle_status(ARCHIVED) == PENDING
