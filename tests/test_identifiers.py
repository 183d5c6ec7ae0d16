from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from pymongo.errors import PyMongoError

from identifiers import leading_int, next_item_id, next_requisition_number

BASE = datetime(2024, 1, 1, tzinfo=timezone.utc)


def seed(collection, field, codes):
    for offset, code in enumerate(codes):
        collection.insert_one({field: code, "created_at": BASE + timedelta(minutes=offset)})


def failing_collection():
    collection = MagicMock()
    collection.find.side_effect = PyMongoError("connection refused")
    return collection


def test_first_item_id_is_seed(mongo_db):
    assert next_item_id(mongo_db["items"]) == "ITEM-001"


@pytest.mark.parametrize("prior,expected", [
    ("ITEM-001", "ITEM-002"),
    ("ITEM-009", "ITEM-010"),
    ("ITEM-099", "ITEM-100"),
    ("ITEM-999", "ITEM-1000"),
])
def test_item_id_increments_latest(mongo_db, prior, expected):
    seed(mongo_db["items"], "item_id", [prior])
    assert next_item_id(mongo_db["items"]) == expected


def test_item_id_uses_most_recent_not_highest(mongo_db):
    seed(mongo_db["items"], "item_id", ["ITEM-050", "ITEM-003"])
    assert next_item_id(mongo_db["items"]) == "ITEM-004"


@pytest.mark.parametrize("prior", ["ITEM-abc", "ITEM", "", None])
def test_item_id_non_numeric_suffix_restarts(mongo_db, prior):
    seed(mongo_db["items"], "item_id", [prior])
    assert next_item_id(mongo_db["items"]) == "ITEM-001"


def test_item_id_after_bulk_imported_code(mongo_db):
    # The timestamp segment of an ITM- code is read as the counter
    seed(mongo_db["items"], "item_id", ["ITM-1700000000500-ABCDEFGHI"])
    assert next_item_id(mongo_db["items"]) == "ITEM-1700000000501"


def test_item_id_falls_back_to_timestamp_on_read_failure():
    assert next_item_id(failing_collection(), clock=lambda: 1700000000.5) == "ITEM-500"


def test_first_requisition_number_is_seed(mongo_db):
    assert next_requisition_number(mongo_db["requisitions"]) == "FL.RF.01"


@pytest.mark.parametrize("prior,expected", [
    ("FL.RF.01", "FL.RF.02"),
    ("FL.RF.03", "FL.RF.04"),
    ("FL.RF.09", "FL.RF.10"),
    ("FL.RF.99", "FL.RF.100"),
    ("FL.RF.01.012026", "FL.RF.02"),
])
def test_requisition_number_increments_latest(mongo_db, prior, expected):
    seed(mongo_db["requisitions"], "requisition_number", [prior])
    assert next_requisition_number(mongo_db["requisitions"]) == expected


def test_requisition_number_without_numeric_segment(mongo_db):
    seed(mongo_db["requisitions"], "requisition_number", ["FL.RF"])
    assert next_requisition_number(mongo_db["requisitions"]) == "FL.RF.01"


def test_requisition_number_restarts_on_read_failure():
    assert next_requisition_number(failing_collection()) == "FL.RF.01"


@pytest.mark.parametrize("value,expected", [
    ("007", 7), ("12abc", 12), (" 5", 5), ("abc", 0), ("", 0), (None, 0),
])
def test_leading_int(value, expected):
    assert leading_int(value) == expected
