"""
Human-readable sequence codes for items and requisitions.

Both codes are derived by reading the newest document of the collection and
incrementing its numeric segment. There is no atomic counter behind this:
two concurrent callers can read the same newest document and get the same
code back. A real fix needs a single counter document updated with
``find_one_and_update({"$inc": ...})``; it is left out on purpose because it
changes which codes get handed out under load.
"""

import logging
import re
import time

from pymongo.errors import PyMongoError

from database import get_latest_document

logger = logging.getLogger(__name__)

ITEM_PREFIX = "ITEM"
ITEM_SEED = "ITEM-001"
ITEM_WIDTH = 3

REQUISITION_PREFIX = "FL.RF"
REQUISITION_SEED = "FL.RF.01"
REQUISITION_WIDTH = 2

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def leading_int(value) -> int:
    """Integer at the start of ``value``; 0 when absent or non-numeric."""
    if value is None:
        return 0
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else 0


def _segment(code, separator: str, index: int):
    if not code:
        return None
    parts = str(code).split(separator)
    return parts[index] if len(parts) > index else None


def increment_code(prior: str, separator: str, index: int, prefix: str, width: int) -> str:
    number = leading_int(_segment(prior, separator, index)) + 1
    return f"{prefix}{separator}{str(number).zfill(width)}"


def next_item_id(collection, clock=time.time) -> str:
    try:
        latest = get_latest_document(collection)
    except PyMongoError as e:
        suffix = str(int(clock() * 1000))[-ITEM_WIDTH:]
        logger.warning(f"Item id lookup failed, using timestamp suffix {suffix}: {e}")
        return f"{ITEM_PREFIX}-{suffix}"

    if latest is None:
        return ITEM_SEED
    return increment_code(latest.get("item_id"), "-", 1, ITEM_PREFIX, ITEM_WIDTH)


def next_requisition_number(collection) -> str:
    try:
        latest = get_latest_document(collection)
    except PyMongoError as e:
        logger.warning(f"Requisition number lookup failed, restarting at {REQUISITION_SEED}: {e}")
        return REQUISITION_SEED

    if latest is None:
        return REQUISITION_SEED
    return increment_code(latest.get("requisition_number"), ".", 2, REQUISITION_PREFIX, REQUISITION_WIDTH)
