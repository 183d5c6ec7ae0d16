"""
MongoDB access for the requisition desk.

The client is created once from DATABASE_URL / DATABASE_NAME. Route handlers
receive the database through the ``get_db`` dependency so tests can swap it.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Union

from bson import ObjectId
from fastapi import Depends, HTTPException
from pydantic import BaseModel
from pymongo import DESCENDING, MongoClient
from pymongo.database import Database

from config import settings

logger = logging.getLogger(__name__)

ITEMS = "items"
REQUISITIONS = "requisitions"
USERS = "users"

_client = None
db = None

if settings.DATABASE_URL and settings.DATABASE_NAME:
    _client = MongoClient(settings.DATABASE_URL)
    db = _client[settings.DATABASE_NAME]
else:
    logger.warning("DATABASE_URL / DATABASE_NAME not set, database unavailable")


def get_optional_db() -> Optional[Database]:
    return db


def require_db(current: Optional[Database]) -> Database:
    if current is None:
        raise HTTPException(status_code=503, detail="Database not available")
    return current


def get_db(current: Optional[Database] = Depends(get_optional_db)) -> Database:
    return require_db(current)


def oid(id_str: str) -> ObjectId:
    try:
        return ObjectId(id_str)
    except Exception:
        raise HTTPException(status_code=400, detail="Invalid id format")


def with_id(doc):
    if not doc:
        return doc
    doc["id"] = str(doc.pop("_id"))
    return doc


def create_document(database: Database, collection_name: str, data: Union[BaseModel, dict]) -> str:
    """Insert one document, stamping created_at/updated_at. Returns the new id."""
    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = dict(data)

    now = datetime.now(timezone.utc)
    data_dict.setdefault("created_at", now)
    data_dict["updated_at"] = now

    result = database[collection_name].insert_one(data_dict)
    return str(result.inserted_id)


def get_documents(
    database: Database,
    collection_name: str,
    filter_dict: Optional[dict] = None,
    sort: Optional[list] = None,
    limit: Optional[int] = None,
) -> list:
    cursor = database[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    return [with_id(d) for d in cursor]


def get_latest_document(collection) -> Optional[dict]:
    """Most recently created document of a collection, or None."""
    for doc in collection.find({}).sort("created_at", DESCENDING).limit(1):
        return doc
    return None
