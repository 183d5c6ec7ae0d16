import logging
import os
from datetime import date, datetime, timezone
from typing import List, Optional

from fastapi import Depends, FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from pymongo import ASCENDING, DESCENDING
from pymongo.database import Database
from pymongo.errors import PyMongoError

import database
from cache import CATALOG_KEY, TTLCache
from config import configure_logging, settings
from database import (
    ITEMS, REQUISITIONS, USERS,
    create_document, get_db, get_documents, get_optional_db, oid, require_db, with_id,
)
from identifiers import next_item_id, next_requisition_number
from importer import ALLOWED_EXTENSIONS, ImportPayloadError, import_items
from requisitions import PENDING, UnknownItemError, compose_lines, grand_total, toggle_status
from schemas import Item, Requisition, User

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Requisition Desk API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

catalog_cache = TTLCache(ttl_seconds=settings.CACHE_TTL_SECONDS)


def get_catalog_cache() -> TTLCache:
    return catalog_cache


@app.exception_handler(PyMongoError)
async def database_error_handler(request: Request, exc: PyMongoError):
    logger.error(f"Database operation failed on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Operation failed, please try again"})


def find_or_404(db: Database, collection_name: str, id_str: str, label: str) -> dict:
    doc = db[collection_name].find_one({"_id": oid(id_str)})
    if not doc:
        raise HTTPException(404, detail=f"{label} not found")
    return with_id(doc)


# ---------- Models for requests ----------

class ItemIn(BaseModel):
    item_name: str = Field(..., min_length=1)
    unit_of_measure: str = Field(..., min_length=1)
    description: str = ""
    unit_price: float = Field(..., ge=0, allow_inf_nan=False)


class ItemUpdate(BaseModel):
    item_name: Optional[str] = Field(None, min_length=1)
    unit_of_measure: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    unit_price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)


class RequisitionLineIn(BaseModel):
    id: str = Field(..., description="Catalog item id")
    quantity: int = Field(..., gt=0)


class RequisitionCreate(BaseModel):
    request_date: str = Field(default_factory=lambda: date.today().isoformat())
    need_date: str = ""
    department: str = Field(..., min_length=1)
    unit_section: str = ""
    lines: List[RequisitionLineIn]
    remarks: str = ""
    prepared_by: str = ""
    noted_by: str = ""
    approved_by: str = ""
    approved_by_coo: str = ""


class UserIn(BaseModel):
    username: str
    password: str


class LoginIn(BaseModel):
    username: str
    password: str


# ---------- Health ----------

@app.get("/")
def read_root():
    return {"message": "Requisition Desk Backend Running"}


@app.get("/test")
def test_database():
    db = database.db
    response = {
        "backend": "Running",
        "database": "Not Available",
        "database_url": "Set" if settings.DATABASE_URL else "Not Set",
        "database_name": settings.DATABASE_NAME,
        "collections": [],
    }
    if db is None:
        return response
    try:
        response["collections"] = db.list_collection_names()
        response["database"] = "Connected & Working"
    except PyMongoError as e:
        logger.warning(f"Database check failed: {e}")
        response["database"] = f"Connected but Error: {str(e)[:80]}"
    return response


# ---------- Items ----------

@app.post("/items")
def create_item(
    item: ItemIn,
    db: Database = Depends(get_db),
    cache: TTLCache = Depends(get_catalog_cache),
):
    item_code = next_item_id(db[ITEMS])
    doc = Item(item_id=item_code, created_at=datetime.now(timezone.utc), **item.model_dump())
    new_id = create_document(db, ITEMS, doc)
    cache.clear()
    logger.info(f"Created item {item_code} ({item.item_name})")
    return {"id": new_id, "item_id": item_code}


@app.get("/items")
def list_items(db: Database = Depends(get_db)):
    return get_documents(db, ITEMS, sort=[("created_at", DESCENDING)])


@app.post("/items/import")
def import_items_file(
    file: UploadFile = File(...),
    db: Database = Depends(get_db),
    cache: TTLCache = Depends(get_catalog_cache),
):
    fname = (file.filename or "").lower()
    if not fname.endswith(ALLOWED_EXTENSIONS):
        raise HTTPException(400, detail="Please upload an Excel (.xlsx, .xls) or CSV file")
    content = file.file.read(settings.MAX_IMPORT_BYTES + 1)
    if len(content) > settings.MAX_IMPORT_BYTES:
        raise HTTPException(413, detail="File too large")

    try:
        report = import_items(db[ITEMS], content.decode("utf-8-sig", errors="replace"))
    except ImportPayloadError as e:
        raise HTTPException(400, detail=str(e))
    finally:
        file.file.close()

    if report.succeeded:
        cache.clear()
    return {"imported": report.succeeded, "errors": report.failed, "message": report.message}


@app.get("/items/{item_id}")
def get_item(item_id: str, db: Database = Depends(get_db)):
    return find_or_404(db, ITEMS, item_id, "Item")


@app.put("/items/{item_id}")
def update_item(
    item_id: str,
    changes: ItemUpdate,
    db: Database = Depends(get_db),
    cache: TTLCache = Depends(get_catalog_cache),
):
    update = changes.model_dump(exclude_none=True)
    if not update:
        raise HTTPException(400, detail="Nothing to update")
    update["updated_at"] = datetime.now(timezone.utc)
    result = db[ITEMS].update_one({"_id": oid(item_id)}, {"$set": update})
    if result.matched_count == 0:
        raise HTTPException(404, detail="Item not found")
    cache.clear()
    return find_or_404(db, ITEMS, item_id, "Item")


@app.delete("/items/{item_id}")
def delete_item(
    item_id: str,
    db: Database = Depends(get_db),
    cache: TTLCache = Depends(get_catalog_cache),
):
    result = db[ITEMS].delete_one({"_id": oid(item_id)})
    if result.deleted_count == 0:
        raise HTTPException(404, detail="Item not found")
    cache.clear()
    return {"ok": True}


@app.get("/catalog")
def get_catalog(
    db: Database = Depends(get_db),
    cache: TTLCache = Depends(get_catalog_cache),
):
    return load_catalog(db, cache)


def load_catalog(db: Database, cache: TTLCache) -> list:
    cached = cache.get(CATALOG_KEY)
    if cached is not None:
        return cached
    items = get_documents(db, ITEMS, sort=[("item_name", ASCENDING)])
    cache.set(CATALOG_KEY, items)
    return items


# ---------- Requisitions ----------

def submit_requisition(data: RequisitionCreate, db: Database, cache: TTLCache) -> dict:
    if not data.lines:
        raise HTTPException(400, detail="Please add at least one item to the requisition.")
    try:
        lines = compose_lines(load_catalog(db, cache), [(l.id, l.quantity) for l in data.lines])
    except UnknownItemError as e:
        raise HTTPException(400, detail=f"Unknown item: {e}")

    number = next_requisition_number(db[REQUISITIONS])
    requisition = Requisition(
        requisition_number=number,
        items=lines,
        status=PENDING,
        created_at=datetime.now(timezone.utc),
        **data.model_dump(exclude={"lines"}),
    )
    new_id = create_document(db, REQUISITIONS, requisition)
    logger.info(f"Submitted requisition {number} with {len(lines)} line(s)")
    return {"id": new_id, "requisition_number": number, "grand_total": grand_total(lines)}


@app.post("/requisitions")
def create_requisition(
    data: RequisitionCreate,
    db: Database = Depends(get_db),
    cache: TTLCache = Depends(get_catalog_cache),
):
    return submit_requisition(data, db, cache)


@app.get("/requisitions")
def list_requisitions(status: Optional[str] = Query(default=None), db: Database = Depends(get_db)):
    q = {}
    if status:
        q["status"] = status
    return get_documents(db, REQUISITIONS, q, sort=[("created_at", DESCENDING)])


@app.get("/requisitions/{req_id}")
def get_requisition(req_id: str, db: Database = Depends(get_db)):
    req = find_or_404(db, REQUISITIONS, req_id, "Requisition")
    req["grand_total"] = grand_total(req.get("items", []))
    return req


@app.post("/requisitions/{req_id}/archive")
def archive_requisition(req_id: str, db: Database = Depends(get_db)):
    req = find_or_404(db, REQUISITIONS, req_id, "Requisition")
    new_status = toggle_status(req.get("status"))
    db[REQUISITIONS].update_one(
        {"_id": oid(req_id)},
        {"$set": {"status": new_status, "updated_at": datetime.now(timezone.utc)}},
    )
    return {"id": req_id, "status": new_status}


@app.post("/requisitions/{req_id}/resubmit")
def resubmit_requisition(
    req_id: str,
    data: RequisitionCreate,
    db: Database = Depends(get_db),
    cache: TTLCache = Depends(get_catalog_cache),
):
    # Editing never touches the original; a new requisition (and number) is issued
    find_or_404(db, REQUISITIONS, req_id, "Requisition")
    return submit_requisition(data, db, cache)


@app.delete("/requisitions/{req_id}")
def delete_requisition(req_id: str, db: Database = Depends(get_db)):
    result = db[REQUISITIONS].delete_one({"_id": oid(req_id)})
    if result.deleted_count == 0:
        raise HTTPException(404, detail="Requisition not found")
    return {"ok": True}


# ---------- Users ----------
# Passwords are stored and compared as plain text, and the username check is
# a read followed by an insert. Both are known gaps.

@app.post("/users")
def create_user(user: UserIn, db: Database = Depends(get_db)):
    if not user.username or not user.password:
        raise HTTPException(400, detail="Username and password are required")
    if len(user.password) < 6:
        raise HTTPException(400, detail="Password must be at least 6 characters")
    if db[USERS].find_one({"username": user.username}):
        raise HTTPException(400, detail="Username already exists")

    doc = User(username=user.username, password=user.password, created_at=datetime.now(timezone.utc))
    new_id = create_document(db, USERS, doc)
    logger.info(f"Created user {user.username}")
    return {"id": new_id, "username": user.username}


@app.get("/users")
def list_users(db: Database = Depends(get_db)):
    cursor = db[USERS].find({}, {"password": 0}).sort("created_at", DESCENDING)
    return [with_id(u) for u in cursor]


@app.delete("/users/{user_id}")
def delete_user(user_id: str, db: Database = Depends(get_db)):
    result = db[USERS].delete_one({"_id": oid(user_id)})
    if result.deleted_count == 0:
        raise HTTPException(404, detail="User not found")
    return {"ok": True}


@app.post("/login")
def login(credentials: LoginIn, current: Optional[Database] = Depends(get_optional_db)):
    if (credentials.username == settings.SUPERUSER_USERNAME
            and credentials.password == settings.SUPERUSER_PASSWORD):
        return {"username": credentials.username, "is_admin": True}

    db = require_db(current)
    user = db[USERS].find_one({"username": credentials.username})
    if not user or user.get("password") != credentials.password:
        raise HTTPException(401, detail="Invalid username or password")
    return {"username": credentials.username, "is_admin": False}


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", settings.PORT))
    uvicorn.run(app, host="0.0.0.0", port=port)
