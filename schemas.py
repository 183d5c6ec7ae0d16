"""
Database Schemas for the Requisition Desk

Each Pydantic model describes the documents stored in one MongoDB collection.

Collections:
- items: item catalog (ITEM-### codes, or ITM-<ts>-<token> when bulk imported)
- requisitions: submitted requisition forms with embedded line items
- users: application users (username / plain-text password)
"""

from pydantic import BaseModel, Field
from typing import List
from datetime import datetime

class Item(BaseModel):
    item_id: str = Field(..., description="Sequence code, e.g. ITEM-007")
    item_name: str = Field(..., description="Item name")
    unit_of_measure: str = Field(..., description="Unit of measure (e.g., Unit, Box, kg)")
    description: str = Field("", description="Item description")
    unit_price: float = Field(..., description="Unit price")
    created_at: datetime

class RequisitionItem(BaseModel):
    item_id: str = Field(..., description="Catalog item code")
    item_name: str = Field(..., description="Item name snapshot")
    quantity: int = Field(..., gt=0, description="Requested quantity")
    unit_of_measure: str
    description: str = ""
    unit_price: float = Field(..., description="Unit price snapshot")
    total_price: float = Field(..., description="quantity * unit_price")

class Requisition(BaseModel):
    requisition_number: str = Field(..., description="Sequence code, e.g. FL.RF.03")
    request_date: str
    need_date: str = ""
    department: str
    unit_section: str = ""
    items: List[RequisitionItem]
    remarks: str = ""
    prepared_by: str = ""
    noted_by: str = ""
    approved_by: str = ""
    approved_by_coo: str = ""
    status: str = Field("pending", description="pending | archived")
    created_at: datetime

class User(BaseModel):
    username: str = Field(..., description="Login name (uniqueness checked on create only)")
    password: str = Field(..., description="Stored as entered, not hashed")
    created_at: datetime
