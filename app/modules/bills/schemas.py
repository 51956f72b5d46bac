"""
Pydantic schemas for drafts and saved bills
"""

from pydantic import BaseModel, Field
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import datetime


# ===== STORE PAYLOADS =====

class BillHeaderCreate(BaseModel):
    bill_number: str = Field(..., min_length=1, max_length=32)
    customer_name: str = Field("N/A", max_length=200)
    total_amount: Decimal
    created_at: datetime


class BillItemCreate(BaseModel):
    position: int = Field(0, ge=0)
    part_number: str
    part_name: str
    quantity: int = Field(..., gt=0)
    unit_price: Decimal = Field(..., gt=0)
    total: Decimal


# ===== SAVED BILLS =====

class BillItemOut(BaseModel):
    id: UUID
    bill_id: UUID
    part_number: str
    part_name: str
    quantity: int
    unit_price: Decimal
    total: Decimal

    class Config:
        from_attributes = True


class BillOut(BaseModel):
    id: UUID
    bill_number: str
    customer_name: str
    total_amount: Decimal
    created_at: datetime

    class Config:
        from_attributes = True


class BillDetail(BillOut):
    items: List[BillItemOut] = []


class BillList(BaseModel):
    items: List[BillOut]
    total: int


class BillSaved(BaseModel):
    """Result of saving a draft"""
    bill_id: UUID
    bill_number: str
    total_amount: Decimal
    items_saved: bool = Field(..., description="False only when the header was kept without its items")
    message: str = "Bill saved successfully!"


# ===== DRAFTS =====

class DraftItemOut(BaseModel):
    part_id: UUID
    part_number: str
    part_name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class StagedPartOut(BaseModel):
    id: UUID
    part_number: str
    part_name: str
    selling_price: Decimal


class DraftOut(BaseModel):
    id: UUID
    bill_number: str
    bill_date: str
    customer_name: str
    items: List[DraftItemOut]
    selected_part: Optional[StagedPartOut] = None
    subtotal: Decimal
    total_quantity: int


class DraftUpdate(BaseModel):
    customer_name: str = Field("", max_length=200)


class DraftSelection(BaseModel):
    part_id: UUID


class DraftItemAdd(BaseModel):
    """
    Add a line to the draft. Without part_id the staged selection is used.
    unit_price overrides the part's selling price when given.
    """
    part_id: Optional[UUID] = None
    quantity: int = 1
    unit_price: Optional[Decimal] = Field(None, max_digits=12, decimal_places=3)


class PrintQueued(BaseModel):
    task_id: str
    bill_number: str
    message: str = "Invoice sent to printer"
