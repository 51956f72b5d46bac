from pydantic import BaseModel, Field, field_validator
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import datetime

from app.common.validators import validate_part_number, normalize_part_number, blank_to_none


class PartBase(BaseModel):
    part_number: str = Field(..., min_length=1, max_length=64, description="Manufacturer or shop part number")
    part_name: str = Field(..., min_length=1, max_length=200)
    category: str = Field(..., min_length=1, max_length=100, description="e.g. Engine, Brake System")
    manufacturer: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    selling_price: Decimal = Field(..., gt=0, max_digits=12, decimal_places=3)
    cost_price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=3)
    stock_quantity: int = Field(0, ge=0)
    min_stock: int = Field(0, ge=0)
    unit: str = Field("piece", min_length=1, max_length=20)
    location: Optional[str] = Field(None, max_length=100)

    @field_validator('part_number')
    @classmethod
    def validate_part_number(cls, v):
        if not validate_part_number(v):
            raise ValueError('Part number may only contain letters, digits, dashes, dots, slashes and spaces')
        return normalize_part_number(v)

    @field_validator('part_name', 'category', 'unit')
    @classmethod
    def strip_required(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Field cannot be blank')
        return v

    @field_validator('manufacturer', 'description', 'location')
    @classmethod
    def strip_optional(cls, v):
        return blank_to_none(v)


class PartCreate(PartBase):
    pass


class PartUpdate(BaseModel):
    """Partial update; only the fields sent are written."""
    part_number: Optional[str] = Field(None, min_length=1, max_length=64)
    part_name: Optional[str] = Field(None, min_length=1, max_length=200)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    manufacturer: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    selling_price: Optional[Decimal] = Field(None, gt=0, max_digits=12, decimal_places=3)
    cost_price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=3)
    stock_quantity: Optional[int] = Field(None, ge=0)
    min_stock: Optional[int] = Field(None, ge=0)
    unit: Optional[str] = Field(None, min_length=1, max_length=20)
    location: Optional[str] = Field(None, max_length=100)

    @field_validator('part_number')
    @classmethod
    def validate_part_number(cls, v):
        if v is None:
            return v
        if not validate_part_number(v):
            raise ValueError('Part number may only contain letters, digits, dashes, dots, slashes and spaces')
        return normalize_part_number(v)

    @field_validator('part_name', 'category', 'unit')
    @classmethod
    def strip_required(cls, v):
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError('Field cannot be blank')
        return v

    @field_validator('manufacturer', 'description', 'location')
    @classmethod
    def strip_optional(cls, v):
        return blank_to_none(v)


class PartOut(BaseModel):
    id: UUID
    part_number: str
    part_name: str
    category: str
    manufacturer: Optional[str] = None
    description: Optional[str] = None
    selling_price: Decimal
    cost_price: Optional[Decimal] = None
    stock_quantity: int
    min_stock: int
    unit: str
    location: Optional[str] = None
    is_low_stock: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PartOption(BaseModel):
    """Row of the incremental-search dropdown"""
    id: UUID
    part_number: str
    part_name: str
    selling_price: Decimal
    stock_quantity: int
    unit: str

    class Config:
        from_attributes = True


class PartList(BaseModel):
    items: List[PartOut]
    total: int


class InventorySummary(BaseModel):
    total_parts: int
    inventory_value: Decimal = Field(..., description="Sum of stock_quantity * cost_price")
    average_selling_price: Decimal
    low_stock_count: int
