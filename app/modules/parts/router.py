from fastapi import APIRouter, status, Query
from typing import List, Optional
from uuid import UUID

from app.dependencies.dbDependecies import db_dependency
from app.modules.parts.service import PartService
from app.modules.parts.schemas import (
    PartCreate, PartUpdate, PartOut, PartOption, PartList, InventorySummary
)

parts_router = APIRouter(prefix="/parts", tags=["Spare Parts"])


@parts_router.get("/", response_model=PartList)
def list_parts(
    db: db_dependency,
    search: Optional[str] = Query(None, description="Match on part number, name or category")
):
    """
    List the inventory.

    With `search`, keeps the parts whose number, name or category contains
    the term (case-insensitive).
    """
    parts = PartService(db).list_parts(search)
    return PartList(items=[PartOut.model_validate(part) for part in parts], total=len(parts))


@parts_router.get("/search", response_model=List[PartOption])
def search_parts(
    db: db_dependency,
    q: str = Query("", description="Part number or name fragment")
):
    """Dropdown search used while composing a bill (first ten matches)."""
    return PartService(db).search_options(q)


@parts_router.get("/low-stock", response_model=List[PartOut])
def list_low_stock(db: db_dependency):
    """Parts whose stock is below their minimum"""
    return PartService(db).low_stock_parts()


@parts_router.get("/summary", response_model=InventorySummary)
def inventory_summary(db: db_dependency):
    return PartService(db).summary()


@parts_router.post("/", response_model=PartOut, status_code=status.HTTP_201_CREATED)
def create_part(data: PartCreate, db: db_dependency):
    return PartService(db).insert_part(data)


@parts_router.get("/{part_id}", response_model=PartOut)
def get_part(part_id: UUID, db: db_dependency):
    return PartService(db).get_part(part_id)


@parts_router.patch("/{part_id}", response_model=PartOut)
def update_part(part_id: UUID, data: PartUpdate, db: db_dependency):
    return PartService(db).update_part(part_id, data)


@parts_router.delete("/{part_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_part(part_id: UUID, db: db_dependency):
    PartService(db).delete_part(part_id)
