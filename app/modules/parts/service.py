"""
Inventory store: CRUD over the spare_parts table plus the dashboard figures.
"""

from fastapi import HTTPException, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from decimal import Decimal
from typing import List, Optional
from uuid import UUID
import logging

from app.common.exceptions import StoreError
from app.modules.parts.models import SparePart
from app.modules.parts.schemas import PartCreate, PartUpdate, InventorySummary
from app.modules.parts import search

logger = logging.getLogger(__name__)


class PartService:
    """Inventory Store Client backed by SQLAlchemy"""

    def __init__(self, db: Session):
        self.db = db

    def list_parts(self, search_term: Optional[str] = None) -> List[SparePart]:
        """All parts, optionally filtered like the inventory table."""
        try:
            parts = self.db.query(SparePart).order_by(SparePart.part_number, SparePart.part_name).all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to load parts: {e}")
            raise StoreError("Failed to load parts")
        return search.filter_table(parts, search_term)

    def search_options(self, term: Optional[str]) -> List[SparePart]:
        """Incremental-search dropdown: at most ten matches on number or name."""
        return search.search_dropdown(self.list_parts(), term)

    def low_stock_parts(self) -> List[SparePart]:
        return [part for part in self.list_parts() if search.is_low_stock(part)]

    def get_part(self, part_id: UUID) -> SparePart:
        try:
            part = self.db.query(SparePart).filter(SparePart.id == part_id).first()
        except SQLAlchemyError as e:
            logger.error(f"Failed to load part {part_id}: {e}")
            raise StoreError("Failed to load part")

        if not part:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Spare part not found"
            )
        return part

    def insert_part(self, data: PartCreate) -> SparePart:
        try:
            part = SparePart(**data.model_dump())
            self.db.add(part)
            self.db.commit()
            self.db.refresh(part)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to add part {data.part_number}: {e}")
            raise StoreError(f"Failed to add spare part: {e.__class__.__name__}")

        logger.info(f"Spare part added: {part.part_number} ({part.id})")
        return part

    def update_part(self, part_id: UUID, patch: PartUpdate) -> SparePart:
        """Apply the fields present in the patch. Last write wins."""
        part = self.get_part(part_id)
        update_dict = patch.model_dump(exclude_unset=True)

        for field, value in update_dict.items():
            # Required columns cannot be cleared through a patch
            if value is None and field in ("part_number", "part_name", "category", "selling_price",
                                           "stock_quantity", "min_stock", "unit"):
                continue
            setattr(part, field, value)

        try:
            self.db.commit()
            self.db.refresh(part)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to update part {part_id}: {e}")
            raise StoreError("Failed to update spare part")

        logger.info(f"Spare part updated: {part.part_number} ({', '.join(sorted(update_dict)) or 'no fields'})")
        return part

    def delete_part(self, part_id: UUID) -> None:
        part = self.get_part(part_id)
        try:
            self.db.delete(part)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to delete part {part_id}: {e}")
            raise StoreError("Failed to delete part")

        logger.info(f"Spare part deleted: {part_id}")

    def summary(self) -> InventorySummary:
        """Totals shown on the dashboard cards."""
        parts = self.list_parts()

        inventory_value = sum(
            (part.stock_quantity * (part.cost_price or Decimal("0")) for part in parts),
            Decimal("0")
        )
        if parts:
            average_price = sum((part.selling_price for part in parts), Decimal("0")) / len(parts)
        else:
            average_price = Decimal("0")

        return InventorySummary(
            total_parts=len(parts),
            inventory_value=inventory_value,
            average_selling_price=average_price,
            low_stock_count=sum(1 for part in parts if search.is_low_stock(part)),
        )
