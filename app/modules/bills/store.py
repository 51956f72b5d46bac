"""
Bill store: persistence of bill headers and their line items.

Every write commits on its own. A bill is saved with two dependent inserts
(header, then items) and deleted with two deletes (items, then header); the
composer decides what to do when the second insert fails.
"""

from fastapi import HTTPException, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from typing import List
from uuid import UUID
import logging

from app.common.exceptions import StoreError
from app.modules.bills.models import Bill, BillItem
from app.modules.bills.schemas import BillHeaderCreate, BillItemCreate

logger = logging.getLogger(__name__)


class BillStore:
    """Bill Store Client backed by SQLAlchemy"""

    def __init__(self, db: Session):
        self.db = db

    def insert_bill(self, header: BillHeaderCreate) -> UUID:
        """Insert a bill header and return its id"""
        try:
            bill = Bill(**header.model_dump())
            self.db.add(bill)
            self.db.commit()
            self.db.refresh(bill)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to insert bill {header.bill_number}: {e}")
            raise StoreError("Error saving bill. Please try again.")

        return bill.id

    def insert_bill_items(self, bill_id: UUID, items: List[BillItemCreate]) -> None:
        """Bulk insert the line items of a bill"""
        try:
            self.db.add_all([BillItem(bill_id=bill_id, **item.model_dump()) for item in items])
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to insert {len(items)} items for bill {bill_id}: {e}")
            raise StoreError("Error saving bill items.")

    def list_bills(self) -> List[Bill]:
        """Saved bills, newest first"""
        try:
            return self.db.query(Bill).order_by(Bill.created_at.desc()).all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to load saved bills: {e}")
            raise StoreError("Failed to load saved bills")

    def get_bill(self, bill_id: UUID) -> Bill:
        try:
            bill = self.db.query(Bill).filter(Bill.id == bill_id).first()
        except SQLAlchemyError as e:
            logger.error(f"Failed to load bill {bill_id}: {e}")
            raise StoreError("Failed to load bill")

        if not bill:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Bill not found"
            )
        return bill

    def list_bill_items(self, bill_id: UUID) -> List[BillItem]:
        try:
            return (
                self.db.query(BillItem)
                .filter(BillItem.bill_id == bill_id)
                .order_by(BillItem.position)
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to load items of bill {bill_id}: {e}")
            raise StoreError("Failed to load bill items")

    def delete_bill(self, bill_id: UUID) -> None:
        """Delete a saved bill: its items first, then the header"""
        self.get_bill(bill_id)
        self.discard_bill(bill_id)
        logger.info(f"Bill deleted: {bill_id}")

    def discard_bill(self, bill_id: UUID) -> None:
        """Items-then-header delete without the existence check"""
        try:
            self.db.query(BillItem).filter(BillItem.bill_id == bill_id).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to delete items of bill {bill_id}: {e}")
            raise StoreError("Error deleting bill.")

        try:
            self.db.query(Bill).filter(Bill.id == bill_id).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to delete bill header {bill_id}: {e}")
            raise StoreError("Error deleting bill.")
        self.db.expire_all()
