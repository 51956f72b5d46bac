"""
SQLAlchemy models for saved customer bills

- Bill: invoice header (number, customer, total)
- BillItem: persisted invoice line, keyed by bill_id

Header and items are written by two separate inserts and deleted
items-first, so there is no ORM cascade between them.
"""

from app.database.database import Base
from sqlalchemy import Column, String, Integer, Numeric, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from app.common.mixins import IdMixin


class Bill(Base, IdMixin):
    """Saved invoice header"""
    __tablename__ = "bills"

    bill_number = Column(String(32), nullable=False, index=True)  # Not unique, see BillNumberGenerator
    customer_name = Column(String(200), nullable=False, default="N/A")
    total_amount = Column(Numeric(12, 3), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)

    items = relationship(
        "BillItem",
        back_populates="bill",
        order_by="BillItem.position",
        passive_deletes="all",
    )


class BillItem(Base, IdMixin):
    """Saved invoice line; a snapshot of the part at billing time"""
    __tablename__ = "bill_items"

    bill_id = Column(Uuid(as_uuid=True), ForeignKey("bills.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    part_number = Column(String(64), nullable=False)
    part_name = Column(String(200), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 3), nullable=False)
    total = Column(Numeric(12, 3), nullable=False)

    bill = relationship("Bill", back_populates="items")
