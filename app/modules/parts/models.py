"""
SQLAlchemy model for the spare parts inventory
"""

from app.database.database import Base
from sqlalchemy import Column, String, Integer, Numeric, Text
from app.common.mixins import IdMixin, TimestampMixin


class SparePart(Base, IdMixin, TimestampMixin):
    """
    A stocked spare part.

    Low stock (stock_quantity < min_stock) is derived on read, never stored.
    """
    __tablename__ = "spare_parts"

    part_number = Column(String(64), nullable=False, index=True)
    part_name = Column(String(200), nullable=False, index=True)
    category = Column(String(100), nullable=False, index=True)
    manufacturer = Column(String(100), nullable=True)
    description = Column(Text, nullable=True)

    selling_price = Column(Numeric(12, 3), nullable=False)
    cost_price = Column(Numeric(12, 3), nullable=True)

    stock_quantity = Column(Integer, nullable=False, default=0)
    min_stock = Column(Integer, nullable=False, default=0)
    unit = Column(String(20), nullable=False, default="piece")
    location = Column(String(100), nullable=True)

    @property
    def is_low_stock(self) -> bool:
        return self.stock_quantity < self.min_stock

    def __repr__(self):
        return f"<SparePart {self.part_number} {self.part_name!r}>"
