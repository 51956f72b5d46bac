"""
Spare parts inventory

- SparePart: stocked part with pricing, quantity and minimum stock
- PartService: store client (list, insert, update, delete) plus dashboard figures
- search: number/name/category filtering for dropdowns and tables

Low stock is derived (stock_quantity < min_stock), never stored.
"""

from .models import SparePart
from .service import PartService
from .router import parts_router

__all__ = ["SparePart", "PartService", "parts_router"]
