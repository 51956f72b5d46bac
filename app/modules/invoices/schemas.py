"""
Input of the invoice renderer: a finalized draft or a saved bill,
flattened to what the printed page shows.
"""

from pydantic import BaseModel, Field
from decimal import Decimal
from datetime import datetime, timezone
from enum import Enum
from typing import List


def local_time(moment: datetime) -> datetime:
    """Stored timestamps in the server's local time, as draft dates are. Naive values are UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone()


class InvoiceLayout(str, Enum):
    STANDARD = "standard"   # 2 decimals, branch "Main"
    CREDIT = "credit"       # 3 decimals, branch "HEAD OFFICE"


class InvoiceLine(BaseModel):
    part_number: str
    description: str
    quantity: int
    unit_price: Decimal
    amount: Decimal


class InvoiceDocument(BaseModel):
    bill_number: str
    bill_date: str
    customer_name: str = ""
    items: List[InvoiceLine] = Field(default_factory=list)
    subtotal: Decimal = Decimal("0")

    @property
    def total_quantity(self) -> int:
        return sum(line.quantity for line in self.items)

    @classmethod
    def from_draft(cls, draft, subtotal: Decimal) -> "InvoiceDocument":
        return cls(
            bill_number=draft.bill_number,
            bill_date=draft.bill_date,
            customer_name=draft.customer_name,
            items=[
                InvoiceLine(
                    part_number=item.part_number,
                    description=item.part_name,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    amount=item.line_total,
                )
                for item in draft.items
            ],
            subtotal=subtotal,
        )

    @classmethod
    def from_saved_bill(cls, bill, items, date_format: str) -> "InvoiceDocument":
        """Rebuild the printable document of a stored bill and its items."""
        return cls(
            bill_number=bill.bill_number,
            bill_date=local_time(bill.created_at).strftime(date_format),
            customer_name=bill.customer_name,
            items=[
                InvoiceLine(
                    part_number=item.part_number,
                    description=item.part_name,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    amount=item.total,
                )
                for item in items
            ],
            subtotal=sum((item.total for item in items), Decimal("0")),
        )
