"""
Billing module - customer invoices against the parts inventory

ENTITIES:
- Bill: saved invoice header (bill_number, customer_name, total_amount, created_at)
- BillItem: saved invoice line, a snapshot of part number/name, quantity and price
- BillDraft: in-memory invoice being composed; never stored as such

DRAFT FLOW:
1. start_draft -> "INV-" + 6 timestamp digits, current date, no items
2. select_part / add_item -> one line per part, price = override or selling price
3. remove_item -> silent when the part is not on the bill
4. finalize -> header insert, then items insert; draft discarded on success
5. cancel -> draft discarded

SAVE POLICY (BILL_SAVE_POLICY):
- compensate: items failing removes the header again, the save fails as a whole
- warn: the header is kept, a PartialCommitWarning is logged, the save reports success

DELETION:
- items first, then the header
"""

from .models import Bill, BillItem
from .composer import BillComposer, BillDraft, DraftItem, BillNumberGenerator
from .store import BillStore
from .drafts import DraftRegistry, draft_registry
from .router import bills_router

__all__ = [
    # Models
    "Bill", "BillItem",

    # Composer
    "BillComposer", "BillDraft", "DraftItem", "BillNumberGenerator",
    "DraftRegistry", "draft_registry",

    # Store
    "BillStore",

    # Router
    "bills_router"
]
