"""
Bill composer: the in-memory builder of one in-progress invoice.

The composer owns a BillDraft from start_draft() until it is saved or
cancelled. Items are snapshots of the selected parts; money is Decimal so the
subtotal is an exact sum of the line totals however often items come and go.

Saving issues two dependent store calls (header, then items). What happens
when the second one fails is decided by the save policy:

- compensate: delete the orphaned header and fail with one StoreError
- warn: keep the header, log, issue PartialCommitWarning and report success
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, List, Optional
from uuid import UUID, uuid4
import logging
import threading
import time
import warnings

from app.common.exceptions import ValidationError, StoreError, PartialCommitWarning
from app.core.config import settings
from app.modules.bills.schemas import BillHeaderCreate, BillItemCreate, BillSaved

logger = logging.getLogger(__name__)

BILL_DATE_FORMAT = "%d/%m/%Y, %H:%M:%S"

SAVE_POLICY_COMPENSATE = "compensate"
SAVE_POLICY_WARN = "warn"


def as_money(value) -> Decimal:
    """Decimal from Decimal, int, str or float (floats go through str)."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class BillNumberGenerator:
    """
    "INV-" followed by the last six digits of a millisecond timestamp.

    The timestamp never repeats within a process (a second request in the
    same millisecond gets the next one). Numbers are still not globally
    unique: the suffix wraps every ~16 minutes and other processes keep their
    own clocks.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._last_ms = 0
        self._lock = threading.Lock()

    def next(self) -> str:
        with self._lock:
            now_ms = int(self._clock() * 1000)
            if now_ms <= self._last_ms:
                now_ms = self._last_ms + 1
            self._last_ms = now_ms
        return "INV-" + str(now_ms)[-6:]


bill_numbers = BillNumberGenerator()


@dataclass
class DraftItem:
    part_id: UUID
    part_number: str
    part_name: str
    quantity: int
    unit_price: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.quantity * self.unit_price


@dataclass
class BillDraft:
    bill_number: str
    bill_date: str
    customer_name: str = ""
    items: List[DraftItem] = field(default_factory=list)
    id: UUID = field(default_factory=uuid4)

    def find(self, part_id: UUID) -> Optional[DraftItem]:
        for item in self.items:
            if item.part_id == part_id:
                return item
        return None


class BillComposer:
    """Accumulates selected parts into a draft bill and saves it."""

    def __init__(
        self,
        numbers: Optional[BillNumberGenerator] = None,
        now: Callable[[], datetime] = datetime.now,
        save_policy: Optional[str] = None
    ):
        self.numbers = numbers or bill_numbers
        self.now = now
        self.save_policy = save_policy or settings.BILL_SAVE_POLICY
        self.draft: Optional[BillDraft] = None
        self.selected_part = None
        self._saving = threading.Lock()

    # ----- lifecycle -----

    def start_draft(self) -> BillDraft:
        """Begin a new bill, dropping whatever was in progress."""
        if self.is_saving:
            raise ValidationError("This bill is already being saved")
        self.draft = BillDraft(
            bill_number=self.numbers.next(),
            bill_date=self.now().strftime(BILL_DATE_FORMAT),
        )
        self.selected_part = None
        logger.debug(f"Draft {self.draft.bill_number} started")
        return self.draft

    def cancel(self) -> None:
        """Discard the draft without asking."""
        if self.is_saving:
            raise ValidationError("This bill is already being saved")
        if self.draft is not None:
            logger.debug(f"Draft {self.draft.bill_number} cancelled")
        self.draft = None
        self.selected_part = None

    @property
    def is_saving(self) -> bool:
        return self._saving.locked()

    def _require_draft(self) -> BillDraft:
        if self.draft is None:
            raise ValidationError("No bill in progress. Start a new bill first")
        return self.draft

    def _require_editable(self) -> BillDraft:
        """The draft, unless a save of it is running."""
        if self.is_saving:
            raise ValidationError("This bill is already being saved")
        return self._require_draft()

    # ----- editing -----

    def set_customer(self, customer_name: str) -> None:
        self._require_editable().customer_name = (customer_name or "").strip()

    def select_part(self, part) -> None:
        """Stage a part for the next add_item(); the draft is unchanged."""
        self._require_editable()
        self.selected_part = part

    def add_item(self, part=None, quantity: int = 1, override_price: Optional[Decimal] = None) -> DraftItem:
        """
        Append a line for `part` (or the staged part).

        The unit price is `override_price` when given, otherwise the part's
        selling price. A part can appear only once per bill; adding it again
        is rejected rather than merged.
        """
        draft = self._require_editable()
        part = part if part is not None else self.selected_part

        if part is None:
            raise ValidationError("Please select a part")
        if quantity is None or quantity <= 0:
            raise ValidationError("Enter valid quantity")
        if override_price is not None and as_money(override_price) <= 0:
            raise ValidationError("Enter a valid selling price")
        if draft.find(part.id) is not None:
            raise ValidationError("This item is already in the bill")

        unit_price = as_money(override_price if override_price is not None else part.selling_price)
        item = DraftItem(
            part_id=part.id,
            part_number=part.part_number,
            part_name=part.part_name,
            quantity=int(quantity),
            unit_price=unit_price,
        )
        draft.items.append(item)
        self.selected_part = None
        return item

    def remove_item(self, part_id: UUID) -> None:
        """Drop the line for `part_id`; unknown parts are ignored."""
        draft = self._require_editable()
        draft.items = [item for item in draft.items if item.part_id != part_id]

    # ----- totals -----

    def subtotal(self) -> Decimal:
        if self.draft is None:
            return Decimal("0")
        return sum((item.line_total for item in self.draft.items), Decimal("0"))

    def total_quantity(self) -> int:
        if self.draft is None:
            return 0
        return sum(item.quantity for item in self.draft.items)

    # ----- saving -----

    def finalize(self, store) -> BillSaved:
        """
        Persist the draft through `store` (insert_bill, insert_bill_items,
        discard_bill). Only one save per draft runs at a time. On success the
        draft is discarded before the lock is released, so a later call finds
        no bill; on failure it stays so the user can retry.
        """
        if not self._saving.acquire(blocking=False):
            raise ValidationError("This bill is already being saved")
        try:
            draft = self._require_draft()
            if not draft.items:
                raise ValidationError("Add at least one item before saving the bill")

            result = self._persist(store, draft)
            self.draft = None
            self.selected_part = None
            return result
        finally:
            self._saving.release()

    def _persist(self, store, draft: BillDraft) -> BillSaved:
        subtotal = self.subtotal()
        header = BillHeaderCreate(
            bill_number=draft.bill_number,
            customer_name=draft.customer_name or "N/A",
            total_amount=subtotal,
            created_at=datetime.now(timezone.utc),
        )
        items = [
            BillItemCreate(
                position=position,
                part_number=item.part_number,
                part_name=item.part_name,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total=item.line_total,
            )
            for position, item in enumerate(draft.items)
        ]

        # A failed header insert propagates: nothing was written
        bill_id = store.insert_bill(header)

        try:
            store.insert_bill_items(bill_id, items)
        except StoreError as e:
            if self.save_policy == SAVE_POLICY_WARN:
                logger.warning(f"Bill {draft.bill_number} saved without its items: {e.message}")
                warnings.warn(
                    f"Bill {draft.bill_number} ({bill_id}) was saved without its items: {e.message}",
                    PartialCommitWarning,
                    stacklevel=3,
                )
                return BillSaved(
                    bill_id=bill_id,
                    bill_number=draft.bill_number,
                    total_amount=subtotal,
                    items_saved=False,
                )

            logger.warning(f"Items of bill {draft.bill_number} failed, removing header {bill_id}")
            try:
                store.discard_bill(bill_id)
            except StoreError:
                logger.error(f"Could not remove orphaned bill header {bill_id}")
            raise StoreError("Error saving bill. Please try again.")

        logger.info(f"Bill {draft.bill_number} saved ({len(items)} items, total {subtotal})")
        return BillSaved(
            bill_id=bill_id,
            bill_number=draft.bill_number,
            total_amount=subtotal,
            items_saved=True,
        )
