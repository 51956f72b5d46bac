"""
FastAPI routers for billing

- Drafts: start, edit (customer, selection, items), save, cancel, preview, print
- Saved bills: list (newest first), detail, invoice page, delete
"""

from fastapi import APIRouter, Depends, status, Query
from fastapi.responses import HTMLResponse
from typing import Annotated
from uuid import UUID
import logging

from celery.exceptions import CeleryError
from kombu.exceptions import OperationalError

from app.common.exceptions import ValidationError, StoreError
from app.dependencies.dbDependecies import db_dependency
from app.modules.bills.composer import BillComposer, BILL_DATE_FORMAT
from app.modules.bills.drafts import DraftRegistry, get_draft_registry
from app.modules.bills.store import BillStore
from app.modules.bills.schemas import (
    BillList, BillOut, BillDetail, BillItemOut, BillSaved,
    DraftOut, DraftItemOut, StagedPartOut, DraftUpdate, DraftSelection, DraftItemAdd,
    PrintQueued
)
from app.modules.invoices.renderer import invoice_renderer
from app.modules.invoices.schemas import InvoiceDocument, InvoiceLayout
from app.modules.invoices.tasks import print_invoice_task
from app.modules.parts.service import PartService

logger = logging.getLogger(__name__)

bills_router = APIRouter(prefix="/bills", tags=["Billing"])

registry_dependency = Annotated[DraftRegistry, Depends(get_draft_registry)]


def draft_out(composer: BillComposer) -> DraftOut:
    draft = composer.draft
    staged = composer.selected_part
    return DraftOut(
        id=draft.id,
        bill_number=draft.bill_number,
        bill_date=draft.bill_date,
        customer_name=draft.customer_name,
        items=[
            DraftItemOut(
                part_id=item.part_id,
                part_number=item.part_number,
                part_name=item.part_name,
                quantity=item.quantity,
                unit_price=item.unit_price,
                line_total=item.line_total,
            )
            for item in draft.items
        ],
        selected_part=StagedPartOut(
            id=staged.id,
            part_number=staged.part_number,
            part_name=staged.part_name,
            selling_price=staged.selling_price,
        ) if staged is not None else None,
        subtotal=composer.subtotal(),
        total_quantity=composer.total_quantity(),
    )


def draft_document(composer: BillComposer) -> InvoiceDocument:
    return InvoiceDocument.from_draft(composer.draft, composer.subtotal())


# ===== DRAFTS =====

@bills_router.post("/drafts", response_model=DraftOut, status_code=status.HTTP_201_CREATED)
def start_draft(registry: registry_dependency):
    """Start a new bill with a generated number and the current date"""
    composer = registry.start()
    return draft_out(composer)


@bills_router.get("/drafts/{draft_id}", response_model=DraftOut)
def get_draft(draft_id: UUID, registry: registry_dependency):
    return draft_out(registry.get(draft_id))


@bills_router.patch("/drafts/{draft_id}", response_model=DraftOut)
def update_draft(draft_id: UUID, data: DraftUpdate, registry: registry_dependency):
    composer = registry.get(draft_id)
    composer.set_customer(data.customer_name)
    return draft_out(composer)


@bills_router.put("/drafts/{draft_id}/selection", response_model=DraftOut)
def select_part(draft_id: UUID, data: DraftSelection, db: db_dependency, registry: registry_dependency):
    """Stage a part for the next added item"""
    composer = registry.get(draft_id)
    composer.select_part(PartService(db).get_part(data.part_id))
    return draft_out(composer)


@bills_router.post("/drafts/{draft_id}/items", response_model=DraftOut, status_code=status.HTTP_201_CREATED)
def add_item(draft_id: UUID, data: DraftItemAdd, db: db_dependency, registry: registry_dependency):
    """
    Add a line for `part_id`, or for the staged part when omitted.
    The same part cannot be added twice to one bill.
    """
    composer = registry.get(draft_id)
    part = PartService(db).get_part(data.part_id) if data.part_id else None
    composer.add_item(part, data.quantity, data.unit_price)
    return draft_out(composer)


@bills_router.delete("/drafts/{draft_id}/items/{part_id}", response_model=DraftOut)
def remove_item(draft_id: UUID, part_id: UUID, registry: registry_dependency):
    composer = registry.get(draft_id)
    composer.remove_item(part_id)
    return draft_out(composer)


@bills_router.post("/drafts/{draft_id}/finalize", response_model=BillSaved, status_code=status.HTTP_201_CREATED)
def finalize_draft(draft_id: UUID, db: db_dependency, registry: registry_dependency):
    """Save the bill header and its items; the draft is closed on success"""
    composer = registry.get(draft_id)
    result = composer.finalize(BillStore(db))
    registry.discard(draft_id)
    return result


@bills_router.delete("/drafts/{draft_id}", status_code=status.HTTP_204_NO_CONTENT)
def cancel_draft(draft_id: UUID, registry: registry_dependency):
    composer = registry.get(draft_id)
    composer.cancel()
    registry.discard(draft_id)


@bills_router.get("/drafts/{draft_id}/invoice", response_class=HTMLResponse)
def preview_draft_invoice(
    draft_id: UUID,
    registry: registry_dependency,
    layout: InvoiceLayout = Query(InvoiceLayout.STANDARD)
):
    composer = registry.get(draft_id)
    return HTMLResponse(invoice_renderer.render(draft_document(composer), layout))


@bills_router.post("/drafts/{draft_id}/print", response_model=PrintQueued, status_code=status.HTTP_202_ACCEPTED)
def print_draft_invoice(
    draft_id: UUID,
    registry: registry_dependency,
    layout: InvoiceLayout = Query(InvoiceLayout.STANDARD)
):
    """
    Queue the invoice for printing and return immediately.
    Nothing is queued for an empty bill.
    """
    composer = registry.get(draft_id)
    if not composer.draft.items:
        raise ValidationError("No items to print.")

    html = invoice_renderer.render(draft_document(composer), layout)
    try:
        result = print_invoice_task.delay(composer.draft.bill_number, html)
    except (OperationalError, CeleryError) as e:
        logger.error(f"Could not queue invoice {composer.draft.bill_number} for printing: {e}")
        raise StoreError("Printer is not available. Please try again.")
    logger.info(f"Invoice {composer.draft.bill_number} queued for printing (task {result.id})")
    return PrintQueued(task_id=result.id, bill_number=composer.draft.bill_number)


# ===== SAVED BILLS =====

@bills_router.get("/", response_model=BillList)
def list_bills(db: db_dependency):
    """Saved bills, newest first"""
    bills = BillStore(db).list_bills()
    return BillList(items=[BillOut.model_validate(bill) for bill in bills], total=len(bills))


@bills_router.get("/{bill_id}", response_model=BillDetail)
def get_bill(bill_id: UUID, db: db_dependency):
    store = BillStore(db)
    bill = store.get_bill(bill_id)
    items = store.list_bill_items(bill_id)
    return BillDetail(
        **BillOut.model_validate(bill).model_dump(),
        items=[BillItemOut.model_validate(item) for item in items]
    )


@bills_router.get("/{bill_id}/invoice", response_class=HTMLResponse)
def saved_bill_invoice(
    bill_id: UUID,
    db: db_dependency,
    layout: InvoiceLayout = Query(InvoiceLayout.STANDARD)
):
    store = BillStore(db)
    bill = store.get_bill(bill_id)
    document = InvoiceDocument.from_saved_bill(bill, store.list_bill_items(bill_id), BILL_DATE_FORMAT)
    return HTMLResponse(invoice_renderer.render(document, layout))


@bills_router.delete("/{bill_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_bill(bill_id: UUID, db: db_dependency):
    """Delete a saved bill and its items"""
    BillStore(db).delete_bill(bill_id)
