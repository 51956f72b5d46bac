"""
Tests for invoice rendering and printing
"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from types import SimpleNamespace
from kombu.exceptions import OperationalError

from app.core.config import settings
from app.modules.bills import router as bills_routes
from app.modules.bills.composer import BILL_DATE_FORMAT
from app.modules.invoices.printing import PrintError, PrintSurface, SpoolPrintSurface, print_document
from app.modules.invoices.renderer import InvoiceRenderer, STORE
from app.modules.invoices.schemas import InvoiceDocument, InvoiceLayout, InvoiceLine, local_time
from app.modules.invoices.tasks import print_invoice_task


# ===== FIXTURES =====

@pytest.fixture
def renderer():
    return InvoiceRenderer()


@pytest.fixture
def document():
    return InvoiceDocument(
        bill_number="INV-123456",
        bill_date="05/03/2024, 14:07:09",
        customer_name="Garage Noor",
        items=[
            InvoiceLine(part_number="bg-2002", description="Ring", quantity=2,
                        unit_price=Decimal("85"), amount=Decimal("170")),
            InvoiceLine(part_number="bh-2002", description="Piston 2021", quantity=1,
                        unit_price=Decimal("90"), amount=Decimal("90")),
        ],
        subtotal=Decimal("260"),
    )


class RecordingSurface(PrintSurface):
    def __init__(self):
        self.events = []

    def load(self, document, name):
        self.events.append(("load", name))
        return Path(f"/spool/{name}.html")

    def trigger(self, loaded):
        self.events.append(("trigger", loaded.name))


# ===== RENDERING =====

class TestInvoiceRenderer:

    def test_rendering_is_deterministic(self, renderer, document):
        assert renderer.render(document) == renderer.render(document)

    def test_standard_layout(self, renderer, document):
        html = renderer.render(document, InvoiceLayout.STANDARD)

        assert "Invoice #: INV-123456" in html
        assert "Messers: Garage Noor" in html
        assert "Branch: Main" in html
        assert "Date: 05/03/2024, 14:07:09" in html
        assert "170.00" in html
        assert "260.00" in html
        assert "Total Qty: 3" in html
        assert "<title>Invoice_INV-123456</title>" in html

    def test_credit_layout_uses_three_decimals(self, renderer, document):
        html = renderer.render(document, InvoiceLayout.CREDIT)

        assert "Branch: HEAD OFFICE" in html
        assert "260.000" in html
        assert "85.000" in html

    def test_columns_and_totals(self, renderer, document):
        html = renderer.render(document)
        for heading in ["S.No", "Part No", "Description", "Qty", "Unit Price", "Amount",
                        "Subtotal:", "Discount:", "Net Amount:"]:
            assert heading in html
        assert html.index("bg-2002") < html.index("bh-2002")

    def test_store_header(self, renderer, document):
        html = renderer.render(document)
        assert STORE.name in html
        assert STORE.document_title in html
        assert STORE.address in html

    def test_blank_customer_prints_na(self, renderer, document):
        document.customer_name = ""
        assert "Messers: N/A" in renderer.render(document)

    def test_customer_name_is_escaped(self, renderer, document):
        document.customer_name = "<b>Ali</b>"
        html = renderer.render(document)
        assert "<b>Ali</b>" not in html
        assert "&lt;b&gt;Ali&lt;/b&gt;" in html


# ===== PRINTING =====

class TestPrinting:

    def test_trigger_runs_only_after_load(self):
        surface = RecordingSurface()
        loaded = print_document(surface, "<html></html>", "Invoice_INV-1")

        assert surface.events == [("load", "Invoice_INV-1"), ("trigger", "Invoice_INV-1.html")]
        assert loaded == Path("/spool/Invoice_INV-1.html")

    def test_spool_surface_writes_the_whole_document(self, tmp_path):
        surface = SpoolPrintSurface(str(tmp_path / "spool"))
        loaded = surface.load("<html>invoice</html>", "Invoice_INV-000001")

        assert loaded == tmp_path / "spool" / "Invoice_INV-000001.html"
        assert loaded.read_text(encoding="utf-8") == "<html>invoice</html>"
        assert list(loaded.parent.glob("*.part")) == []

    def test_spool_file_name_is_sanitized(self, tmp_path):
        loaded = SpoolPrintSurface(str(tmp_path)).load("x", "../Invoice 1")
        assert loaded.parent == tmp_path
        assert loaded.name == "___Invoice_1.html"

    def test_failing_print_command(self, tmp_path):
        surface = SpoolPrintSurface(str(tmp_path), command="/nonexistent/print-command")
        with pytest.raises(PrintError):
            print_document(surface, "<html></html>", "Invoice_INV-1")

    def test_print_task_spools_the_invoice(self, spool_dir):
        result = print_invoice_task.delay("INV-000042", "<html>42</html>").get()

        assert result["status"] == "success"
        assert (spool_dir / "Invoice_INV-000042.html").read_text(encoding="utf-8") == "<html>42</html>"

    def test_print_task_reports_failures(self, spool_dir, monkeypatch):
        monkeypatch.setattr(settings, "PRINT_COMMAND", "/nonexistent/print-command")

        result = print_invoice_task.delay("INV-000043", "<html></html>").get()

        assert result["status"] == "failed"
        assert "Print command failed" in result["error"]


# ===== HTTP =====

class TestInvoiceEndpoints:

    def start_draft(self, client, auth_headers, make_part):
        part_id = str(make_part(part_number="bg-2002", part_name="Ring", selling_price=Decimal("85")).id)
        draft_id = client.post("/bills/drafts", headers=auth_headers).json()["id"]
        client.patch(f"/bills/drafts/{draft_id}", json={"customer_name": "Garage Noor"}, headers=auth_headers)
        client.post(f"/bills/drafts/{draft_id}/items", json={"part_id": part_id, "quantity": 2}, headers=auth_headers)
        return draft_id

    def test_preview_layouts(self, client, auth_headers, make_part):
        draft_id = self.start_draft(client, auth_headers, make_part)

        standard = client.get(f"/bills/drafts/{draft_id}/invoice", headers=auth_headers)
        credit = client.get(f"/bills/drafts/{draft_id}/invoice", params={"layout": "credit"}, headers=auth_headers)

        assert standard.status_code == 200
        assert "Branch: Main" in standard.text
        assert "170.00" in standard.text
        assert "Branch: HEAD OFFICE" in credit.text
        assert "170.000" in credit.text

    def test_unknown_layout_is_rejected(self, client, auth_headers, make_part):
        draft_id = self.start_draft(client, auth_headers, make_part)
        response = client.get(f"/bills/drafts/{draft_id}/invoice", params={"layout": "fancy"}, headers=auth_headers)
        assert response.status_code == 422

    def test_print_queues_the_invoice(self, client, auth_headers, make_part, spool_dir):
        draft_id = self.start_draft(client, auth_headers, make_part)
        bill_number = client.get(f"/bills/drafts/{draft_id}", headers=auth_headers).json()["bill_number"]

        response = client.post(f"/bills/drafts/{draft_id}/print", headers=auth_headers)

        assert response.status_code == 202
        assert response.json()["bill_number"] == bill_number
        spooled = spool_dir / f"Invoice_{bill_number}.html"
        assert "Messers: Garage Noor" in spooled.read_text(encoding="utf-8")

    def test_empty_bill_is_not_printed(self, client, auth_headers, spool_dir):
        draft_id = client.post("/bills/drafts", headers=auth_headers).json()["id"]

        response = client.post(f"/bills/drafts/{draft_id}/print", headers=auth_headers)

        assert response.status_code == 400
        assert response.json() == {"message": "No items to print."}
        assert list(spool_dir.iterdir()) == []

    def test_broker_down_is_a_single_message(self, client, auth_headers, make_part, monkeypatch):
        def broker_down(*args, **kwargs):
            raise OperationalError("Error 111 connecting to redis:6379. Connection refused.")

        monkeypatch.setattr(bills_routes, "print_invoice_task", SimpleNamespace(delay=broker_down))
        draft_id = self.start_draft(client, auth_headers, make_part)

        response = client.post(f"/bills/drafts/{draft_id}/print", headers=auth_headers)

        assert response.status_code == 502
        assert response.json() == {"message": "Printer is not available. Please try again."}


# ===== SAVED BILL DOCUMENTS =====

class TestSavedBillDocument:

    def saved_bill(self, created_at):
        bill = SimpleNamespace(bill_number="INV-000007", customer_name="N/A", created_at=created_at)
        items = [SimpleNamespace(part_number="bg-2002", part_name="Ring", quantity=2,
                                 unit_price=Decimal("85"), total=Decimal("170"))]
        return bill, items

    def test_date_is_shown_in_local_time(self):
        created_at = datetime(2024, 3, 5, 11, 7, 9, tzinfo=timezone.utc)
        document = InvoiceDocument.from_saved_bill(*self.saved_bill(created_at), BILL_DATE_FORMAT)

        assert document.bill_date == created_at.astimezone().strftime(BILL_DATE_FORMAT)
        assert document.subtotal == Decimal("170")

    def test_naive_timestamps_are_utc(self):
        aware = datetime(2024, 3, 5, 11, 7, 9, tzinfo=timezone.utc)
        naive = aware.replace(tzinfo=None)

        assert local_time(naive) == local_time(aware)
        assert InvoiceDocument.from_saved_bill(*self.saved_bill(naive), BILL_DATE_FORMAT).bill_date == \
            aware.astimezone().strftime(BILL_DATE_FORMAT)
