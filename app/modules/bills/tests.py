"""
Tests for the billing module

Covers:
- Bill numbers and draft lifecycle
- Item rules (selection, quantity, price override, duplicates) and totals
- Saving: empty drafts, header failures, item failures under both save policies
- Bill store ordering and deletion
- The draft and saved-bill HTTP endpoints
"""

import pytest
import threading
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4
from fastapi import HTTPException

from app.common.exceptions import ValidationError, StoreError, PartialCommitWarning
from app.modules.bills.composer import (
    BillComposer, BillNumberGenerator, SAVE_POLICY_COMPENSATE, SAVE_POLICY_WARN
)
from app.modules.bills.drafts import DraftRegistry
from app.modules.bills.models import Bill, BillItem
from app.modules.bills.schemas import BillHeaderCreate, BillItemCreate
from app.modules.bills.store import BillStore


# ===== FIXTURES =====

class FakeStore:
    """Records store calls; fails where told to"""

    def __init__(self, fail_header=False, fail_items=False):
        self.fail_header = fail_header
        self.fail_items = fail_items
        self.calls = []
        self.headers = {}
        self.items = {}

    def insert_bill(self, header):
        self.calls.append("insert_bill")
        if self.fail_header:
            raise StoreError("Error saving bill. Please try again.")
        bill_id = uuid4()
        self.headers[bill_id] = header
        return bill_id

    def insert_bill_items(self, bill_id, items):
        self.calls.append("insert_bill_items")
        if self.fail_items:
            raise StoreError("Error saving bill items.")
        self.items[bill_id] = items

    def discard_bill(self, bill_id):
        self.calls.append("discard_bill")
        self.headers.pop(bill_id, None)
        self.items.pop(bill_id, None)


def stock_part(price, number="bg-2002", name="Ring"):
    return SimpleNamespace(id=uuid4(), part_number=number, part_name=name, selling_price=Decimal(price))


@pytest.fixture
def composer():
    numbers = BillNumberGenerator(clock=lambda: 1700000000.0)
    composer = BillComposer(
        numbers=numbers,
        now=lambda: datetime(2024, 3, 5, 14, 7, 9),
        save_policy=SAVE_POLICY_COMPENSATE
    )
    composer.start_draft()
    return composer


@pytest.fixture
def ring():
    return stock_part("85.00", "bg-2002", "Ring")


@pytest.fixture
def piston():
    return stock_part("90.00", "bh-2002", "Piston 2021")


# ===== BILL NUMBERS =====

class TestBillNumberGenerator:

    def test_format_is_inv_and_six_digits(self):
        number = BillNumberGenerator(clock=lambda: 1700000123.0).next()
        assert number.startswith("INV-")
        assert len(number) == 10
        assert number[4:].isdigit()

    def test_numbers_do_not_repeat_within_the_same_millisecond(self):
        numbers = BillNumberGenerator(clock=lambda: 1700000000.0)
        assert [numbers.next() for _ in range(3)] == ["INV-000000", "INV-000001", "INV-000002"]


# ===== DRAFT EDITING =====

class TestDraftLifecycle:

    def test_start_draft_sets_number_and_date(self, composer):
        assert composer.draft.bill_number == "INV-000000"
        assert composer.draft.bill_date == "05/03/2024, 14:07:09"
        assert composer.draft.items == []
        assert composer.draft.customer_name == ""

    def test_start_draft_replaces_the_previous_one(self, composer, ring):
        composer.add_item(ring, 1)
        composer.start_draft()
        assert composer.draft.items == []
        assert composer.draft.bill_number == "INV-000001"

    def test_cancel_discards_the_draft(self, composer, ring):
        composer.add_item(ring, 1)
        composer.cancel()
        assert composer.draft is None
        assert composer.subtotal() == Decimal("0")

    def test_editing_without_a_draft_fails(self, ring):
        composer = BillComposer(save_policy=SAVE_POLICY_COMPENSATE)
        with pytest.raises(ValidationError):
            composer.add_item(ring, 1)
        with pytest.raises(ValidationError):
            composer.set_customer("Ali")

    def test_customer_name_is_trimmed(self, composer):
        composer.set_customer("  Garage Noor  ")
        assert composer.draft.customer_name == "Garage Noor"


class TestDraftItems:

    def test_two_parts_total_two_sixty(self, composer, ring, piston):
        composer.add_item(ring, 2)
        composer.add_item(piston, 1)

        assert composer.subtotal() == Decimal("260.00")
        assert composer.total_quantity() == 3

    def test_line_total_is_quantity_times_unit_price(self, composer, ring):
        item = composer.add_item(ring, 3)
        assert item.line_total == Decimal("255.00")

    def test_zero_override_price_is_rejected(self, composer, ring):
        with pytest.raises(ValidationError) as exc_info:
            composer.add_item(ring, 1, Decimal("0"))

        assert exc_info.value.message == "Enter a valid selling price"
        assert composer.draft.items == []

    def test_override_price_replaces_the_selling_price(self, composer, ring):
        item = composer.add_item(ring, 2, Decimal("80.5"))
        assert item.unit_price == Decimal("80.5")
        assert composer.subtotal() == Decimal("161.0")

    def test_missing_override_uses_the_selling_price(self, composer, ring):
        item = composer.add_item(ring, 1, None)
        assert item.unit_price == Decimal("85.00")

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_non_positive_quantity_is_rejected(self, composer, ring, quantity):
        with pytest.raises(ValidationError) as exc_info:
            composer.add_item(ring, quantity)
        assert exc_info.value.message == "Enter valid quantity"

    def test_no_part_selected(self, composer):
        with pytest.raises(ValidationError) as exc_info:
            composer.add_item(None, 1)
        assert exc_info.value.message == "Please select a part"

    def test_staged_part_is_used_and_then_cleared(self, composer, ring):
        composer.select_part(ring)
        item = composer.add_item(quantity=2)

        assert item.part_id == ring.id
        assert composer.selected_part is None

    def test_same_part_cannot_be_added_twice(self, composer, ring):
        composer.add_item(ring, 1)
        with pytest.raises(ValidationError) as exc_info:
            composer.add_item(ring, 4)

        assert exc_info.value.message == "This item is already in the bill"
        assert len(composer.draft.items) == 1
        assert composer.draft.items[0].quantity == 1

    def test_remove_item(self, composer, ring, piston):
        composer.add_item(ring, 2)
        composer.add_item(piston, 1)
        composer.remove_item(ring.id)

        assert [item.part_id for item in composer.draft.items] == [piston.id]
        assert composer.subtotal() == Decimal("90.00")

    def test_remove_unknown_part_is_a_no_op(self, composer, ring):
        composer.add_item(ring, 2)
        composer.remove_item(uuid4())
        assert len(composer.draft.items) == 1

    def test_subtotal_stays_exact_after_adds_and_removes(self, composer):
        parts = [stock_part("0.1", f"p-{n}", f"Washer {n}") for n in range(3)]
        for part in parts:
            composer.add_item(part, 1)
        composer.remove_item(parts[1].id)
        composer.add_item(parts[1], 1)

        assert composer.subtotal() == Decimal("0.3")
        assert composer.subtotal() == sum(item.line_total for item in composer.draft.items)


# ===== SAVING =====

class TestFinalize:

    def test_empty_draft_is_rejected_without_store_calls(self, composer):
        store = FakeStore()
        with pytest.raises(ValidationError) as exc_info:
            composer.finalize(store)

        assert exc_info.value.message == "Add at least one item before saving the bill"
        assert store.calls == []

    def test_successful_save(self, composer, ring, piston):
        composer.add_item(ring, 2)
        composer.add_item(piston, 1)
        store = FakeStore()

        result = composer.finalize(store)

        assert store.calls == ["insert_bill", "insert_bill_items"]
        assert result.items_saved is True
        assert result.message == "Bill saved successfully!"
        assert result.total_amount == Decimal("260.00")
        assert composer.draft is None

        header = store.headers[result.bill_id]
        assert header.customer_name == "N/A"
        assert header.bill_number == "INV-000000"
        items = store.items[result.bill_id]
        assert [item.position for item in items] == [0, 1]
        assert [item.total for item in items] == [Decimal("170.00"), Decimal("90.00")]

    def test_header_failure_leaves_the_draft(self, composer, ring):
        composer.add_item(ring, 1)
        store = FakeStore(fail_header=True)

        with pytest.raises(StoreError):
            composer.finalize(store)

        assert store.calls == ["insert_bill"]
        assert composer.draft is not None
        assert len(composer.draft.items) == 1

    def test_item_failure_under_warn_policy_reports_success(self, composer, ring):
        composer.save_policy = SAVE_POLICY_WARN
        composer.add_item(ring, 1)
        store = FakeStore(fail_items=True)

        with pytest.warns(PartialCommitWarning):
            result = composer.finalize(store)

        assert result.message == "Bill saved successfully!"
        assert result.items_saved is False
        assert result.bill_id in store.headers
        assert store.items == {}
        assert composer.draft is None

    def test_item_failure_under_compensate_policy_removes_the_header(self, composer, ring):
        composer.add_item(ring, 1)
        store = FakeStore(fail_items=True)

        with pytest.raises(StoreError) as exc_info:
            composer.finalize(store)

        assert exc_info.value.message == "Error saving bill. Please try again."
        assert store.calls == ["insert_bill", "insert_bill_items", "discard_bill"]
        assert store.headers == {}
        assert composer.draft is not None

    def test_second_save_while_saving_is_rejected(self, composer, ring):
        composer.add_item(ring, 1)
        errors = []

        class ReentrantStore(FakeStore):
            def insert_bill(self, header):
                try:
                    composer.finalize(self)
                except ValidationError as e:
                    errors.append(e.message)
                return super().insert_bill(header)

        store = ReentrantStore()
        result = composer.finalize(store)

        assert errors == ["This bill is already being saved"]
        assert result.items_saved is True
        assert store.calls == ["insert_bill", "insert_bill_items"]

    def test_saved_draft_cannot_be_saved_again(self, composer, ring):
        composer.add_item(ring, 1)
        store = FakeStore()
        composer.finalize(store)

        with pytest.raises(ValidationError) as exc_info:
            composer.finalize(store)

        assert exc_info.value.message == "No bill in progress. Start a new bill first"
        assert len(store.headers) == 1

    def test_concurrent_save_writes_the_bill_once(self, composer, ring, piston):
        composer.add_item(ring, 1)
        entered = threading.Event()
        proceed = threading.Event()

        class SlowStore(FakeStore):
            def insert_bill(self, header):
                entered.set()
                proceed.wait(5)
                return super().insert_bill(header)

        store = SlowStore()
        results = []
        worker = threading.Thread(target=lambda: results.append(composer.finalize(store)))
        worker.start()
        assert entered.wait(5)

        # While the first save runs, nothing else may touch the draft
        with pytest.raises(ValidationError) as exc_info:
            composer.finalize(store)
        assert exc_info.value.message == "This bill is already being saved"
        with pytest.raises(ValidationError):
            composer.add_item(piston, 1)
        with pytest.raises(ValidationError):
            composer.remove_item(ring.id)
        with pytest.raises(ValidationError):
            composer.cancel()

        proceed.set()
        worker.join(5)

        # The lock is released only after the draft is gone
        with pytest.raises(ValidationError):
            composer.finalize(store)
        assert len(results) == 1
        assert len(store.headers) == 1
        assert [item.part_number for item in store.items[results[0].bill_id]] == ["bg-2002"]


# ===== OPEN DRAFTS =====

class TestDraftRegistry:

    def test_idle_drafts_expire(self):
        now = [1000.0]
        registry = DraftRegistry(ttl_minutes=30, clock=lambda: now[0])
        stale = registry.start().draft.id

        now[0] += 31 * 60
        fresh = registry.start().draft.id

        assert len(registry) == 1
        assert registry.get(fresh).draft.id == fresh
        with pytest.raises(HTTPException) as exc_info:
            registry.get(stale)
        assert exc_info.value.status_code == 404

    def test_using_a_draft_keeps_it_open(self):
        now = [1000.0]
        registry = DraftRegistry(ttl_minutes=30, clock=lambda: now[0])
        draft_id = registry.start().draft.id

        for _ in range(3):
            now[0] += 20 * 60
            registry.get(draft_id)

        assert registry.purge_expired() == 0
        assert len(registry) == 1

    def test_draft_being_saved_is_kept(self):
        now = [1000.0]
        registry = DraftRegistry(ttl_minutes=30, clock=lambda: now[0])
        composer = registry.start()

        composer._saving.acquire()
        try:
            now[0] += 60 * 60
            assert registry.purge_expired() == 0
        finally:
            composer._saving.release()

        assert registry.purge_expired() == 1


# ===== BILL STORE =====

class TestBillStore:

    def save_bill(self, store, number, created_at, lines):
        header = BillHeaderCreate(
            bill_number=number,
            customer_name="Garage Noor",
            total_amount=sum((q * p for q, p in lines), Decimal("0")),
            created_at=created_at,
        )
        bill_id = store.insert_bill(header)
        store.insert_bill_items(bill_id, [
            BillItemCreate(
                position=position, part_number=f"bg-{position}", part_name="Ring",
                quantity=quantity, unit_price=price, total=quantity * price
            )
            for position, (quantity, price) in enumerate(lines)
        ])
        return bill_id

    def test_bills_are_listed_newest_first(self, db_session):
        store = BillStore(db_session)
        now = datetime.now(timezone.utc)
        older = self.save_bill(store, "INV-000001", now - timedelta(minutes=5), [(1, Decimal("10"))])
        newer = self.save_bill(store, "INV-000002", now, [(1, Decimal("20"))])

        assert [bill.id for bill in store.list_bills()] == [newer, older]

    def test_items_keep_their_order(self, db_session):
        store = BillStore(db_session)
        bill_id = self.save_bill(
            store, "INV-000003", datetime.now(timezone.utc),
            [(2, Decimal("85")), (1, Decimal("90")), (4, Decimal("12.5"))]
        )

        items = store.list_bill_items(bill_id)
        assert [item.position for item in items] == [0, 1, 2]
        assert [item.total for item in items] == [Decimal("170"), Decimal("90"), Decimal("50")]

    def test_delete_removes_items_and_header(self, db_session):
        store = BillStore(db_session)
        bill_id = self.save_bill(store, "INV-000004", datetime.now(timezone.utc), [(1, Decimal("10"))])

        store.delete_bill(bill_id)

        assert db_session.query(Bill).count() == 0
        assert db_session.query(BillItem).count() == 0

    def test_unknown_bill_is_not_found(self, db_session):
        with pytest.raises(HTTPException) as exc_info:
            BillStore(db_session).get_bill(uuid4())
        assert exc_info.value.status_code == 404


# ===== HTTP =====

class TestDraftEndpoints:

    def test_draft_requires_a_session(self, client):
        response = client.post("/bills/drafts")
        assert response.status_code == 401

    def test_compose_and_save_a_bill(self, client, auth_headers, make_part):
        ring = make_part(part_number="bg-2002", part_name="Ring", selling_price=Decimal("85"))
        piston = make_part(part_number="bh-2002", part_name="Piston 2021", selling_price=Decimal("90"))
        ring_id, piston_id = str(ring.id), str(piston.id)

        response = client.post("/bills/drafts", headers=auth_headers)
        assert response.status_code == 201
        draft = response.json()
        assert draft["bill_number"].startswith("INV-")
        draft_id = draft["id"]

        response = client.patch(f"/bills/drafts/{draft_id}", json={"customer_name": "Garage Noor"}, headers=auth_headers)
        assert response.json()["customer_name"] == "Garage Noor"

        response = client.put(f"/bills/drafts/{draft_id}/selection", json={"part_id": ring_id}, headers=auth_headers)
        assert response.json()["selected_part"]["part_number"] == "bg-2002"

        response = client.post(f"/bills/drafts/{draft_id}/items", json={"quantity": 2}, headers=auth_headers)
        assert response.status_code == 201
        assert response.json()["selected_part"] is None

        response = client.post(
            f"/bills/drafts/{draft_id}/items",
            json={"part_id": piston_id, "quantity": 1},
            headers=auth_headers
        )
        body = response.json()
        assert Decimal(str(body["subtotal"])) == Decimal("260")
        assert body["total_quantity"] == 3

        response = client.post(f"/bills/drafts/{draft_id}/finalize", headers=auth_headers)
        assert response.status_code == 201
        saved = response.json()
        assert saved["items_saved"] is True
        assert saved["message"] == "Bill saved successfully!"

        # The draft is closed once saved
        assert client.get(f"/bills/drafts/{draft_id}", headers=auth_headers).status_code == 404

        response = client.get("/bills/", headers=auth_headers)
        assert response.json()["total"] == 1

        response = client.get(f"/bills/{saved['bill_id']}", headers=auth_headers)
        detail = response.json()
        assert detail["customer_name"] == "Garage Noor"
        assert [item["part_number"] for item in detail["items"]] == ["bg-2002", "bh-2002"]

    def test_duplicate_part_is_a_bad_request(self, client, auth_headers, make_part):
        part_id = str(make_part().id)
        draft_id = client.post("/bills/drafts", headers=auth_headers).json()["id"]

        client.post(f"/bills/drafts/{draft_id}/items", json={"part_id": part_id}, headers=auth_headers)
        response = client.post(f"/bills/drafts/{draft_id}/items", json={"part_id": part_id}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json() == {"message": "This item is already in the bill"}

    def test_zero_price_override_is_a_bad_request(self, client, auth_headers, make_part):
        part_id = str(make_part().id)
        draft_id = client.post("/bills/drafts", headers=auth_headers).json()["id"]

        response = client.post(
            f"/bills/drafts/{draft_id}/items",
            json={"part_id": part_id, "quantity": 1, "unit_price": "0"},
            headers=auth_headers
        )

        assert response.status_code == 400
        assert response.json() == {"message": "Enter a valid selling price"}

    def test_price_override_beyond_stored_precision_is_rejected(self, client, auth_headers, make_part):
        part_id = str(make_part().id)
        draft_id = client.post("/bills/drafts", headers=auth_headers).json()["id"]

        response = client.post(
            f"/bills/drafts/{draft_id}/items",
            json={"part_id": part_id, "quantity": 2, "unit_price": "1.0004"},
            headers=auth_headers
        )

        assert response.status_code == 422
        assert client.get(f"/bills/drafts/{draft_id}", headers=auth_headers).json()["items"] == []

    def test_saved_total_matches_saved_items(self, client, auth_headers, make_part):
        washer = str(make_part(part_number="wa-1", selling_price=Decimal("1.001")).id)
        ring = str(make_part(part_number="bg-2002", selling_price=Decimal("85")).id)
        draft_id = client.post("/bills/drafts", headers=auth_headers).json()["id"]
        client.post(f"/bills/drafts/{draft_id}/items", json={"part_id": washer, "quantity": 3}, headers=auth_headers)
        client.post(
            f"/bills/drafts/{draft_id}/items",
            json={"part_id": ring, "quantity": 2, "unit_price": "80.125"},
            headers=auth_headers
        )
        subtotal = Decimal(str(client.get(f"/bills/drafts/{draft_id}", headers=auth_headers).json()["subtotal"]))

        saved = client.post(f"/bills/drafts/{draft_id}/finalize", headers=auth_headers).json()
        detail = client.get(f"/bills/{saved['bill_id']}", headers=auth_headers).json()

        items_total = sum(Decimal(str(item["total"])) for item in detail["items"])
        assert subtotal == Decimal("163.253")
        assert Decimal(str(detail["total_amount"])) == subtotal
        assert items_total == subtotal

    def test_add_without_selection(self, client, auth_headers):
        draft_id = client.post("/bills/drafts", headers=auth_headers).json()["id"]
        response = client.post(f"/bills/drafts/{draft_id}/items", json={"quantity": 1}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json() == {"message": "Please select a part"}

    def test_empty_draft_cannot_be_saved(self, client, auth_headers):
        draft_id = client.post("/bills/drafts", headers=auth_headers).json()["id"]
        response = client.post(f"/bills/drafts/{draft_id}/finalize", headers=auth_headers)

        assert response.status_code == 400
        assert response.json() == {"message": "Add at least one item before saving the bill"}

    def test_remove_item(self, client, auth_headers, make_part):
        part_id = str(make_part().id)
        draft_id = client.post("/bills/drafts", headers=auth_headers).json()["id"]
        client.post(f"/bills/drafts/{draft_id}/items", json={"part_id": part_id, "quantity": 2}, headers=auth_headers)

        response = client.delete(f"/bills/drafts/{draft_id}/items/{part_id}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["items"] == []
        assert Decimal(str(response.json()["subtotal"])) == Decimal("0")

    def test_cancel_draft(self, client, auth_headers):
        draft_id = client.post("/bills/drafts", headers=auth_headers).json()["id"]

        assert client.delete(f"/bills/drafts/{draft_id}", headers=auth_headers).status_code == 204
        assert client.get(f"/bills/drafts/{draft_id}", headers=auth_headers).status_code == 404

    def test_item_failure_keeps_nothing_and_the_draft(self, client, auth_headers, make_part, monkeypatch):
        def failing_insert(self, bill_id, items):
            raise StoreError("Error saving bill items.")

        monkeypatch.setattr(BillStore, "insert_bill_items", failing_insert)
        part_id = str(make_part().id)
        draft_id = client.post("/bills/drafts", headers=auth_headers).json()["id"]
        client.post(f"/bills/drafts/{draft_id}/items", json={"part_id": part_id}, headers=auth_headers)

        response = client.post(f"/bills/drafts/{draft_id}/finalize", headers=auth_headers)

        assert response.status_code == 502
        assert response.json() == {"message": "Error saving bill. Please try again."}
        assert client.get("/bills/", headers=auth_headers).json()["total"] == 0
        assert client.get(f"/bills/drafts/{draft_id}", headers=auth_headers).status_code == 200


class TestSavedBillEndpoints:

    def save_one(self, client, auth_headers, part_id):
        draft_id = client.post("/bills/drafts", headers=auth_headers).json()["id"]
        client.post(f"/bills/drafts/{draft_id}/items", json={"part_id": part_id, "quantity": 2}, headers=auth_headers)
        return client.post(f"/bills/drafts/{draft_id}/finalize", headers=auth_headers).json()

    def test_saved_bill_invoice(self, client, auth_headers, make_part):
        saved = self.save_one(client, auth_headers, str(make_part(part_number="bg-2002").id))

        response = client.get(f"/bills/{saved['bill_id']}/invoice", headers=auth_headers)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert saved["bill_number"] in response.text
        assert "bg-2002" in response.text
        assert "170.00" in response.text

    def test_delete_bill(self, client, auth_headers, make_part):
        saved = self.save_one(client, auth_headers, str(make_part().id))

        response = client.delete(f"/bills/{saved['bill_id']}", headers=auth_headers)
        assert response.status_code == 204

        response = client.get(f"/bills/{saved['bill_id']}", headers=auth_headers)
        assert response.status_code == 404
        assert response.json() == {"message": "Bill not found"}

    def test_unknown_draft(self, client, auth_headers):
        response = client.get(f"/bills/drafts/{uuid4()}", headers=auth_headers)
        assert response.status_code == 404
        assert response.json() == {"message": "Draft bill not found"}
