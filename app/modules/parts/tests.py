"""
Tests for the spare parts module

Covers:
- Part search (dropdown vs table filtering) and the low-stock predicate
- PartService CRUD and the dashboard summary
- Part number and price validation
- The /parts endpoints
"""

import pytest
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4
from fastapi import HTTPException

from app.common.validators import validate_part_number, normalize_part_number, format_money
from app.modules.parts import search
from app.modules.parts.models import SparePart
from app.modules.parts.schemas import PartCreate, PartUpdate
from app.modules.parts.service import PartService


# ===== FIXTURES =====

def part(number, name, category="Engine", stock=10, min_stock=5):
    return SimpleNamespace(
        part_number=number, part_name=name, category=category,
        stock_quantity=stock, min_stock=min_stock
    )


@pytest.fixture
def sample_part_data():
    return {
        "part_number": "bg-2002",
        "part_name": "Ring",
        "category": "Ring",
        "manufacturer": "TP",
        "selling_price": "85",
        "cost_price": "50",
        "stock_quantity": 20,
        "min_stock": 5,
        "location": "Shop",
    }


# ===== SEARCH =====

class TestPartSearch:

    def test_dropdown_is_empty_until_something_is_typed(self):
        parts = [part("bg-2002", "Ring")]
        assert search.search_dropdown(parts, "") == []
        assert search.search_dropdown(parts, "   ") == []

    def test_dropdown_returns_at_most_ten(self):
        parts = [part(f"bg-{n}", f"Ring {n}") for n in range(15)]
        results = search.search_dropdown(parts, "ring")

        assert len(results) == search.DROPDOWN_LIMIT
        assert results == parts[:10]

    def test_dropdown_matches_number_or_name_case_insensitively(self):
        ring = part("BG-2002", "Ring")
        piston = part("bh-2002", "Piston 2021")
        assert search.search_dropdown([ring, piston], "bg") == [ring]
        assert search.search_dropdown([ring, piston], "PISTON") == [piston]
        assert search.search_dropdown([ring, piston], "2002") == [ring, piston]

    def test_dropdown_ignores_category(self):
        assert search.search_dropdown([part("x-1", "Pad", category="Brake System")], "brake") == []

    def test_table_filter_includes_category_and_has_no_limit(self):
        parts = [part(f"p-{n}", f"Pad {n}", category="Brake System") for n in range(12)]
        assert len(search.filter_table(parts, "brake")) == 12

    def test_table_filter_without_term_keeps_everything(self):
        parts = [part("a", "A"), part("b", "B")]
        assert search.filter_table(parts, None) == parts

    @pytest.mark.parametrize("stock,minimum,expected", [(4, 5, True), (5, 5, False), (6, 5, False), (0, 0, False)])
    def test_low_stock_is_strictly_below_minimum(self, stock, minimum, expected):
        assert search.is_low_stock(part("a", "A", stock=stock, min_stock=minimum)) is expected


class TestPartValidators:

    @pytest.mark.parametrize("value", ["bg-2002", "BH 2002", "12.40/A", "9"])
    def test_valid_part_numbers(self, value):
        assert validate_part_number(value)

    @pytest.mark.parametrize("value", ["", "   ", "-lead", "bg#2002", "x" * 65])
    def test_invalid_part_numbers(self, value):
        assert not validate_part_number(value)

    def test_normalize_collapses_whitespace(self):
        assert normalize_part_number("  bh   2002 ") == "bh 2002"

    def test_format_money(self):
        assert format_money(Decimal("85"), 2) == "85.00"
        assert format_money(Decimal("1.2345"), 3) == "1.235"


# ===== SERVICE =====

class TestPartService:

    def test_insert_and_get(self, db_session, sample_part_data):
        service = PartService(db_session)
        created = service.insert_part(PartCreate(**sample_part_data))

        fetched = service.get_part(created.id)
        assert fetched.part_number == "bg-2002"
        assert fetched.selling_price == Decimal("85")
        assert fetched.unit == "piece"

    def test_unknown_part_is_not_found(self, db_session):
        with pytest.raises(HTTPException) as exc_info:
            PartService(db_session).get_part(uuid4())
        assert exc_info.value.status_code == 404

    def test_list_is_ordered_by_part_number(self, db_session, make_part):
        make_part(part_number="bh-2002")
        make_part(part_number="ab-1")
        make_part(part_number="bg-2002")

        numbers = [p.part_number for p in PartService(db_session).list_parts()]
        assert numbers == ["ab-1", "bg-2002", "bh-2002"]

    def test_update_writes_only_sent_fields(self, db_session, make_part):
        existing = make_part(part_name="Ring", stock_quantity=20)
        updated = PartService(db_session).update_part(existing.id, PartUpdate(stock_quantity=3))

        assert updated.stock_quantity == 3
        assert updated.part_name == "Ring"

    def test_update_cannot_clear_required_fields(self, db_session, make_part):
        existing = make_part(part_name="Ring")
        updated = PartService(db_session).update_part(existing.id, PartUpdate(part_name=None, location=""))

        assert updated.part_name == "Ring"
        assert updated.location is None

    def test_delete(self, db_session, make_part):
        part_id = make_part().id
        PartService(db_session).delete_part(part_id)
        assert db_session.query(SparePart).count() == 0

    def test_summary(self, db_session, make_part):
        make_part(stock_quantity=20, min_stock=5, cost_price=Decimal("50"), selling_price=Decimal("85"))
        make_part(stock_quantity=3, min_stock=10, cost_price=Decimal("70"), selling_price=Decimal("95"))
        make_part(stock_quantity=4, min_stock=1, cost_price=None, selling_price=Decimal("30"))

        summary = PartService(db_session).summary()

        assert summary.total_parts == 3
        assert summary.inventory_value == Decimal("1210")
        assert summary.average_selling_price == Decimal("70")
        assert summary.low_stock_count == 1

    def test_summary_of_empty_inventory(self, db_session):
        summary = PartService(db_session).summary()
        assert summary.total_parts == 0
        assert summary.inventory_value == Decimal("0")
        assert summary.average_selling_price == Decimal("0")


# ===== HTTP =====

class TestPartEndpoints:

    def test_requires_a_session(self, client):
        response = client.get("/parts/")
        assert response.status_code == 401
        assert response.json() == {"message": "Not authenticated"}

    def test_crud(self, client, auth_headers, sample_part_data):
        response = client.post("/parts/", json=sample_part_data, headers=auth_headers)
        assert response.status_code == 201
        created = response.json()
        assert created["is_low_stock"] is False

        response = client.patch(f"/parts/{created['id']}", json={"stock_quantity": 2}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["stock_quantity"] == 2
        assert response.json()["is_low_stock"] is True

        response = client.get(f"/parts/{created['id']}", headers=auth_headers)
        assert response.json()["part_name"] == "Ring"

        assert client.delete(f"/parts/{created['id']}", headers=auth_headers).status_code == 204
        response = client.get(f"/parts/{created['id']}", headers=auth_headers)
        assert response.status_code == 404
        assert response.json() == {"message": "Spare part not found"}

    @pytest.mark.parametrize("field", ["part_name", "category", "unit"])
    def test_update_rejects_blank_required_text(self, client, auth_headers, make_part, field):
        existing = make_part(part_name="Ring", category="Ring")
        part_id = str(existing.id)

        response = client.patch(f"/parts/{part_id}", json={field: "   "}, headers=auth_headers)

        assert response.status_code == 422
        stored = client.get(f"/parts/{part_id}", headers=auth_headers).json()
        assert stored[field].strip() != ""

    @pytest.mark.parametrize("field,value", [
        ("selling_price", "0"),
        ("stock_quantity", -1),
        ("part_number", "bg#2002"),
        ("part_name", "   "),
    ])
    def test_invalid_part_is_rejected(self, client, auth_headers, sample_part_data, field, value):
        sample_part_data[field] = value
        response = client.post("/parts/", json=sample_part_data, headers=auth_headers)
        assert response.status_code == 422

    def test_list_with_search(self, client, auth_headers, make_part):
        make_part(part_number="bg-2002", part_name="Ring", category="Ring")
        make_part(part_number="bh-2002", part_name="Piston 2021", category="Piston")

        response = client.get("/parts/", params={"search": "piston"}, headers=auth_headers)

        assert response.json()["total"] == 1
        assert response.json()["items"][0]["part_number"] == "bh-2002"

    def test_dropdown_search(self, client, auth_headers, make_part):
        for n in range(12):
            make_part(part_number=f"bg-{3000 + n}", part_name=f"Ring {n}")

        response = client.get("/parts/search", params={"q": "bg-3"}, headers=auth_headers)

        assert response.status_code == 200
        assert len(response.json()) == 10

    def test_low_stock_and_summary(self, client, auth_headers, make_part):
        make_part(part_number="bg-2002", stock_quantity=20, min_stock=5)
        make_part(part_number="bh-2002", stock_quantity=2, min_stock=10)

        response = client.get("/parts/low-stock", headers=auth_headers)
        assert [p["part_number"] for p in response.json()] == ["bh-2002"]

        response = client.get("/parts/summary", headers=auth_headers)
        assert response.json()["total_parts"] == 2
        assert response.json()["low_stock_count"] == 1
