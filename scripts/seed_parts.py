"""
Seed script: populate the inventory with the shop's demo parts.

What it creates:
- bg-2002 Ring (TP) and bh-2002 Piston 2021 (Teikin), as shown on the dashboard.
- Optionally N extra random parts across the usual categories, some of them
  below their minimum stock so the low-stock list has something to show.

Parts whose number already exists are left untouched, so the script can be
run repeatedly:
    python scripts/seed_parts.py --extra 50

Note: This is intended for development environments only.
"""

# Add project root to sys.path so `app.*` imports work even if CWD changes
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import argparse
import random
from decimal import Decimal

from app.database.database import SessionLocal, Base, engine
from app.modules.parts.models import SparePart
import app.modules.bills.models  # noqa: F401  (tables for --create-tables)


DEMO_PARTS = [
    {
        "part_number": "bg-2002",
        "part_name": "Ring",
        "category": "Ring",
        "manufacturer": "TP",
        "stock_quantity": 20,
        "min_stock": 5,
        "cost_price": Decimal("50"),
        "selling_price": Decimal("85"),
        "location": "Shop",
    },
    {
        "part_number": "bh-2002",
        "part_name": "Piston 2021",
        "category": "Piston",
        "manufacturer": "Teikin",
        "stock_quantity": 100,
        "min_stock": 10,
        "cost_price": Decimal("70"),
        "selling_price": Decimal("90"),
        "location": "Warehouse",
    },
]

CATEGORIES = {
    "Engine": ["Gasket Set", "Timing Belt", "Oil Pump", "Valve Cover"],
    "Brake System": ["Brake Pad", "Brake Disc", "Brake Shoe"],
    "Suspension": ["Shock Absorber", "Ball Joint", "Tie Rod End", "Stabilizer Link"],
    "Filters": ["Oil Filter", "Air Filter", "Fuel Filter"],
}
MANUFACTURERS = ["TP", "Teikin", "NPR", "Riken", "Aisin", "Denso"]
LOCATIONS = ["Shop", "Warehouse"]


def pick(seq):
    return random.choice(seq)


def create_part(db, data: dict) -> bool:
    existing = db.query(SparePart).filter(SparePart.part_number == data["part_number"]).first()
    if existing:
        return False
    db.add(SparePart(**data))
    db.commit()
    return True


def random_part(index: int) -> dict:
    category = pick(list(CATEGORIES))
    cost = Decimal(random.randint(5, 400))
    return {
        "part_number": f"{category[:2].lower()}-{3000 + index}",
        "part_name": pick(CATEGORIES[category]),
        "category": category,
        "manufacturer": pick(MANUFACTURERS),
        "stock_quantity": random.randint(0, 60),
        "min_stock": random.randint(2, 15),
        "cost_price": cost,
        "selling_price": (cost * Decimal("1.35")).quantize(Decimal("0.001")),
        "location": pick(LOCATIONS),
    }


def main():
    parser = argparse.ArgumentParser(description="Seed demo spare parts")
    parser.add_argument("--extra", type=int, default=0, help="Random parts to add besides the demo ones")
    parser.add_argument("--create-tables", action="store_true", help="Create missing tables first")
    args = parser.parse_args()

    if args.create_tables:
        Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        created = sum(1 for data in DEMO_PARTS if create_part(db, data))
        for i in range(args.extra):
            if create_part(db, random_part(i)):
                created += 1

        print(f"Seed completed. Parts created: {created}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
