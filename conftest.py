"""
Shared test fixtures.

The application is pointed at an in-memory SQLite database with Celery in
eager mode before anything from `app` is imported.
"""
import os
import tempfile

os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "false"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["BILL_SAVE_POLICY"] = "compensate"
os.environ["AUTH_USER_ID"] = "Admin"
os.environ["AUTH_PASSWORD"] = "Rangwala"
os.environ["PRINT_SPOOL_DIR"] = tempfile.mkdtemp(prefix="ezzy-print-")
os.environ.pop("PRINT_COMMAND", None)

import pytest
from decimal import Decimal
from fastapi.testclient import TestClient

from app.main import app
from app.core.config import settings
from app.database.database import Base, engine, SessionLocal
from app.modules.bills.drafts import draft_registry
from app.modules.parts.models import SparePart


# ===== FIXTURES =====

@pytest.fixture(autouse=True)
def reset_state():
    """Fresh tables and no open drafts for every test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    draft_registry.clear()
    yield
    draft_registry.clear()


@pytest.fixture
def db_session():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def auth_headers(client):
    """Bearer header of a signed-in shop session"""
    response = client.post(
        "/api/login",
        json={"userId": settings.AUTH_USER_ID, "password": settings.AUTH_PASSWORD}
    )
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def spool_dir(tmp_path, monkeypatch):
    """Print spool of the test, without a print command"""
    monkeypatch.setattr(settings, "PRINT_SPOOL_DIR", str(tmp_path))
    monkeypatch.setattr(settings, "PRINT_COMMAND", None)
    return tmp_path


@pytest.fixture
def make_part(db_session):
    """Insert a spare part, defaults overridable per field"""
    counter = {"n": 0}

    def _make_part(**overrides):
        counter["n"] += 1
        data = {
            "part_number": f"bg-{2000 + counter['n']}",
            "part_name": f"Ring {counter['n']}",
            "category": "Ring",
            "manufacturer": "TP",
            "selling_price": Decimal("85"),
            "cost_price": Decimal("50"),
            "stock_quantity": 20,
            "min_stock": 5,
            "location": "Shop",
        }
        data.update(overrides)
        part = SparePart(**data)
        db_session.add(part)
        db_session.commit()
        db_session.refresh(part)
        return part

    return _make_part
