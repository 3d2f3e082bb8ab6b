import itertools
import os
from datetime import datetime

# Settings are read at import time; point them at SQLite before anything loads.
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import metal_erp.models  # noqa: F401
from metal_erp.core.database import Base
from metal_erp.core.dependencies import get_db
from metal_erp.main import app
from metal_erp.schemas.records import (
    ClientRecord,
    ExpenseRecord,
    OrderItemRecord,
    OrderRecord,
    TransactionRecord,
)

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def day(value: str) -> datetime:
    return datetime.fromisoformat(value)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def api(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# ==================== RECORD FACTORIES ====================

@pytest.fixture
def client_record():
    return ClientRecord(id="CLI-1", name="Rustam Aliev", company_name="Steel Trade LLC")


@pytest.fixture
def make_order():
    counter = itertools.count(1)

    def _make(total, date, client_id="CLI-1", method="debt", status=None, paid=0, id=None,
              customer_name="", items=(), **extra):
        if status is None:
            status = "unpaid" if method == "debt" else "paid"
        return OrderRecord(
            id=id or f"ORD-{next(counter)}",
            date=day(date) if isinstance(date, str) else date,
            customer_name=customer_name,
            client_id=client_id,
            total_amount=total,
            amount_paid=paid,
            payment_method=method,
            payment_status=status,
            items=[OrderItemRecord(product_name=name, quantity=1, price_at_sale=total) for name in items],
            **extra,
        )

    return _make


@pytest.fixture
def make_tx():
    counter = itertools.count(1)

    def _make(amount, date, type="client_payment", related_id=None, kind=None, currency="USD",
              rate=None, method="cash", description=None, id=None, mentioned_order_id=None):
        return TransactionRecord(
            id=id or f"TRX-{next(counter)}",
            date=day(date) if isinstance(date, str) else date,
            type=type,
            amount=amount,
            currency=currency,
            exchange_rate=rate,
            method=method,
            description=description,
            related_id=related_id,
            related_kind=kind,
            mentioned_order_id=mentioned_order_id,
        )

    return _make


@pytest.fixture
def make_expense():
    counter = itertools.count(1)

    def _make(amount, currency="USD", method="cash", rate=None, date="2024-01-01"):
        return ExpenseRecord(
            id=f"EXP-{next(counter)}",
            date=day(date),
            amount=amount,
            currency=currency,
            exchange_rate=rate,
            payment_method=method,
        )

    return _make
