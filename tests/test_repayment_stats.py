from datetime import datetime
from decimal import Decimal

import pytest

from metal_erp.schemas.records import ClientRecord
from metal_erp.services.repayment_service import repayment_stats

NOW = datetime(2024, 3, 15, 12, 0)


@pytest.fixture
def ledger(make_order, make_tx):
    clients = [
        ClientRecord(id="CLI-1", name="Rustam Aliev"),
        ClientRecord(id="CLI-2", name="Dilshod Karimov"),
    ]
    orders = [make_order(20, "2024-03-01", client_id="CLI-2", id="ORD-1")]
    transactions = [
        make_tx(100, "2024-03-10", related_id="CLI-1", kind="client"),
        make_tx(256000, "2024-03-10", related_id="ORD-1", kind="order", currency="UZS", rate=12800, method="card"),
        make_tx(30, "2024-03-01", related_id="CLI-404", kind="client"),
        make_tx(50, "2024-02-20", related_id="CLI-1", kind="client"),
        make_tx(500, "2023-12-01", related_id="CLI-1", kind="client"),
        make_tx(1000, "2024-03-12", type="supplier_payment"),
    ]
    return transactions, clients, orders


def test_month_totals_and_average(ledger):
    stats = repayment_stats(*ledger, range="month", now=NOW)

    assert stats.range == "month"
    assert stats.total_repaid_usd == Decimal("150")
    assert stats.total_count == 3
    assert stats.average_usd == Decimal("50")


def test_daily_series_is_sorted_by_day(ledger):
    stats = repayment_stats(*ledger, range="month", now=NOW)

    assert [(d.date, d.amount, d.count) for d in stats.daily] == [
        ("2024-03-01", Decimal("30"), 1),
        ("2024-03-10", Decimal("120"), 2),
    ]


def test_method_split_drops_empty_methods(ledger):
    stats = repayment_stats(*ledger, range="month", now=NOW)
    assert stats.by_method == {"cash": Decimal("130"), "card": Decimal("20")}


def test_top_clients_resolve_payer_through_order(ledger):
    stats = repayment_stats(*ledger, range="month", now=NOW)

    assert [(c.client_id, c.name, c.amount) for c in stats.top_clients] == [
        ("CLI-1", "Rustam Aliev", Decimal("100")),
        (None, "Unknown", Decimal("30")),
        ("CLI-2", "Dilshod Karimov", Decimal("20")),
    ]


@pytest.mark.parametrize("range, total, count", [
    ("week", Decimal("120"), 2),
    ("year", Decimal("200"), 4),
    ("all", Decimal("700"), 5),
])
def test_ranges(ledger, range, total, count):
    stats = repayment_stats(*ledger, range=range, now=NOW)
    assert stats.total_repaid_usd == total
    assert stats.total_count == count


def test_empty_period_has_zero_average(ledger):
    stats = repayment_stats(*ledger, range="month", now=datetime(2025, 6, 1))
    assert stats.total_count == 0
    assert stats.average_usd == 0
    assert stats.daily == []
    assert stats.top_clients == []


def test_payer_found_by_order_customer_name(make_order, make_tx):
    clients = [ClientRecord(id="CLI-7", name="Anvar Yusupov")]
    orders = [make_order(40, "2024-03-02", client_id=None, customer_name="anvar yusupov", id="ORD-9")]
    txs = [make_tx(40, "2024-03-05", related_id="ORD-9", kind="order")]

    stats = repayment_stats(txs, clients, orders, range="all", now=NOW)

    assert stats.top_clients[0].client_id == "CLI-7"
