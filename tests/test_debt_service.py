from decimal import Decimal

from metal_erp.schemas.debt import UnpaidOrder
from metal_erp.services.debt_service import (
    allocate_fifo,
    client_debt,
    client_purchases,
    debt_history,
    total_debt_from_history,
    unpaid_orders,
)
from tests.conftest import day


def _doc(order_id, date, remaining, paid=0):
    return UnpaidOrder(
        order_id=order_id,
        date=day(date),
        total_amount=Decimal(remaining) + Decimal(paid),
        amount_paid_usd=Decimal(paid),
        debt_remaining_usd=Decimal(remaining),
    )


# ==================== AGGREGATE ====================

def test_full_repayment_against_order_clears_debt(client_record, make_order, make_tx):
    orders = [make_order(100, "2024-01-01", id="ORD-1")]
    txs = [make_tx(100, "2024-01-05", related_id="ORD-1", kind="order")]

    assert client_debt(client_record, orders, txs) == 0
    assert unpaid_orders(client_record, orders, txs) == []


def test_unresolved_order_reference_is_matched_by_id(client_record, make_order, make_tx):
    orders = [make_order(100, "2024-01-01", id="ORD-1")]
    txs = [make_tx(40, "2024-01-05", related_id="ORD-1")]
    assert client_debt(client_record, orders, txs) == Decimal("60")


def test_uzs_repayment_uses_its_own_rate(client_record, make_order, make_tx):
    orders = [make_order(100, "2024-01-01")]
    txs = [make_tx(640000, "2024-01-05", related_id="CLI-1", kind="client", currency="UZS", rate=12800)]
    assert client_debt(client_record, orders, txs) == Decimal("50")


def test_over_repayment_is_clamped_to_zero(client_record, make_order, make_tx):
    orders = [make_order(100, "2024-01-01")]
    txs = [make_tx(250, "2024-01-05", related_id="CLI-1", kind="client")]
    assert client_debt(client_record, orders, txs) == 0


def test_paid_orders_and_other_clients_do_not_count(client_record, make_order, make_tx):
    orders = [
        make_order(100, "2024-01-01"),
        make_order(500, "2024-01-01", method="cash", paid=500),
        make_order(70, "2024-01-01", client_id="CLI-2"),
    ]
    txs = [make_tx(10, "2024-01-05", related_id="CLI-2", kind="client")]

    assert client_debt(client_record, orders, txs) == Decimal("100")
    assert client_purchases(client_record, orders) == Decimal("600")


def test_malformed_amounts_are_read_as_zero(client_record, make_order, make_tx):
    orders = [make_order("not a number", "2024-01-01"), make_order("1 250,50", "2024-01-02")]
    assert client_debt(client_record, orders, []) == Decimal("1250.50")


# ==================== FIFO ====================

def test_client_level_payment_is_spread_oldest_first(client_record, make_order, make_tx):
    orders = [
        make_order(80, "2024-01-10", id="ORD-2"),
        make_order(50, "2024-01-01", id="ORD-1"),
    ]
    txs = [make_tx(60, "2024-01-15", related_id="CLI-1", kind="client")]

    result = unpaid_orders(client_record, orders, txs)

    assert [o.order_id for o in result] == ["ORD-2"]
    assert result[0].debt_remaining_usd == Decimal("70")
    assert result[0].amount_paid_usd == Decimal("10")


def test_small_payment_only_touches_the_oldest_order():
    docs = [_doc("ORD-1", "2024-01-01", 50), _doc("ORD-2", "2024-01-10", 80)]

    result = allocate_fifo(docs, Decimal("20"))

    assert result.orders[0].debt_remaining_usd == Decimal("30")
    assert result.orders[1].debt_remaining_usd == Decimal("80")
    assert result.orders[1].amount_paid_usd == 0
    assert result.unallocated_usd == 0


def test_allocation_conserves_money():
    docs = [_doc("ORD-1", "2024-01-01", 50, paid=5), _doc("ORD-2", "2024-01-10", 80), _doc("OBL-1", "2024-02-01", 12)]
    pool = Decimal("100")

    result = allocate_fifo(docs, pool)

    before = sum(d.amount_paid_usd + d.debt_remaining_usd for d in docs)
    after = sum(d.amount_paid_usd + d.debt_remaining_usd for d in result.orders)
    applied = sum(a.amount_paid_usd - b.amount_paid_usd for a, b in zip(result.orders, docs))
    assert before == after
    assert applied + result.unallocated_usd == pool


def test_allocation_leaves_inputs_untouched_and_is_repeatable():
    docs = [_doc("ORD-1", "2024-01-01", 50), _doc("ORD-2", "2024-01-10", 80)]

    first = allocate_fifo(docs, Decimal("60"))
    second = allocate_fifo(docs, Decimal("60"))

    assert first == second
    assert docs[0].debt_remaining_usd == Decimal("50")


def test_pool_larger_than_debt_keeps_leftover():
    result = allocate_fifo([_doc("ORD-1", "2024-01-01", 50)], Decimal("75"))
    assert result.orders[0].debt_remaining_usd == 0
    assert result.unallocated_usd == Decimal("25")


def test_direct_repayments_are_netted_before_the_pool(client_record, make_order, make_tx):
    orders = [make_order(50, "2024-01-01", id="ORD-1"), make_order(80, "2024-01-10", id="ORD-2")]
    txs = [
        make_tx(30, "2024-01-12", related_id="ORD-2", kind="order"),
        make_tx(20, "2024-01-15", related_id="CLI-1", kind="client"),
    ]

    result = {o.order_id: o for o in unpaid_orders(client_record, orders, txs)}

    assert result["ORD-1"].debt_remaining_usd == Decimal("30")
    assert result["ORD-2"].debt_remaining_usd == Decimal("50")
    assert [p.transaction_id for p in result["ORD-2"].payments] == ["TRX-1"]


def test_adding_unrelated_repayment_keeps_settled_orders_settled(client_record, make_order, make_tx):
    orders = [make_order(50, "2024-01-01", id="ORD-1"), make_order(80, "2024-01-10", id="ORD-2")]
    txs = [make_tx(50, "2024-01-02", related_id="ORD-1", kind="order")]

    before = unpaid_orders(client_record, orders, txs)
    txs.append(make_tx(10, "2024-01-20", related_id="CLI-1", kind="client"))
    after = unpaid_orders(client_record, orders, txs)

    assert [o.order_id for o in before] == [o.order_id for o in after] == ["ORD-2"]
    assert after[0].debt_remaining_usd == Decimal("70")


def test_payment_tied_to_paid_order_does_not_reach_the_pool(client_record, make_order, make_tx):
    orders = [make_order(50, "2024-01-01", id="ORD-1"), make_order(30, "2024-01-02", id="ORD-P", method="cash", paid=30)]
    txs = [make_tx(30, "2024-01-03", related_id="CLI-1", kind="client", mentioned_order_id="ORD-P")]

    result = unpaid_orders(client_record, orders, txs)

    assert result[0].debt_remaining_usd == Decimal("50")
    assert client_debt(client_record, orders, txs) == Decimal("50")


def test_obligations_are_offered_as_debt_documents(client_record, make_order, make_tx):
    orders = [make_order(50, "2024-01-10", id="ORD-1")]
    txs = [
        make_tx(200, "2024-01-01", type="debt_obligation", related_id="CLI-1", kind="client",
                id="OBL-1", description="Opening balance"),
        make_tx(150, "2024-01-05", related_id="OBL-1", kind="order"),
    ]

    result = unpaid_orders(client_record, orders, txs)

    assert [(o.order_id, o.source) for o in result] == [("OBL-1", "obligation"), ("ORD-1", "order")]
    assert result[0].debt_remaining_usd == Decimal("50")
    assert result[0].items == "Opening balance"


def test_obligation_for_an_existing_order_is_not_duplicated(client_record, make_order, make_tx):
    orders = [make_order(50, "2024-01-10", id="ORD-1")]
    txs = [make_tx(50, "2024-01-10", type="debt_obligation", related_id="CLI-1", kind="client",
                   description="Долг по заказу ORD-1 (перенос)")]

    result = unpaid_orders(client_record, orders, txs)
    assert [o.order_id for o in result] == ["ORD-1"]


def test_general_debt_entry_when_no_document_stays_open(client_record, make_order, make_tx):
    orders = [make_order(10, "2024-01-0%d" % i, id=f"ORD-{i}") for i in (1, 2, 3)]
    txs = [make_tx(Decimal("9.991"), "2024-01-05", related_id=f"ORD-{i}", kind="order") for i in (1, 2, 3)]
    as_of = day("2024-02-01")

    result = unpaid_orders(client_record, orders, txs, as_of=as_of)

    assert len(result) == 1
    assert result[0].order_id == "DEBT-CLI-1"
    assert result[0].source == "general"
    assert result[0].debt_remaining_usd == Decimal("0.027")
    assert result[0].date == as_of


# ==================== HISTORY ====================

def test_history_is_newest_first_with_running_balance(client_record, make_order, make_tx):
    orders = [
        make_order(100, "2024-01-01", id="ORD-1", items=("Armature A500",)),
        make_order(40, "2024-01-20", id="ORD-2"),
    ]
    txs = [make_tx(30, "2024-01-10", related_id="CLI-1", kind="client")]

    history = debt_history(client_record, orders, txs)

    assert [h.id for h in history] == ["ORD-2", "TRX-1", "ORD-1"]
    assert [h.balance for h in history] == [Decimal("110"), Decimal("70"), Decimal("100")]
    assert history[1].debt_change == Decimal("-30")
    assert history[2].items[0].name == "Armature A500"
    assert total_debt_from_history(history) == Decimal("140")


def test_history_balance_never_shows_negative(client_record, make_order, make_tx):
    orders = [make_order(100, "2024-01-01", id="ORD-1"), make_order(30, "2024-01-03", id="ORD-2")]
    txs = [make_tx(150, "2024-01-02", related_id="CLI-1", kind="client")]

    history = debt_history(client_record, orders, txs)

    assert all(h.balance >= 0 for h in history)
    # the running sum stays at -50 after the over-payment, so the later order still shows 0
    assert [h.balance for h in history] == [0, 0, Decimal("100")]


def test_history_includes_obligations_once(client_record, make_order, make_tx):
    orders = [make_order(50, "2024-01-10", id="ORD-1")]
    txs = [
        make_tx(200, "2024-01-01", type="debt_obligation", related_id="CLI-1", kind="client", id="OBL-1"),
        make_tx(50, "2024-01-10", type="debt_obligation", related_id="CLI-1", kind="client",
                mentioned_order_id="ORD-1", id="OBL-2"),
        make_tx(50, "2024-01-10", type="debt_obligation", related_id="ORD-1", kind="order", id="OBL-3"),
    ]

    history = debt_history(client_record, orders, txs)

    assert sorted(h.id for h in history) == ["OBL-1", "ORD-1"]
    assert history[0].balance == Decimal("250")


def test_history_repayment_shows_usd_and_original_amount(client_record, make_order, make_tx):
    orders = [make_order(100, "2024-01-01", id="ORD-1")]
    txs = [make_tx(128000, "2024-01-02", related_id="ORD-1", kind="order", currency="UZS", rate=12800, method="card")]

    entry = debt_history(client_record, orders, txs)[0]

    assert entry.type == "repayment"
    assert entry.amount_paid == Decimal("128000")
    assert entry.amount_usd == Decimal("10")
    assert entry.payment_method == "card"
    assert entry.balance == Decimal("90")


def test_ledger_views_are_repeatable(client_record, make_order, make_tx):
    orders = [make_order(50, "2024-01-01"), make_order(80, "2024-01-10")]
    txs = [make_tx(60, "2024-01-15", related_id="CLI-1", kind="client")]

    assert client_debt(client_record, orders, txs) == client_debt(client_record, orders, txs)
    assert unpaid_orders(client_record, orders, txs) == unpaid_orders(client_record, orders, txs)
    assert debt_history(client_record, orders, txs) == debt_history(client_record, orders, txs)
