from decimal import Decimal

from metal_erp.services.balance_service import account_balances, liquidity_summary


def test_card_sale_lands_in_card_account_in_uzs(make_order):
    orders = [make_order(10, "2024-01-01", method="card", paid=10, total_amount_uzs=125000)]

    result = account_balances(orders, [], [])

    assert result.card_uzs.income == Decimal("125000")
    assert result.cash_usd.income == 0
    assert result.bank_uzs.income == 0


def test_card_sale_without_uzs_total_uses_order_rate(make_order):
    orders = [make_order(10, "2024-01-01", method="card", paid=10, exchange_rate=12500)]
    assert account_balances(orders, [], []).card_uzs.income == Decimal("125000")


def test_implausible_order_rate_falls_back_to_current_rate(make_order):
    orders = [make_order(10, "2024-01-01", method="bank", paid=10, exchange_rate=50)]
    result = account_balances(orders, [], [], exchange_rate=12700)
    assert result.bank_uzs.income == Decimal("127000")


def test_cash_sales_split_by_currency(make_order):
    orders = [
        make_order(100, "2024-01-01", method="cash", paid=0),
        make_order(80, "2024-01-01", method="cash", paid=60, status="partial"),
        make_order(10, "2024-01-02", method="cash", paid=10, payment_currency="UZS", total_amount_uzs=128000),
    ]

    result = account_balances(orders, [], [])

    assert result.cash_usd.income == Decimal("160")
    assert result.cash_uzs.income == Decimal("128000")


def test_debt_and_mixed_sales_bring_no_money_by_themselves(make_order):
    orders = [make_order(100, "2024-01-01"), make_order(100, "2024-01-01", method="mixed", status="unpaid")]

    result = account_balances(orders, [], [])

    assert all(getattr(result, b).income == 0 for b in ("cash_usd", "cash_uzs", "bank_uzs", "card_uzs"))


def test_debt_repayments_count_as_income(make_order, make_tx):
    orders = [make_order(100, "2024-01-01", id="ORD-1")]
    txs = [
        make_tx(40, "2024-01-05", related_id="ORD-1", kind="order"),
        make_tx(30, "2024-01-06", related_id="CLI-1", kind="client"),
        make_tx(256000, "2024-01-07", related_id="CLI-1", kind="client", currency="UZS", method="bank", rate=12800),
    ]

    result = account_balances(orders, [], txs)

    assert result.cash_usd.income == Decimal("70")
    assert result.bank_uzs.income == Decimal("256000")


def test_payment_for_order_paid_at_sale_is_not_counted_twice(make_order, make_tx):
    orders = [make_order(100, "2024-01-01", id="ORD-C", method="cash", paid=100)]
    txs = [
        make_tx(100, "2024-01-01", related_id="ORD-C", kind="order"),
        make_tx(100, "2024-01-01", related_id="CLI-1", kind="client",
                description="Погашение долга заказа ORD-C (нал)"),
    ]

    result = account_balances(orders, [], txs)

    assert result.cash_usd.income == Decimal("100")


def test_mixed_sale_parts_are_counted_per_rail(make_order, make_tx):
    orders = [make_order(100, "2024-01-01", id="ORD-M", method="mixed", status="paid", paid=100)]
    txs = [
        make_tx(60, "2024-01-01", related_id="ORD-M", kind="order"),
        make_tx(512000, "2024-01-01", related_id="ORD-M", kind="order", currency="UZS", method="card", rate=12800),
    ]

    result = account_balances(orders, [], txs)

    assert result.cash_usd.income == Decimal("60")
    assert result.card_uzs.income == Decimal("512000")


def test_usd_paid_by_card_is_converted_at_transaction_rate(make_tx):
    txs = [make_tx(100, "2024-01-01", related_id="CLI-1", kind="client", method="card", rate=12500)]
    assert account_balances([], [], txs).card_uzs.income == Decimal("1250000")


def test_outflows_reduce_their_bucket(make_tx, make_expense):
    txs = [
        make_tx(500000, "2024-01-02", type="supplier_payment", currency="UZS", method="bank"),
        make_tx(20, "2024-01-03", type="client_return"),
        make_tx(5, "2024-01-03", type="client_refund"),
        make_tx(100, "2024-01-04", type="debt_obligation", related_id="CLI-1", kind="client"),
    ]
    expenses = [make_expense(30), make_expense(200000, currency="UZS")]

    result = account_balances([], expenses, txs)

    assert result.bank_uzs.expense == Decimal("500000")
    assert result.bank_uzs.balance == Decimal("-500000")
    assert result.cash_usd.expense == Decimal("55")
    assert result.cash_uzs.expense == Decimal("200000")
    assert result.cash_usd.income == 0


def test_usd_amount_that_looks_like_uzs_is_corrected_and_reported(make_order):
    orders = [make_order(640000000, "2024-01-01", method="cash", paid=0, id="ORD-BIG")]

    result = account_balances(orders, [], [], exchange_rate=12800)

    assert result.cash_usd.income == Decimal("50000")
    assert [c.id for c in result.corrections] == ["ORD-BIG"]


def test_liquidity_summary_in_usd(make_order):
    orders = [
        make_order(100, "2024-01-01", method="cash", paid=100),
        make_order(10, "2024-01-01", method="cash", paid=10, payment_currency="UZS", total_amount_uzs=1280000),
        make_order(10, "2024-01-01", method="card", paid=10, total_amount_uzs=128000),
    ]

    result = account_balances(orders, [], [], exchange_rate=12800)

    assert result.exchange_rate == Decimal("12800")
    assert result.summary.total_cash_usd == Decimal("200")
    assert result.summary.net_card_usd == Decimal("10")
    assert result.summary.total_liquid_usd == Decimal("210")


def test_liquidity_summary_arithmetic():
    summary = liquidity_summary(Decimal("10"), Decimal("25600"), Decimal("12800"), Decimal("0"), Decimal("12800"))
    assert summary.total_cash_usd == Decimal("12")
    assert summary.net_bank_usd == Decimal("1")
    assert summary.total_liquid_usd == Decimal("13")


def test_card_repayment_on_partly_paid_cash_sale_lands_in_card_account(make_order, make_tx):
    orders = [make_order(100, "2024-01-01", id="ORD-1", method="cash", status="partial", paid=30)]
    txs = [make_tx(70, "2024-01-05", related_id="ORD-1", kind="order", method="card", rate=12800)]

    result = account_balances(orders, [], txs, exchange_rate=12800)

    assert result.cash_usd.income == Decimal("30")
    assert result.card_uzs.income == Decimal("896000")


def test_repayment_still_counted_after_it_settles_the_sale(make_order, make_tx):
    orders = [make_order(100, "2024-01-01", id="ORD-1", method="cash", status="paid", paid=30,
                         amount_paid_usd=100)]
    txs = [make_tx(896000, "2024-01-05", related_id="ORD-1", kind="order", currency="UZS",
                   method="cash", rate=12800)]

    result = account_balances(orders, [], txs)

    assert result.cash_usd.income == Decimal("30")
    assert result.cash_uzs.income == Decimal("896000")


def test_partly_paid_card_sale_books_only_the_share_taken_at_the_till(make_order, make_tx):
    orders = [make_order(100, "2024-01-01", id="ORD-1", method="card", status="partial", paid=40,
                         total_amount_uzs=1280000)]
    txs = [make_tx(60, "2024-01-05", related_id="ORD-1", kind="order")]

    result = account_balances(orders, [], txs)

    assert result.card_uzs.income == Decimal("512000")
    assert result.cash_usd.income == Decimal("60")
