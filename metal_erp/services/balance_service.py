"""
Per-account cash balances built from the whole order/transaction/expense log.

Four buckets: cash USD, cash UZS, bank UZS, card UZS. Each money movement
is routed through settlement_bucket and expressed in that bucket's currency.
"""
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from metal_erp.core.config import settings
from metal_erp.logger_config import logger
from metal_erp.models.common import PaymentMethod
from metal_erp.models.transaction import TransactionType
from metal_erp.schemas.balance import (
    AccountBalancesResponse,
    AccountBucket,
    Correction,
    LiquiditySummary,
)
from metal_erp.schemas.records import ExpenseRecord, OrderRecord, TransactionRecord
from metal_erp.services.currency import Bucket, amount_in_bucket, settlement_bucket, validate_usd
from metal_erp.services.matcher import resolve_reference
from metal_erp.utils.money import ZERO, safe_rate

OUTFLOW_TYPES = {
    TransactionType.supplier_payment,
    TransactionType.client_return,
    TransactionType.client_refund,
    TransactionType.expense,
}

# Rails that take money at the till when the sale is made
SETTLED_AT_SALE = {PaymentMethod.cash, PaymentMethod.bank, PaymentMethod.card}


class _Ledger:
    """Running income/expense per bucket plus the corrections raised on the way."""

    def __init__(self):
        self.income: Dict[Bucket, Decimal] = {b: ZERO for b in Bucket}
        self.expense: Dict[Bucket, Decimal] = {b: ZERO for b in Bucket}
        self.corrections: List[Correction] = []

    def add_income(self, bucket: Bucket, amount: Decimal):
        self.income[bucket] += amount

    def add_expense(self, bucket: Bucket, amount: Decimal):
        self.expense[bucket] += amount

    def bucket(self, bucket: Bucket) -> AccountBucket:
        income = self.income[bucket]
        expense = self.expense[bucket]
        return AccountBucket(income=income, expense=expense, balance=income - expense)


def _paid_at_sale(order: OrderRecord) -> Decimal:
    """USD taken at the till. A missing amount means the sale was paid in full."""
    paid = order.amount_paid
    return paid if paid > 0 else order.total_amount


def _settled_in_full(order: OrderRecord) -> bool:
    """Paid at the till for the whole total; later payments linked to it are duplicates."""
    return (
        order.payment_method in SETTLED_AT_SALE
        and order.total_amount - _paid_at_sale(order) <= settings.DEBT_EPSILON
    )


def _order_income(order: OrderRecord, rate: Decimal, ledger: _Ledger):
    bucket = settlement_bucket(order.payment_method, order.payment_currency)
    if bucket is None:
        # debt and mixed sales bring money in through client_payment rows
        return

    paid = _paid_at_sale(order)
    if bucket == Bucket.cash_usd:
        ledger.add_income(bucket, validate_usd(paid, rate, order.id, "order", ledger.corrections.append))
        return

    amount_uzs = order.total_amount_uzs
    if amount_uzs <= 0:
        amount_uzs = order.total_amount * safe_rate(order.exchange_rate, rate)
    if not _settled_in_full(order) and order.total_amount > 0:
        # only the share taken at the till; the rest arrives as client_payment rows
        amount_uzs = amount_uzs * paid / order.total_amount
    ledger.add_income(bucket, amount_uzs)


def _linked_order(tx: TransactionRecord, orders_by_id: Dict[str, OrderRecord]) -> Optional[OrderRecord]:
    ref = resolve_reference(tx, order_ids=orders_by_id)
    order_id = ref.order_id
    return orders_by_id.get(order_id) if order_id else None


def _transaction_movement(
    tx: TransactionRecord,
    rate: Decimal,
    orders_by_id: Dict[str, OrderRecord],
    ledger: _Ledger,
):
    bucket = settlement_bucket(tx.method, tx.currency)
    if bucket is None:
        return

    if tx.type == TransactionType.client_payment:
        order = _linked_order(tx, orders_by_id)
        if order is not None and _settled_in_full(order):
            return
        tx_rate = safe_rate(tx.exchange_rate, rate)
        amount = amount_in_bucket(tx.amount, tx.currency, bucket, tx_rate, tx.id, "transaction", ledger.corrections)
        ledger.add_income(bucket, amount)

    elif tx.type in OUTFLOW_TYPES:
        tx_rate = safe_rate(tx.exchange_rate, rate)
        amount = amount_in_bucket(tx.amount, tx.currency, bucket, tx_rate, tx.id, "transaction", ledger.corrections)
        ledger.add_expense(bucket, amount)


def _expense_outflow(expense: ExpenseRecord, rate: Decimal, ledger: _Ledger):
    bucket = settlement_bucket(expense.payment_method, expense.currency)
    if bucket is None:
        return
    exp_rate = safe_rate(expense.exchange_rate, rate)
    amount = amount_in_bucket(
        expense.amount, expense.currency, bucket, exp_rate, expense.id, "expense", ledger.corrections
    )
    ledger.add_expense(bucket, amount)


def liquidity_summary(cash_usd: Decimal, cash_uzs: Decimal, bank_uzs: Decimal, card_uzs: Decimal, rate: Decimal) -> LiquiditySummary:
    total_cash_usd = cash_usd + cash_uzs / rate
    net_bank_usd = bank_uzs / rate
    net_card_usd = card_uzs / rate
    return LiquiditySummary(
        total_cash_usd=total_cash_usd,
        net_bank_usd=net_bank_usd,
        net_card_usd=net_card_usd,
        total_liquid_usd=total_cash_usd + net_bank_usd + net_card_usd,
    )


def account_balances(
    orders: Sequence[OrderRecord],
    expenses: Sequence[ExpenseRecord],
    transactions: Sequence[TransactionRecord],
    exchange_rate=None,
) -> AccountBalancesResponse:
    """
    Income, outflow and balance for each settlement bucket.

    Sales count at the moment of sale; client_payment rows count unless they
    belong to a sale paid in full at the till. Every conversion uses the
    record's own snapshot rate when plausible, else exchange_rate.
    """
    rate = safe_rate(exchange_rate)
    ledger = _Ledger()
    orders_by_id = {o.id: o for o in orders}

    for order in orders:
        _order_income(order, rate, ledger)

    for tx in transactions:
        _transaction_movement(tx, rate, orders_by_id, ledger)

    for expense in expenses:
        _expense_outflow(expense, rate, ledger)

    buckets = {b: ledger.bucket(b) for b in Bucket}
    summary = liquidity_summary(
        buckets[Bucket.cash_usd].balance,
        buckets[Bucket.cash_uzs].balance,
        buckets[Bucket.bank_uzs].balance,
        buckets[Bucket.card_uzs].balance,
        rate,
    )

    if ledger.corrections:
        logger.warning(f"Account balances computed with {len(ledger.corrections)} unit-mismatch corrections")

    return AccountBalancesResponse(
        cash_usd=buckets[Bucket.cash_usd],
        cash_uzs=buckets[Bucket.cash_uzs],
        bank_uzs=buckets[Bucket.bank_uzs],
        card_uzs=buckets[Bucket.card_uzs],
        exchange_rate=rate,
        summary=summary,
        corrections=ledger.corrections,
    )
