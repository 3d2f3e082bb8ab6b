"""
Client debt computed from the order/transaction log.

Every function here is pure: same records in, same result out. The database
layer loads records and hands them over; nothing is written back from here.
"""
from datetime import datetime
from decimal import Decimal
from functools import reduce
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from metal_erp.core.config import settings
from metal_erp.logger_config import logger
from metal_erp.models.transaction import ReferenceKind, TransactionType
from metal_erp.schemas.debt import (
    AllocationResult,
    DebtHistoryEntry,
    HistoryItemLine,
    PaymentRecord,
    UnpaidOrder,
)
from metal_erp.schemas.records import ClientRecord, OrderRecord, TransactionRecord
from metal_erp.services.currency import tx_to_usd
from metal_erp.services.matcher import (
    client_debt_orders,
    is_client_repayment,
    order_matches_client,
    resolve_reference,
)
from metal_erp.utils.money import ZERO

GENERAL_DEBT_PREFIX = "DEBT-"


# ==================== HELPERS ====================

def _items_summary(order: OrderRecord) -> str:
    names = [it.product_name for it in order.items]
    summary = ", ".join(names[:2])
    return summary + ("..." if len(names) > 2 else "")


def _payment_record(tx: TransactionRecord) -> PaymentRecord:
    return PaymentRecord(
        transaction_id=tx.id,
        date=tx.date,
        amount=tx.amount,
        amount_usd=tx_to_usd(tx),
        currency=tx.currency.value,
        method=tx.method.value,
    )


def _client_obligations(
    client: ClientRecord,
    orders: Sequence[OrderRecord],
    transactions: Sequence[TransactionRecord],
) -> List[TransactionRecord]:
    """debt_obligation rows owed by the client that no real order already represents."""
    order_ids = {o.id for o in orders}
    result = []
    for tx in transactions:
        if tx.type != TransactionType.debt_obligation:
            continue
        ref = resolve_reference(tx, order_ids=order_ids, client_ids=[client.id])
        if ref.kind != ReferenceKind.client or ref.id != client.id:
            continue
        if ref.mentioned_order_id and ref.mentioned_order_id in order_ids:
            continue
        result.append(tx)
    return result


# ==================== AGGREGATES ====================

def client_purchases(client: ClientRecord, orders: Iterable[OrderRecord]) -> Decimal:
    """Everything the client ever bought, paid or not (USD)."""
    return sum((o.total_amount for o in orders if order_matches_client(o, client)), ZERO)


def client_debt(
    client: ClientRecord,
    orders: Sequence[OrderRecord],
    transactions: Sequence[TransactionRecord],
) -> Decimal:
    """
    Outstanding USD debt: debt-order totals minus matched repayments.
    Over-repayment is absorbed, the result is never negative.
    """
    debt_orders = client_debt_orders(client, orders)
    debt_ids = {o.id for o in debt_orders}

    total_debt = sum((o.total_amount for o in debt_orders), ZERO)
    total_repaid = sum(
        (tx_to_usd(tx) for tx in transactions if is_client_repayment(tx, client, debt_ids)),
        ZERO,
    )

    debt = max(ZERO, total_debt - total_repaid)
    logger.debug(f"Client {client.id} debt: orders={total_debt}, repaid={total_repaid}, debt={debt}")
    return debt


# ==================== FIFO ALLOCATION ====================

def allocate_fifo(documents: Sequence[UnpaidOrder], pool_usd: Decimal) -> AllocationResult:
    """
    Spend an unattributed payment pool on documents in the given order.
    Each document takes min(pool, its remaining debt); the fold carries the pool.
    """
    def step(acc: Tuple[List[UnpaidOrder], Decimal], doc: UnpaidOrder):
        allocated, pool = acc
        applied = max(ZERO, min(pool, doc.debt_remaining_usd))
        if applied > 0:
            doc = doc.model_copy(update={
                "amount_paid_usd": doc.amount_paid_usd + applied,
                "debt_remaining_usd": doc.debt_remaining_usd - applied,
            })
        return allocated + [doc], pool - applied

    docs, leftover = reduce(step, documents, ([], pool_usd))
    return AllocationResult(orders=docs, unallocated_usd=leftover)


def _open_documents(
    client: ClientRecord,
    orders: Sequence[OrderRecord],
    transactions: Sequence[TransactionRecord],
) -> Tuple[List[UnpaidOrder], Decimal]:
    """Debt documents net of their direct repayments, plus the client-level payment pool."""
    eps = settings.DEBT_EPSILON
    debt_orders = client_debt_orders(client, orders)
    debt_ids = {o.id for o in debt_orders}
    obligations = [tx for tx in _client_obligations(client, orders, transactions) if tx.id not in debt_ids]
    document_ids: Set[str] = debt_ids | {tx.id for tx in obligations}

    direct: Dict[str, List[TransactionRecord]] = {doc_id: [] for doc_id in document_ids}
    pool_candidates: List[TransactionRecord] = []

    for tx in transactions:
        if tx.type != TransactionType.client_payment:
            continue
        ref = resolve_reference(tx, order_ids=document_ids, client_ids=[client.id])
        for_client = ref.kind == ReferenceKind.client and ref.id == client.id
        target = ref.order_id if (ref.kind == ReferenceKind.order or for_client) else None

        if target in direct:
            direct[target].append(tx)
        elif for_client:
            pool_candidates.append(tx)

    documents: List[UnpaidOrder] = []

    for order in debt_orders:
        repayments = direct[order.id]
        repaid = sum((tx_to_usd(tx) for tx in repayments), ZERO)
        remaining = order.total_amount - repaid
        if remaining > eps:
            documents.append(UnpaidOrder(
                order_id=order.id,
                date=order.date,
                source="order",
                total_amount=order.total_amount,
                amount_paid_usd=repaid,
                debt_remaining_usd=remaining,
                items=_items_summary(order),
                report_no=order.report_no,
                payment_due_date=order.payment_due_date,
                payments=[_payment_record(tx) for tx in repayments],
            ))

    for obligation in obligations:
        repayments = direct[obligation.id]
        repaid = sum((tx_to_usd(tx) for tx in repayments), ZERO)
        total = tx_to_usd(obligation)
        remaining = total - repaid
        if remaining > eps:
            documents.append(UnpaidOrder(
                order_id=obligation.id,
                date=obligation.date,
                source="obligation",
                total_amount=total,
                amount_paid_usd=repaid,
                debt_remaining_usd=remaining,
                items=obligation.description or "",
                payments=[_payment_record(tx) for tx in repayments],
            ))

    # Oldest first; ties keep orders ahead of obligations
    documents.sort(key=lambda d: d.date)

    pool = sum(
        (tx_to_usd(tx) for tx in pool_candidates if is_client_repayment(tx, client, debt_ids)),
        ZERO,
    )
    return documents, pool


def unpaid_orders(
    client: ClientRecord,
    orders: Sequence[OrderRecord],
    transactions: Sequence[TransactionRecord],
    as_of: Optional[datetime] = None,
) -> List[UnpaidOrder]:
    """
    Open debt documents for the repayment screen, oldest first.

    Repayments tied to a document are netted first; payments made to the client
    as a whole are then spread FIFO. If nothing is left open but the aggregate
    debt is still positive, one synthetic "general debt" entry is returned so a
    repayment always has a target.
    """
    documents, pool = _open_documents(client, orders, transactions)
    allocation = allocate_fifo(documents, pool)
    still_unpaid = [d for d in allocation.orders if d.debt_remaining_usd > settings.DEBT_EPSILON]

    if not still_unpaid:
        debt = client_debt(client, orders, transactions)
        if debt > settings.DEBT_EPSILON:
            logger.info(f"Client {client.id} has debt {debt} without open documents, using general debt entry")
            still_unpaid.append(UnpaidOrder(
                order_id=f"{GENERAL_DEBT_PREFIX}{client.id}",
                date=as_of,
                source="general",
                total_amount=debt,
                amount_paid_usd=ZERO,
                debt_remaining_usd=debt,
                items="General client debt",
            ))

    return still_unpaid


# ==================== HISTORY ====================

def debt_history(
    client: ClientRecord,
    orders: Sequence[OrderRecord],
    transactions: Sequence[TransactionRecord],
) -> List[DebtHistoryEntry]:
    """
    Chronological debt ledger with a running balance, newest entry first.

    The balance is accumulated oldest-to-newest; each displayed balance is
    clamped at zero while the running sum itself is left unclamped.
    """
    entries: List[DebtHistoryEntry] = []

    debt_orders = client_debt_orders(client, orders)
    debt_ids = {o.id for o in debt_orders}
    all_order_ids = {o.id for o in orders}

    for order in debt_orders:
        entries.append(DebtHistoryEntry(
            id=order.id,
            date=order.date,
            type="order",
            description=f"Report #{order.report_no}" if order.report_no else f"Order #{order.id[-6:]}",
            items=[
                HistoryItemLine(name=it.product_name or "Item", qty=it.quantity, price=it.price_at_sale)
                for it in order.items
            ],
            total_amount=order.total_amount,
            amount_paid=ZERO,
            debt_change=order.total_amount,
            report_no=order.report_no,
            payment_due_date=order.payment_due_date,
        ))

    for tx in transactions:
        if tx.type == TransactionType.client_payment:
            if not is_client_repayment(tx, client, debt_ids):
                continue
            amount_usd = tx_to_usd(tx)
            entries.append(DebtHistoryEntry(
                id=tx.id,
                date=tx.date,
                type="repayment",
                description=tx.description or "Debt repayment",
                total_amount=tx.amount,
                amount_paid=tx.amount,
                debt_change=-amount_usd,
                payment_method=tx.method.value,
                currency=tx.currency.value,
                exchange_rate=tx.exchange_rate,
                amount_usd=amount_usd,
            ))

        elif tx.type == TransactionType.debt_obligation:
            ref = resolve_reference(tx, order_ids=debt_ids, client_ids=[client.id])
            for_client = ref.kind == ReferenceKind.client and ref.id == client.id
            for_debt_order = ref.kind == ReferenceKind.order and ref.id in debt_ids
            if not (for_client or for_debt_order):
                continue

            mentioned = ref.mentioned_order_id
            if mentioned and mentioned in all_order_ids:
                continue
            represented = {tx.id}
            order_refs = {r for r in (ref.order_id, mentioned) if r}
            if any(h.id in represented or (h.type == "order" and h.id in order_refs) for h in entries):
                continue

            amount_usd = tx_to_usd(tx)
            entries.append(DebtHistoryEntry(
                id=tx.id,
                date=tx.date,
                type="order",
                description=tx.description or "Opening debt / obligation",
                total_amount=amount_usd,
                amount_paid=ZERO,
                debt_change=amount_usd,
            ))

    entries.sort(key=lambda e: e.date)

    running = ZERO
    balanced: List[DebtHistoryEntry] = []
    for entry in entries:
        running += entry.debt_change
        balanced.append(entry.model_copy(update={"balance": max(ZERO, running)}))

    balanced.reverse()
    return balanced


def total_debt_from_history(history: Iterable[DebtHistoryEntry]) -> Decimal:
    return sum((h.debt_change for h in history if h.type == "order"), ZERO)
