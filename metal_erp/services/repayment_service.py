from collections import defaultdict
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from metal_erp.logger_config import logger
from metal_erp.models.client import Client
from metal_erp.models.common import Currency, PaymentMethod
from metal_erp.models.order import Order
from metal_erp.models.transaction import ReferenceKind, Transaction, TransactionType
from metal_erp.schemas.records import ClientRecord, OrderRecord, TransactionRecord
from metal_erp.schemas.repayment import (
    ClientRepaymentTotal,
    DailyRepayment,
    RepaymentCreate,
    RepaymentResponse,
    RepaymentStatsResponse,
)
from metal_erp.schemas.transaction import TransactionCreate, TransactionResponse
from metal_erp.services.client_service import get_client_by_id, refresh_client_totals
from metal_erp.services.currency import tx_to_usd
from metal_erp.services.debt_service import GENERAL_DEBT_PREFIX
from metal_erp.services.ledger import load_orders, load_transactions
from metal_erp.services.matcher import is_debt_order, order_matches_client, resolve_reference
from metal_erp.services.order_service import apply_payment_to_order
from metal_erp.services.transaction_service import build_transaction
from metal_erp.utils.money import ZERO, safe_rate

UNKNOWN_CLIENT = "Unknown"
TOP_CLIENTS = 10
STATS_METHODS = ("cash", "bank", "card")

# (field, currency, method, label) for each part of a mixed repayment
MIXED_PARTS = (
    ("cash_uzs", Currency.UZS, PaymentMethod.cash, "cash UZS"),
    ("cash_usd", Currency.USD, PaymentMethod.cash, "cash USD"),
    ("card_uzs", Currency.UZS, PaymentMethod.card, "card"),
    ("bank_uzs", Currency.UZS, PaymentMethod.bank, "bank transfer"),
)


# ==================== RECORDING ====================

def _payment_parts(request: RepaymentCreate) -> List[Tuple[Decimal, Currency, PaymentMethod, Optional[str]]]:
    if request.is_mixed:
        parts = []
        for field, currency, method, label in MIXED_PARTS:
            amount = getattr(request, field) or ZERO
            if amount > 0:
                parts.append((amount, currency, method, label))
        return parts

    amount = request.amount or ZERO
    if amount <= 0:
        return []
    return [(amount, request.currency, PaymentMethod(request.method), None)]


def _resolve_target(db: Session, client: Client, order_id: Optional[str]) -> Tuple[ReferenceKind, str, Optional[Order]]:
    """Reference for the new payments plus the order whose paid amount should move."""
    if not order_id or order_id.startswith(GENERAL_DEBT_PREFIX):
        return ReferenceKind.client, client.id, None

    order = db.query(Order).filter(Order.id == order_id).first()
    if order:
        record = OrderRecord.model_validate(order)
        if not order_matches_client(record, ClientRecord.model_validate(client)):
            raise ValueError(f"Order {order_id} does not belong to client {client.id}")
        if not is_debt_order(record):
            raise ValueError(f"Order {order_id} has no outstanding debt")
        return ReferenceKind.order, order.id, order

    obligation = (
        db.query(Transaction)
        .filter(
            Transaction.id == order_id,
            Transaction.type == TransactionType.debt_obligation,
            Transaction.related_kind == ReferenceKind.client,
            Transaction.related_id == client.id,
        )
        .first()
    )
    if obligation:
        return ReferenceKind.order, obligation.id, None

    raise ValueError(f"Order {order_id} not found")


def record_repayment(db: Session, client_id: str, request: RepaymentCreate) -> RepaymentResponse:
    """
    Record a debt repayment as one client_payment per non-zero part.

    UZS parts carry the exchange-rate snapshot. A targeted order gets its paid
    amount and status updated; the client's debt cache is refreshed in the
    same commit.
    """
    client = get_client_by_id(db, client_id)
    if not client:
        raise ValueError(f"Client {client_id} not found")

    parts = _payment_parts(request)
    if not parts:
        raise ValueError("Repayment amount must be greater than zero")

    kind, related_id, order = _resolve_target(db, client, request.order_id)
    rate = safe_rate(request.exchange_rate)
    date = request.date or datetime.utcnow()
    receipt = f" (Receipt {request.order_id})" if kind == ReferenceKind.order else ""

    try:
        created: List[Transaction] = []
        total_usd = ZERO
        for amount, currency, method, label in parts:
            prefix = f"Debt repayment ({label})" if label else "Debt repayment"
            transaction = build_transaction(db, TransactionCreate(
                date=date,
                type=TransactionType.client_payment,
                amount=amount,
                currency=currency,
                exchange_rate=rate,
                method=method,
                description=f"{prefix}: {client.name}{receipt}",
                related_kind=kind,
                related_id=related_id,
            ))
            created.append(transaction)
            total_usd += amount / rate if currency == Currency.UZS else amount

        if order is not None:
            apply_payment_to_order(order, total_usd)

        db.flush()
        debt = refresh_client_totals(db, client)
        db.commit()
    except ValueError:
        db.rollback()
        raise
    except Exception:
        db.rollback()
        logger.exception(f"Error recording repayment for client {client_id}")
        raise

    for transaction in created:
        db.refresh(transaction)

    logger.info(f"Repayment of {total_usd:.2f} USD recorded for client {client.id}, remaining debt {debt}")
    return RepaymentResponse(
        client_id=client.id,
        order_id=related_id if kind == ReferenceKind.order else None,
        total_usd=total_usd,
        client_total_debt=debt,
        transactions=[TransactionResponse.model_validate(t) for t in created],
    )


# ==================== STATISTICS ====================

def _in_range(date: datetime, range: str, now: datetime) -> bool:
    if range == "week":
        return date >= now - timedelta(days=7)
    if range == "month":
        return date.year == now.year and date.month == now.month
    if range == "year":
        return date.year == now.year
    return True


def _payer(
    tx: TransactionRecord,
    clients_by_id: Dict[str, ClientRecord],
    orders_by_id: Dict[str, OrderRecord],
) -> Optional[ClientRecord]:
    ref = resolve_reference(tx, order_ids=orders_by_id, client_ids=clients_by_id)
    if ref.kind == ReferenceKind.client:
        return clients_by_id.get(ref.id)

    order = orders_by_id.get(ref.order_id) if ref.order_id else None
    if order is None:
        return None
    if order.client_id in clients_by_id:
        return clients_by_id[order.client_id]
    return next((c for c in clients_by_id.values() if order_matches_client(order, c)), None)


def repayment_stats(
    transactions: Sequence[TransactionRecord],
    clients: Sequence[ClientRecord],
    orders: Sequence[OrderRecord] = (),
    range: str = "month",
    now: Optional[datetime] = None,
) -> RepaymentStatsResponse:
    """Totals, per-day series, per-method split and top payers for client repayments."""
    now = now or datetime.utcnow()
    repayments = [
        tx for tx in transactions
        if tx.type == TransactionType.client_payment and _in_range(tx.date, range, now)
    ]

    clients_by_id = {c.id: c for c in clients}
    orders_by_id = {o.id: o for o in orders}

    total = ZERO
    daily: Dict[str, List] = defaultdict(lambda: [ZERO, 0])
    by_method: Dict[str, Decimal] = defaultdict(lambda: ZERO)
    by_client: Dict[str, dict] = {}

    for tx in repayments:
        usd = tx_to_usd(tx)
        total += usd

        day = tx.date.date().isoformat()
        daily[day][0] += usd
        daily[day][1] += 1

        by_method[tx.method.value] += usd

        payer = _payer(tx, clients_by_id, orders_by_id)
        key = payer.id if payer else UNKNOWN_CLIENT
        entry = by_client.setdefault(key, {
            "client_id": payer.id if payer else None,
            "name": payer.name if payer else UNKNOWN_CLIENT,
            "amount": ZERO,
            "count": 0,
        })
        entry["amount"] += usd
        entry["count"] += 1

    top = sorted(by_client.values(), key=lambda e: e["amount"], reverse=True)[:TOP_CLIENTS]

    return RepaymentStatsResponse(
        range=range,
        total_repaid_usd=total,
        total_count=len(repayments),
        average_usd=total / len(repayments) if repayments else ZERO,
        daily=[DailyRepayment(date=d, amount=v[0], count=v[1]) for d, v in sorted(daily.items())],
        by_method={m: by_method[m] for m in STATS_METHODS if by_method.get(m, ZERO) > 0},
        top_clients=[ClientRepaymentTotal(**e) for e in top],
    )


def get_repayment_stats(db: Session, range: str = "month", now: Optional[datetime] = None) -> RepaymentStatsResponse:
    clients = [ClientRecord.model_validate(c) for c in db.query(Client).all()]
    return repayment_stats(load_transactions(db), clients, load_orders(db), range=range, now=now)
