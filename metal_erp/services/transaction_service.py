from datetime import datetime
from typing import List, Optional, Set, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from metal_erp.logger_config import logger
from metal_erp.models.client import Client
from metal_erp.models.order import Order
from metal_erp.models.transaction import ReferenceKind, Transaction, TransactionType
from metal_erp.schemas.records import TransactionRecord
from metal_erp.schemas.transaction import TransactionCreate
from metal_erp.services.client_service import clients_for_order, refresh_totals_for_clients
from metal_erp.services.matcher import RelatedRef, resolve_reference


# ==================== QUERY OPERATIONS ====================

def get_transaction_by_id(db: Session, transaction_id: str) -> Optional[Transaction]:
    return db.query(Transaction).filter(Transaction.id == transaction_id).first()


def get_all_transactions(
    db: Session,
    skip: int = 0,
    limit: int = 100,
    type: Optional[TransactionType] = None,
    related_id: Optional[str] = None,
) -> Tuple[List[Transaction], int]:
    query = db.query(Transaction)
    if type:
        query = query.filter(Transaction.type == type)
    if related_id:
        query = query.filter(Transaction.related_id == related_id)

    total = query.count()
    transactions = query.order_by(Transaction.date.desc(), Transaction.id.desc()).offset(skip).limit(limit).all()
    return transactions, total


def _is_debt_document(db: Session, document_id: str) -> bool:
    """An order, or a debt_obligation transaction standing in for one."""
    if db.query(Order.id).filter(Order.id == document_id).first():
        return True
    obligation = (
        db.query(Transaction.id)
        .filter(Transaction.id == document_id, Transaction.type == TransactionType.debt_obligation)
        .first()
    )
    return obligation is not None


def _known_ids(db: Session, related_id: Optional[str]) -> Tuple[Set[str], Set[str]]:
    if not related_id:
        return set(), set()
    order_ids = {related_id} if _is_debt_document(db, related_id) else set()
    client_ids = {related_id} if db.query(Client.id).filter(Client.id == related_id).first() else set()
    return order_ids, client_ids


def resolve_for_ingest(db: Session, record: TransactionRecord) -> RelatedRef:
    """
    Tag a new transaction's related_id as an order or client reference.
    An explicit kind must point at something that exists.
    """
    order_ids, client_ids = _known_ids(db, record.related_id)

    if record.related_kind == ReferenceKind.order and not order_ids:
        raise ValueError(f"Order {record.related_id} not found")
    if record.related_kind == ReferenceKind.client and not client_ids:
        raise ValueError(f"Client {record.related_id} not found")

    ref = resolve_reference(record, order_ids=order_ids, client_ids=client_ids)
    if ref.kind == ReferenceKind.none and record.related_id:
        logger.warning(f"Transaction {record.id}: related id {record.related_id} matches no order or client")
    return ref


def clients_for_reference(db: Session, ref: RelatedRef) -> List[Client]:
    """Clients whose debt can change when a transaction with this reference is written."""
    if ref.kind == ReferenceKind.client and ref.id:
        client = db.query(Client).filter(Client.id == ref.id).first()
        return [client] if client else []

    if ref.order_id:
        order = db.query(Order).filter(Order.id == ref.order_id).first()
        if order:
            return clients_for_order(db, order.client_id, order.customer_name)
        obligation = get_transaction_by_id(db, ref.order_id)
        if obligation and obligation.related_kind == ReferenceKind.client:
            client = db.query(Client).filter(Client.id == obligation.related_id).first()
            return [client] if client else []
    return []


# ==================== CREATE ====================

def build_transaction(db: Session, data: TransactionCreate) -> Transaction:
    """Validate, resolve the reference and add the row to the session without committing."""
    if data.id and get_transaction_by_id(db, data.id):
        raise ValueError(f"Transaction with id {data.id} already exists")

    transaction = Transaction(
        date=data.date or datetime.utcnow(),
        type=data.type,
        amount=data.amount,
        currency=data.currency,
        exchange_rate=data.exchange_rate,
        method=data.method,
        description=data.description,
        related_id=data.related_id,
    )
    if data.id:
        transaction.id = data.id

    db.add(transaction)
    db.flush()

    record = TransactionRecord(
        id=transaction.id,
        date=transaction.date,
        type=data.type,
        amount=data.amount,
        currency=data.currency,
        exchange_rate=data.exchange_rate,
        method=data.method,
        description=data.description,
        related_id=data.related_id,
        related_kind=data.related_kind,
    )
    ref = resolve_for_ingest(db, record)
    transaction.related_kind = ref.kind
    transaction.mentioned_order_id = ref.mentioned_order_id
    return transaction


def create_transaction(db: Session, data: TransactionCreate) -> Transaction:
    """Record a ledger event and refresh the debt cache of the client it touches."""
    try:
        transaction = build_transaction(db, data)
        ref = RelatedRef(transaction.related_kind, transaction.related_id, transaction.mentioned_order_id)
        db.flush()
        refresh_totals_for_clients(db, clients_for_reference(db, ref))
        db.commit()
        db.refresh(transaction)
        logger.info(f"Transaction {transaction.id} ({transaction.type.value}) recorded: {transaction.amount} {transaction.currency.value}")
        return transaction
    except ValueError:
        db.rollback()
        raise
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Error creating transaction: {str(e)}")
        raise ValueError("Failed to create transaction.")
