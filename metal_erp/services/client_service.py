from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from metal_erp.core.config import settings
from metal_erp.logger_config import logger
from metal_erp.models.client import Client, ClientType
from metal_erp.schemas.debt import ClientDebtResponse, DebtHistoryResponse, UnpaidOrdersResponse
from metal_erp.schemas.records import ClientRecord, OrderRecord, TransactionRecord
from metal_erp.services.debt_service import (
    client_debt,
    client_purchases,
    debt_history,
    total_debt_from_history,
    unpaid_orders,
)
from metal_erp.services.ledger import load_orders, load_transactions

# ==================== QUERY OPERATIONS ====================

def get_client_by_id(db: Session, client_id: str) -> Optional[Client]:
    """Get client by ID."""
    return db.query(Client).filter(Client.id == client_id).first()


def get_all_clients(
    db: Session,
    skip: int = 0,
    limit: int = 100,
    search: Optional[str] = None,
    type: Optional[ClientType] = None,
) -> Tuple[List[Client], int]:
    """Get all clients with optional search by name, company, phone or INN."""
    query = db.query(Client)

    if type:
        query = query.filter(Client.type == type)

    if search:
        search_term = f"%{search}%"
        query = query.filter(
            or_(
                Client.name.ilike(search_term),
                Client.company_name.ilike(search_term),
                Client.phone.ilike(search_term),
                Client.inn.ilike(search_term),
            )
        )

    total = query.count()
    clients = query.order_by(Client.name).offset(skip).limit(limit).all()
    return clients, total


def clients_for_order(db: Session, client_id: Optional[str], customer_name: Optional[str]) -> List[Client]:
    """Clients an order belongs to: by client_id, else by exact customer name."""
    conditions = []
    if client_id:
        conditions.append(Client.id == client_id)
    name = (customer_name or "").strip().lower()
    if name:
        conditions.append(func.lower(func.trim(Client.name)) == name)
        conditions.append(func.lower(func.trim(Client.company_name)) == name)
    if not conditions:
        return []
    return db.query(Client).filter(or_(*conditions)).all()


# ==================== CREATE / UPDATE ====================

def create_client(
    db: Session,
    name: str,
    company_name: Optional[str] = None,
    type: ClientType = ClientType.individual,
    phone: Optional[str] = None,
    inn: Optional[str] = None,
    notes: Optional[str] = None,
    client_id: Optional[str] = None,
) -> Client:
    """Create a new client; debt caches start from whatever the ledger already holds."""
    if client_id and get_client_by_id(db, client_id):
        raise ValueError(f"Client with id {client_id} already exists")

    client = Client(
        name=name.strip(),
        company_name=company_name,
        type=type,
        phone=phone,
        inn=inn,
        notes=notes,
        total_debt=Decimal("0"),
        total_purchases=Decimal("0"),
    )
    if client_id:
        client.id = client_id

    db.add(client)
    try:
        db.flush()
        # Orders sold to this name before registration already count
        refresh_client_totals(db, client)
        db.commit()
        db.refresh(client)
        return client
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Error creating client: {str(e)}")
        raise ValueError("Failed to create client. Client ID may already exist.")


def update_client(
    db: Session,
    client_id: str,
    name: Optional[str] = None,
    company_name: Optional[str] = None,
    type: Optional[ClientType] = None,
    phone: Optional[str] = None,
    inn: Optional[str] = None,
    notes: Optional[str] = None,
) -> Optional[Client]:
    """Update client details. Debt caches are not editable and follow the ledger."""
    client = get_client_by_id(db, client_id)
    if not client:
        return None

    if name is not None:
        client.name = name.strip()
    if company_name is not None:
        client.company_name = company_name
    if type is not None:
        client.type = type
    if phone is not None:
        client.phone = phone
    if inn is not None:
        client.inn = inn
    if notes is not None:
        client.notes = notes

    try:
        db.flush()
        # A rename can change which orders match by name
        refresh_client_totals(db, client)
        db.commit()
        db.refresh(client)
        return client
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Error updating client: {str(e)}")
        raise ValueError("Failed to update client.")


# ==================== DEBT CACHE ====================

def refresh_client_totals(
    db: Session,
    client: Client,
    orders: Optional[Sequence[OrderRecord]] = None,
    transactions: Optional[Sequence[TransactionRecord]] = None,
) -> Decimal:
    """
    Recompute the cached total_debt/total_purchases from the ledger.
    Does not commit; callers write the cache in the same transaction as the
    order or payment that changed it.
    """
    if orders is None:
        orders = load_orders(db)
    if transactions is None:
        transactions = load_transactions(db)

    record = ClientRecord.model_validate(client)
    debt = client_debt(record, orders, transactions)
    purchases = client_purchases(record, orders)

    client.total_debt = debt
    client.total_purchases = purchases
    logger.debug(f"Client {client.id} totals refreshed: debt={debt}, purchases={purchases}")
    return debt


def refresh_totals_for_clients(db: Session, clients: Iterable[Client]) -> None:
    clients = list(clients)
    if not clients:
        return
    orders = load_orders(db)
    transactions = load_transactions(db)
    for client in clients:
        refresh_client_totals(db, client, orders, transactions)


def recalculate_all_client_debts(db: Session) -> Tuple[int, int]:
    """
    Rewrite every cached total_debt that drifted from the ledger.
    Returns (clients checked, clients updated).
    """
    orders = load_orders(db)
    transactions = load_transactions(db)
    clients = db.query(Client).all()

    updated = 0
    for client in clients:
        record = ClientRecord.model_validate(client)
        debt = client_debt(record, orders, transactions)
        purchases = client_purchases(record, orders)
        if abs(debt - record.total_debt) > settings.DEBT_EPSILON:
            logger.info(f"Client {client.id} debt cache {record.total_debt} -> {debt}")
            client.total_debt = debt
            client.total_purchases = purchases
            updated += 1

    try:
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Error recalculating client debts")
        raise ValueError("Failed to recalculate client debts.")

    logger.info(f"Debt recalculation finished: {updated} of {len(clients)} clients updated")
    return len(clients), updated


# ==================== DEBT VIEWS ====================

def get_client_debt(db: Session, client: Client) -> ClientDebtResponse:
    orders = load_orders(db)
    transactions = load_transactions(db)
    record = ClientRecord.model_validate(client)
    return ClientDebtResponse(
        client_id=client.id,
        name=client.name,
        total_debt=client_debt(record, orders, transactions),
        total_purchases=client_purchases(record, orders),
        cached_total_debt=record.total_debt,
    )


def get_unpaid_orders(db: Session, client: Client, as_of: Optional[datetime] = None) -> UnpaidOrdersResponse:
    orders = load_orders(db)
    transactions = load_transactions(db)
    record = ClientRecord.model_validate(client)
    return UnpaidOrdersResponse(
        client_id=client.id,
        total_debt=client_debt(record, orders, transactions),
        orders=unpaid_orders(record, orders, transactions, as_of=as_of or datetime.utcnow()),
    )


def get_debt_history(db: Session, client: Client) -> DebtHistoryResponse:
    orders = load_orders(db)
    transactions = load_transactions(db)
    record = ClientRecord.model_validate(client)
    entries = debt_history(record, orders, transactions)
    return DebtHistoryResponse(
        client_id=client.id,
        total_debt_from_orders=total_debt_from_history(entries),
        entries=entries,
    )
