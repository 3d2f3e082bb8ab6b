"""
Decides which orders and transactions belong to a client.

Orders match by client_id first, then by exact (trimmed, case-insensitive)
customer name against the client's name or company name. Transactions match
through their tagged reference: the client itself, or one of the client's
debt documents. No fuzzy matching.
"""
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Collection, Iterable, List, Optional, Set, Union

from metal_erp.core.config import settings
from metal_erp.models.common import PaymentMethod, PaymentStatus
from metal_erp.models.transaction import ReferenceKind, TransactionType
from metal_erp.schemas.records import ClientRecord, OrderRecord, TransactionRecord

# Legacy rows carry the order id only in the description, e.g.
# "Погашение долга заказа ORD-123 (нал)" or "Долг по заказу ORD-123".
LEGACY_PAYMENT_REF = re.compile(r"заказа\s+(\S+)", re.IGNORECASE)
LEGACY_OBLIGATION_REF = re.compile(r"заказу?\s+(\S+)", re.IGNORECASE)
_TRAILING_NOTE = re.compile(r"\s*\(.*$")

DEBT_STATUSES = {PaymentStatus.unpaid, PaymentStatus.partial}


@dataclass(frozen=True)
class RelatedRef:
    kind: ReferenceKind
    id: Optional[str] = None
    mentioned_order_id: Optional[str] = None

    @property
    def order_id(self) -> Optional[str]:
        """Debt document this record is tied to, explicit reference first."""
        if self.kind == ReferenceKind.order:
            return self.id
        return self.mentioned_order_id


# ==================== ORDERS ====================

def _norm_name(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def order_paid_usd(order: OrderRecord) -> Decimal:
    if order.amount_paid_usd is not None:
        return order.amount_paid_usd
    return order.amount_paid


def has_open_balance(order: OrderRecord) -> bool:
    return (order.total_amount - order_paid_usd(order)) > settings.DEBT_EPSILON


def is_debt_order(order: OrderRecord) -> bool:
    """Sold on credit, marked unpaid/partial, or still carrying an open balance."""
    return (
        order.payment_method == PaymentMethod.debt
        or order.payment_status in DEBT_STATUSES
        or has_open_balance(order)
    )


def order_matches_client(order: OrderRecord, client: ClientRecord) -> bool:
    if order.client_id and order.client_id == client.id:
        return True

    order_name = _norm_name(order.customer_name)
    if not order_name:
        return False

    client_name = _norm_name(client.name)
    if client_name and order_name == client_name:
        return True

    company_name = _norm_name(client.company_name)
    if company_name and order_name == company_name:
        return True

    return False


def client_debt_orders(client: ClientRecord, orders: Iterable[OrderRecord]) -> List[OrderRecord]:
    return [o for o in orders if order_matches_client(o, client) and is_debt_order(o)]


def debt_order_ids(client: ClientRecord, orders: Iterable[OrderRecord]) -> Set[str]:
    """Ids of the client's debt orders; must be built before any transaction matching."""
    return {o.id for o in client_debt_orders(client, orders)}


# ==================== TRANSACTIONS ====================

def extract_legacy_order_id(description: Optional[str], pattern: re.Pattern = LEGACY_PAYMENT_REF) -> Optional[str]:
    """Order id following the legacy marker word, without any "(...)" note glued to it."""
    if not description:
        return None
    match = pattern.search(description)
    if not match:
        return None
    token = _TRAILING_NOTE.sub("", match.group(1)).strip().rstrip(",.;)")
    return token or None


def resolve_reference(
    tx: TransactionRecord,
    order_ids: Collection[str] = (),
    client_ids: Collection[str] = (),
    legacy_refs: Optional[bool] = None,
) -> RelatedRef:
    """
    Turn a transaction's related_id into an explicit reference.

    An explicit related_kind always wins. Otherwise related_id is looked up
    among known debt documents (orders and debt obligations) and clients.
    With legacy parsing enabled the description is scanned for an order id.
    order_ids and client_ids are only checked with `in`; pass sets or mappings.
    """
    if legacy_refs is None:
        legacy_refs = settings.LEGACY_DESCRIPTION_REFS

    mentioned = tx.mentioned_order_id
    if mentioned is None and legacy_refs:
        pattern = LEGACY_OBLIGATION_REF if tx.type == TransactionType.debt_obligation else LEGACY_PAYMENT_REF
        mentioned = extract_legacy_order_id(tx.description, pattern)

    if tx.related_kind is not None:
        return RelatedRef(tx.related_kind, tx.related_id, mentioned)

    related = tx.related_id
    if not related:
        return RelatedRef(ReferenceKind.none, None, mentioned)
    if related in client_ids:
        return RelatedRef(ReferenceKind.client, related, mentioned)
    if related in order_ids:
        return RelatedRef(ReferenceKind.order, related, mentioned)
    return RelatedRef(ReferenceKind.none, related, mentioned)


def transaction_matches_client(tx: TransactionRecord, client: ClientRecord, client_order_ids: Set[str]) -> bool:
    """Two-hop match: straight to the client, or to one of its debt orders."""
    ref = resolve_reference(tx, order_ids=client_order_ids, client_ids=[client.id])
    if ref.kind == ReferenceKind.client and ref.id == client.id:
        return True
    if ref.kind == ReferenceKind.order and ref.id in client_order_ids:
        return True
    return False


def is_client_repayment(tx: TransactionRecord, client: ClientRecord, debt_ids: Set[str]) -> bool:
    """
    client_payment that reduces this client's debt: paid against one of its
    debt orders, or paid to the client as a whole unless the description ties
    it to some order that isn't a debt order.
    """
    if tx.type != TransactionType.client_payment:
        return False

    ref = resolve_reference(tx, order_ids=debt_ids, client_ids=[client.id])
    if ref.kind == ReferenceKind.order:
        return ref.id in debt_ids
    if ref.kind == ReferenceKind.client and ref.id == client.id:
        if ref.mentioned_order_id:
            return ref.mentioned_order_id in debt_ids
        return True
    return False


def matches(
    record: Union[OrderRecord, TransactionRecord],
    client: ClientRecord,
    client_order_ids: Optional[Set[str]] = None,
) -> bool:
    """Single entry point: does this order or transaction belong to the client?"""
    if isinstance(record, OrderRecord):
        return order_matches_client(record, client)
    return transaction_matches_client(record, client, client_order_ids or set())
