from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from metal_erp.core.config import settings
from metal_erp.logger_config import logger
from metal_erp.models.client import Client
from metal_erp.models.common import Currency, PaymentMethod, PaymentStatus
from metal_erp.models.order import Order, OrderItem
from metal_erp.schemas.order import OrderCreate
from metal_erp.services.client_service import clients_for_order, get_client_by_id, refresh_totals_for_clients
from metal_erp.utils.money import ZERO, safe_rate

# Rails that settle at the till default to these currencies
DEFAULT_CURRENCY = {
    PaymentMethod.cash: Currency.USD,
    PaymentMethod.bank: Currency.UZS,
    PaymentMethod.card: Currency.UZS,
}


def _status_for(paid: Decimal, total: Decimal) -> PaymentStatus:
    if paid >= total - settings.DEBT_EPSILON:
        return PaymentStatus.paid
    if paid > 0:
        return PaymentStatus.partial
    return PaymentStatus.unpaid


# ==================== QUERY OPERATIONS ====================

def get_order_by_id(db: Session, order_id: str) -> Optional[Order]:
    return (
        db.query(Order)
        .options(selectinload(Order.items))
        .filter(Order.id == order_id)
        .first()
    )


def get_all_orders(
    db: Session,
    skip: int = 0,
    limit: int = 100,
    client: Optional[Client] = None,
    payment_method: Optional[PaymentMethod] = None,
    payment_status: Optional[PaymentStatus] = None,
) -> Tuple[List[Order], int]:
    """Orders newest first, optionally narrowed to one client (by id or exact name)."""
    query = db.query(Order).options(selectinload(Order.items))

    if client:
        conditions = [Order.client_id == client.id]
        for name in (client.name, client.company_name):
            if name and name.strip():
                conditions.append(func.lower(func.trim(Order.customer_name)) == name.strip().lower())
        query = query.filter(or_(*conditions))

    if payment_method:
        query = query.filter(Order.payment_method == payment_method)
    if payment_status:
        query = query.filter(Order.payment_status == payment_status)

    total = query.count()
    orders = query.order_by(Order.date.desc(), Order.id.desc()).offset(skip).limit(limit).all()
    return orders, total


def _next_report_no(db: Session) -> int:
    current = db.query(func.max(Order.report_no)).scalar()
    return (current or 0) + 1


# ==================== CREATE ====================

def create_order(db: Session, data: OrderCreate) -> Order:
    """
    Record a sale and refresh the debt cache of every client it matches.

    Paid-at-till sales (cash/bank/card) default to fully paid; debt sales
    start unpaid; mixed sales are paid through client_payment transactions.
    """
    if data.id and db.query(Order.id).filter(Order.id == data.id).first():
        raise ValueError(f"Order with id {data.id} already exists")
    if data.client_id and not get_client_by_id(db, data.client_id):
        raise ValueError(f"Client {data.client_id} not found")

    rate = safe_rate(data.exchange_rate)
    items = []
    subtotal = ZERO
    for item in data.items:
        line_total = item.quantity * item.price_at_sale
        subtotal += line_total
        items.append(OrderItem(
            product_id=item.product_id,
            product_name=item.product_name,
            dimensions=item.dimensions,
            unit=item.unit,
            quantity=item.quantity,
            price_at_sale=item.price_at_sale,
            cost_at_sale=item.cost_at_sale,
            total=line_total,
        ))

    total = subtotal + data.vat_amount
    total_uzs = data.total_amount_uzs if data.total_amount_uzs is not None else total * rate

    if data.amount_paid is not None:
        paid = data.amount_paid
    elif data.payment_method in DEFAULT_CURRENCY:
        paid = total
    else:
        paid = ZERO

    order = Order(
        report_no=data.report_no if data.report_no is not None else _next_report_no(db),
        date=data.date or datetime.utcnow(),
        customer_name=data.customer_name.strip(),
        client_id=data.client_id,
        seller_name=data.seller_name,
        subtotal_amount=subtotal,
        vat_amount=data.vat_amount,
        total_amount=total,
        exchange_rate=rate,
        total_amount_uzs=total_uzs,
        payment_method=data.payment_method,
        payment_status=_status_for(paid, total),
        payment_currency=data.payment_currency or DEFAULT_CURRENCY.get(data.payment_method),
        amount_paid=paid,
        amount_paid_usd=paid,
        payment_due_date=data.payment_due_date,
        items=items,
    )
    if data.id:
        order.id = data.id

    db.add(order)
    try:
        db.flush()
        refresh_totals_for_clients(db, clients_for_order(db, order.client_id, order.customer_name))
        db.commit()
        db.refresh(order)
        logger.info(f"Order {order.id} created: {total} USD via {order.payment_method.value}")
        return order
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Error creating order: {str(e)}")
        raise ValueError("Failed to create order.")


def apply_payment_to_order(order: Order, amount_usd: Decimal) -> None:
    """
    Add a repayment to a targeted order and move its status to partial/paid.
    amount_paid keeps what was taken at the till; repayments only move amount_paid_usd.
    """
    paid_before = order.amount_paid_usd if order.amount_paid_usd is not None else (order.amount_paid or ZERO)
    new_paid = paid_before + amount_usd
    order.amount_paid_usd = new_paid
    order.payment_status = (
        PaymentStatus.paid
        if new_paid >= (order.total_amount or ZERO) - settings.DEBT_EPSILON
        else PaymentStatus.partial
    )
