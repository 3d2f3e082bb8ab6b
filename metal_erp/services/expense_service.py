from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from metal_erp.logger_config import logger
from metal_erp.models.expense import Expense
from metal_erp.schemas.expense import ExpenseCreate


def create_expense(db: Session, data: ExpenseCreate) -> Expense:
    """Create a single expense; date defaults to now."""
    expense = Expense(
        date=data.date or datetime.utcnow(),
        description=data.description,
        category=data.category,
        amount=data.amount,
        currency=data.currency,
        exchange_rate=data.exchange_rate,
        payment_method=data.payment_method,
        employee_id=data.employee_id,
    )
    db.add(expense)
    try:
        db.commit()
        db.refresh(expense)
        return expense
    except Exception:
        db.rollback()
        logger.exception("Error creating expense")
        raise ValueError("Failed to create expense.")


def get_all_expenses(
    db: Session,
    skip: int = 0,
    limit: int = 50,
    category: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
) -> Tuple[List[Expense], int]:
    """List expenses newest first with optional category/date filters."""
    query = db.query(Expense)

    if category:
        query = query.filter(Expense.category == category)
    if date_from:
        query = query.filter(Expense.date >= date_from)
    if date_to:
        query = query.filter(Expense.date <= date_to)

    total = query.count()
    expenses = query.order_by(Expense.date.desc()).offset(skip).limit(limit).all()
    return expenses, total
