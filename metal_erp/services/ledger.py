from sqlalchemy.orm import Session, selectinload
from typing import List

from metal_erp.models.expense import Expense
from metal_erp.models.order import Order
from metal_erp.models.transaction import Transaction
from metal_erp.schemas.records import ExpenseRecord, OrderRecord, TransactionRecord

# ==================== QUERY OPERATIONS ====================
# The ledger computations work on the full log; rows come back oldest first.


def load_orders(db: Session) -> List[OrderRecord]:
    orders = (
        db.query(Order)
        .options(selectinload(Order.items))
        .order_by(Order.date, Order.id)
        .all()
    )
    return [OrderRecord.model_validate(o) for o in orders]


def load_transactions(db: Session) -> List[TransactionRecord]:
    transactions = db.query(Transaction).order_by(Transaction.date, Transaction.id).all()
    return [TransactionRecord.model_validate(t) for t in transactions]


def load_expenses(db: Session) -> List[ExpenseRecord]:
    expenses = db.query(Expense).order_by(Expense.date, Expense.id).all()
    return [ExpenseRecord.model_validate(e) for e in expenses]
