from decimal import Decimal
from pydantic import BaseModel, Field
from typing import List, Literal, Optional
from datetime import datetime


class PaymentRecord(BaseModel):
    """A repayment applied directly to one debt document."""
    transaction_id: str
    date: datetime
    amount: Decimal
    amount_usd: Decimal
    currency: str
    method: str


class UnpaidOrder(BaseModel):
    """
    One open debt document offered for repayment.
    source is "order" for a sale, "obligation" for a debt_obligation
    transaction and "general" for the synthetic whole-client debt.
    """
    order_id: str
    date: Optional[datetime] = None
    source: Literal["order", "obligation", "general"] = "order"
    total_amount: Decimal
    amount_paid_usd: Decimal
    debt_remaining_usd: Decimal
    items: str = ""
    report_no: Optional[int] = None
    payment_due_date: Optional[datetime] = None
    payments: List[PaymentRecord] = Field(default_factory=list)


class AllocationResult(BaseModel):
    """Documents after FIFO allocation plus whatever the pool could not place."""
    orders: List[UnpaidOrder]
    unallocated_usd: Decimal


class HistoryItemLine(BaseModel):
    name: str
    qty: Decimal
    price: Decimal


class DebtHistoryEntry(BaseModel):
    id: str
    date: datetime
    type: Literal["order", "repayment"]
    description: str
    items: List[HistoryItemLine] = Field(default_factory=list)
    total_amount: Decimal
    amount_paid: Decimal
    debt_change: Decimal
    balance: Decimal = Decimal("0")
    report_no: Optional[int] = None
    payment_due_date: Optional[datetime] = None
    payment_method: Optional[str] = None
    currency: Optional[str] = None
    exchange_rate: Optional[Decimal] = None
    amount_usd: Optional[Decimal] = None


class ClientDebtResponse(BaseModel):
    client_id: str
    name: str
    total_debt: Decimal
    total_purchases: Decimal
    cached_total_debt: Decimal


class UnpaidOrdersResponse(BaseModel):
    client_id: str
    total_debt: Decimal
    orders: List[UnpaidOrder]


class DebtHistoryResponse(BaseModel):
    client_id: str
    total_debt_from_orders: Decimal
    entries: List[DebtHistoryEntry]
