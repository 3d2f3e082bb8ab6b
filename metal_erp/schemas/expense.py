from decimal import Decimal
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from metal_erp.models.common import Currency, PaymentMethod


class ExpenseCreate(BaseModel):
    """Single expense; date defaults to now on the server if not provided."""
    date: Optional[datetime] = None
    description: Optional[str] = None
    category: str = Field("Other", min_length=1, max_length=100)
    amount: Decimal = Field(..., gt=0)
    currency: Currency = Currency.USD
    exchange_rate: Optional[Decimal] = Field(None, gt=0)
    payment_method: PaymentMethod = PaymentMethod.cash
    employee_id: Optional[str] = None


class ExpenseResponse(BaseModel):
    id: str
    date: datetime
    description: Optional[str] = None
    category: str
    amount: Decimal
    currency: Currency
    exchange_rate: Optional[Decimal] = None
    payment_method: PaymentMethod
    employee_id: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ExpenseListResponse(BaseModel):
    total: int
    expenses: List[ExpenseResponse]
