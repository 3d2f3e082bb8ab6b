from decimal import Decimal
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from metal_erp.models.common import Currency, PaymentMethod
from metal_erp.models.transaction import ReferenceKind, TransactionType


class TransactionCreate(BaseModel):
    """
    related_kind may be omitted; the service then works out whether
    related_id names an order, a debt obligation or a client.
    """
    id: Optional[str] = Field(None, max_length=40)
    date: Optional[datetime] = None
    type: TransactionType
    amount: Decimal = Field(..., gt=0)
    currency: Currency = Currency.USD
    exchange_rate: Optional[Decimal] = Field(None, gt=0)
    method: PaymentMethod = PaymentMethod.cash
    description: Optional[str] = None
    related_kind: Optional[ReferenceKind] = None
    related_id: Optional[str] = None


class TransactionResponse(BaseModel):
    id: str
    date: datetime
    type: TransactionType
    amount: Decimal
    currency: Currency
    exchange_rate: Optional[Decimal] = None
    method: PaymentMethod
    description: Optional[str] = None
    related_kind: ReferenceKind
    related_id: Optional[str] = None
    mentioned_order_id: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TransactionListResponse(BaseModel):
    total: int
    transactions: List[TransactionResponse]
