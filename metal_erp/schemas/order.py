from decimal import Decimal
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from metal_erp.models.common import Currency, PaymentMethod, PaymentStatus


class OrderItemCreate(BaseModel):
    product_id: Optional[str] = None
    product_name: str = Field(..., min_length=1, max_length=255)
    dimensions: Optional[str] = None
    unit: Optional[str] = Field(None, max_length=10)
    quantity: Decimal = Field(..., gt=0)
    price_at_sale: Decimal = Field(..., ge=0)
    cost_at_sale: Decimal = Field(Decimal("0"), ge=0)


class OrderCreate(BaseModel):
    """
    A sale. Amounts are USD; total_amount_uzs and the rate snapshot are
    filled from exchange_rate when not given.
    """
    id: Optional[str] = Field(None, max_length=40)
    date: Optional[datetime] = None
    report_no: Optional[int] = None
    customer_name: str = Field(..., min_length=1, max_length=255)
    client_id: Optional[str] = None
    seller_name: Optional[str] = None
    items: List[OrderItemCreate] = Field(..., min_length=1)
    vat_amount: Decimal = Field(Decimal("0"), ge=0)
    exchange_rate: Optional[Decimal] = Field(None, gt=0)
    total_amount_uzs: Optional[Decimal] = Field(None, ge=0)
    payment_method: PaymentMethod
    payment_currency: Optional[Currency] = None
    amount_paid: Optional[Decimal] = Field(None, ge=0)
    payment_due_date: Optional[datetime] = None


class OrderItemResponse(BaseModel):
    id: int
    product_id: Optional[str] = None
    product_name: str
    dimensions: Optional[str] = None
    unit: Optional[str] = None
    quantity: Decimal
    price_at_sale: Decimal
    cost_at_sale: Decimal
    total: Decimal

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    id: str
    date: datetime
    report_no: Optional[int] = None
    customer_name: str
    client_id: Optional[str] = None
    seller_name: Optional[str] = None
    subtotal_amount: Decimal
    vat_amount: Decimal
    total_amount: Decimal
    exchange_rate: Optional[Decimal] = None
    total_amount_uzs: Decimal
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    payment_currency: Optional[Currency] = None
    amount_paid: Decimal
    amount_paid_usd: Optional[Decimal] = None
    payment_due_date: Optional[datetime] = None
    items: List[OrderItemResponse] = []

    class Config:
        from_attributes = True


class OrderListResponse(BaseModel):
    total: int
    orders: List[OrderResponse]
