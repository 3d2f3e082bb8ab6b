"""
Ledger records as the computation layer sees them.

Every model reads from ORM rows (from_attributes) or plain dicts, and money
fields pass through to_decimal so the services never deal with None/NaN.
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated, List, Optional

from pydantic import AfterValidator, BaseModel, BeforeValidator, Field

from metal_erp.models.common import Currency, PaymentMethod, PaymentStatus
from metal_erp.models.transaction import ReferenceKind, TransactionType
from metal_erp.utils.money import to_decimal, to_optional_decimal


def _to_lower_str(v):
    if v is None:
        return v
    if hasattr(v, "value"):
        return v.value
    return str(v).strip().lower()


def _to_upper_str(v):
    if v is None or (isinstance(v, str) and not v.strip()):
        return None
    if hasattr(v, "value"):
        return v.value
    return str(v).strip().upper()


def _currency_or_usd(v):
    return _to_upper_str(v) or Currency.USD.value


def _method_or_cash(v):
    return _to_lower_str(v) or PaymentMethod.cash.value


def _naive_utc(v: datetime) -> datetime:
    # Mixed aware/naive timestamps can't be ordered; keep everything naive UTC.
    if v.tzinfo is not None:
        return v.astimezone(timezone.utc).replace(tzinfo=None)
    return v


Money = Annotated[Decimal, BeforeValidator(to_decimal)]
OptionalMoney = Annotated[Optional[Decimal], BeforeValidator(to_optional_decimal)]
Timestamp = Annotated[datetime, AfterValidator(_naive_utc)]
OptionalTimestamp = Annotated[Optional[datetime], AfterValidator(lambda v: _naive_utc(v) if v else v)]

MethodField = Annotated[PaymentMethod, BeforeValidator(_method_or_cash)]
CurrencyField = Annotated[Currency, BeforeValidator(_currency_or_usd)]
OptionalCurrencyField = Annotated[Optional[Currency], BeforeValidator(_to_upper_str)]


class ClientRecord(BaseModel):
    id: str
    name: str = ""
    company_name: Optional[str] = None
    total_debt: Money = Decimal("0")
    total_purchases: Money = Decimal("0")

    class Config:
        from_attributes = True


class OrderItemRecord(BaseModel):
    product_name: str = ""
    quantity: Money = Decimal("0")
    price_at_sale: Money = Decimal("0")
    total: Money = Decimal("0")

    class Config:
        from_attributes = True


class OrderRecord(BaseModel):
    id: str
    date: Timestamp
    customer_name: Optional[str] = ""
    client_id: Optional[str] = None
    report_no: Optional[int] = None
    total_amount: Money = Decimal("0")
    total_amount_uzs: Money = Decimal("0")
    exchange_rate: OptionalMoney = None
    amount_paid: Money = Decimal("0")
    amount_paid_usd: OptionalMoney = None
    payment_method: MethodField
    payment_status: Annotated[PaymentStatus, BeforeValidator(_to_lower_str)] = PaymentStatus.paid
    payment_currency: OptionalCurrencyField = None
    payment_due_date: OptionalTimestamp = None
    items: List[OrderItemRecord] = Field(default_factory=list)

    class Config:
        from_attributes = True


class TransactionRecord(BaseModel):
    id: str
    date: Timestamp
    type: Annotated[TransactionType, BeforeValidator(_to_lower_str)]
    amount: Money = Decimal("0")
    currency: CurrencyField = Currency.USD
    exchange_rate: OptionalMoney = None
    method: MethodField = PaymentMethod.cash
    description: Optional[str] = None
    related_id: Optional[str] = None
    # None means "not resolved yet" (legacy snapshots); resolved at read time
    related_kind: Optional[ReferenceKind] = None
    mentioned_order_id: Optional[str] = None

    class Config:
        from_attributes = True


class ExpenseRecord(BaseModel):
    id: str
    date: Timestamp
    amount: Money = Decimal("0")
    currency: CurrencyField = Currency.USD
    exchange_rate: OptionalMoney = None
    payment_method: MethodField = PaymentMethod.cash
    category: Optional[str] = None
    description: Optional[str] = None

    class Config:
        from_attributes = True
