import enum
from sqlalchemy import Column, DateTime, Enum, Numeric, String, Text
from sqlalchemy.sql import func

from metal_erp.core.database import Base
from metal_erp.models.common import Currency, PaymentMethod, generate_custom_id


class TransactionType(str, enum.Enum):
    client_payment = "client_payment"
    debt_obligation = "debt_obligation"
    supplier_payment = "supplier_payment"
    client_return = "client_return"
    client_refund = "client_refund"
    expense = "expense"


class ReferenceKind(str, enum.Enum):
    order = "order"
    client = "client"
    none = "none"


class Transaction(Base):
    """
    Money movement in the ledger.
    related_kind/related_id is the tagged reference resolved when the row is written;
    mentioned_order_id keeps an order id recovered from legacy description text.
    """
    __tablename__ = "transactions"

    id = Column(String(40), primary_key=True, default=lambda: generate_custom_id("TRX"))
    date = Column(DateTime, nullable=False, index=True)
    type = Column(Enum(TransactionType), nullable=False, index=True)

    amount = Column(Numeric(20, 2), nullable=False, default=0)
    currency = Column(Enum(Currency), nullable=False, default=Currency.USD)
    exchange_rate = Column(Numeric(15, 2), nullable=True)
    method = Column(Enum(PaymentMethod), nullable=False, default=PaymentMethod.cash)
    description = Column(Text, nullable=True)

    related_kind = Column(Enum(ReferenceKind), nullable=False, default=ReferenceKind.none)
    related_id = Column(String(40), nullable=True, index=True)
    mentioned_order_id = Column(String(40), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
