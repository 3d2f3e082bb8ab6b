from sqlalchemy import Column, DateTime, Enum, Numeric, String, Text
from sqlalchemy.sql import func

from metal_erp.core.database import Base
from metal_erp.models.common import Currency, PaymentMethod, generate_custom_id


class Expense(Base):
    """Outflow not tied to a client: rent, salaries, fuel and so on."""
    __tablename__ = "expenses"

    id = Column(String(40), primary_key=True, default=lambda: generate_custom_id("EXP"))
    date = Column(DateTime, nullable=False, index=True)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=False, default="Other")
    amount = Column(Numeric(20, 2), nullable=False)
    currency = Column(Enum(Currency), nullable=False, default=Currency.USD)
    exchange_rate = Column(Numeric(15, 2), nullable=True)
    payment_method = Column(Enum(PaymentMethod), nullable=False, default=PaymentMethod.cash)
    employee_id = Column(String(40), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
