from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from metal_erp.core.database import Base
from metal_erp.models.common import Currency, PaymentMethod, PaymentStatus, generate_custom_id


class Order(Base):
    """A completed sale. Amounts are USD unless the column says UZS."""
    __tablename__ = "orders"

    id = Column(String(40), primary_key=True, default=lambda: generate_custom_id("ORD"))
    report_no = Column(Integer, nullable=True)
    date = Column(DateTime, nullable=False, index=True)

    customer_name = Column(String(255), nullable=False, default="")
    client_id = Column(String(40), ForeignKey("clients.id"), nullable=True, index=True)
    seller_name = Column(String(255), nullable=True)

    subtotal_amount = Column(Numeric(15, 2), default=0)
    vat_amount = Column(Numeric(15, 2), default=0)
    total_amount = Column(Numeric(15, 2), nullable=False, default=0)
    exchange_rate = Column(Numeric(15, 2), nullable=True)
    total_amount_uzs = Column(Numeric(20, 2), default=0)

    payment_method = Column(Enum(PaymentMethod), nullable=False)
    payment_status = Column(Enum(PaymentStatus), nullable=False, default=PaymentStatus.paid)
    payment_currency = Column(Enum(Currency), nullable=True)
    amount_paid = Column(Numeric(15, 2), default=0)
    amount_paid_usd = Column(Numeric(15, 2), nullable=True)
    payment_due_date = Column(DateTime, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    client = relationship("Client")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String(40), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(40), nullable=True)
    product_name = Column(String(255), nullable=False)
    dimensions = Column(String(100), nullable=True)
    unit = Column(String(10), nullable=True)
    quantity = Column(Numeric(15, 3), nullable=False, default=0)
    price_at_sale = Column(Numeric(15, 2), nullable=False, default=0)
    cost_at_sale = Column(Numeric(15, 2), nullable=False, default=0)
    total = Column(Numeric(15, 2), nullable=False, default=0)

    order = relationship("Order", back_populates="items")
