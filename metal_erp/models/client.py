import enum
from sqlalchemy import Column, DateTime, Enum, Numeric, String, Text
from sqlalchemy.sql import func

from metal_erp.core.database import Base
from metal_erp.models.common import generate_custom_id


class ClientType(str, enum.Enum):
    individual = "individual"
    legal = "legal"


class Client(Base):
    """Counterparty buying from us; individual or legal entity."""
    __tablename__ = "clients"

    id = Column(String(40), primary_key=True, default=lambda: generate_custom_id("CLI"))
    name = Column(String(255), nullable=False, index=True)
    company_name = Column(String(255), nullable=True)
    type = Column(Enum(ClientType), nullable=False, default=ClientType.individual)
    phone = Column(String(30), nullable=True)
    inn = Column(String(20), nullable=True)
    notes = Column(Text, nullable=True)

    # Caches recomputed from orders/transactions, never edited by hand
    total_debt = Column(Numeric(15, 2), nullable=False, default=0)
    total_purchases = Column(Numeric(15, 2), nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Client(id='{self.id}', name='{self.name}')>"
