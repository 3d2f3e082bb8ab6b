from decimal import Decimal
from pydantic import BaseModel, Field, model_validator
from typing import Dict, List, Literal, Optional
from datetime import datetime

from metal_erp.models.common import Currency
from metal_erp.schemas.transaction import TransactionResponse

RepaymentMethod = Literal["cash", "bank", "card"]
StatsRange = Literal["week", "month", "year", "all"]


class RepaymentCreate(BaseModel):
    """
    Either a single payment (amount/currency/method) or a mixed one split
    across cash_uzs, cash_usd, card_uzs and bank_uzs.
    order_id targets one open debt document; omitted means the client as a whole.
    """
    order_id: Optional[str] = None
    date: Optional[datetime] = None
    exchange_rate: Optional[Decimal] = Field(None, gt=0)

    amount: Optional[Decimal] = Field(None, ge=0)
    currency: Currency = Currency.USD
    method: RepaymentMethod = "cash"

    cash_uzs: Optional[Decimal] = Field(None, ge=0)
    cash_usd: Optional[Decimal] = Field(None, ge=0)
    card_uzs: Optional[Decimal] = Field(None, ge=0)
    bank_uzs: Optional[Decimal] = Field(None, ge=0)

    @property
    def is_mixed(self) -> bool:
        return any(v is not None for v in (self.cash_uzs, self.cash_usd, self.card_uzs, self.bank_uzs))

    @model_validator(mode="after")
    def single_or_mixed(self):
        if self.amount is not None and self.is_mixed:
            raise ValueError("Provide either amount or mixed payment parts, not both")
        return self


class RepaymentResponse(BaseModel):
    client_id: str
    order_id: Optional[str] = None
    total_usd: Decimal
    client_total_debt: Decimal
    transactions: List[TransactionResponse]


class DailyRepayment(BaseModel):
    date: str
    amount: Decimal
    count: int


class ClientRepaymentTotal(BaseModel):
    client_id: Optional[str] = None
    name: str
    amount: Decimal
    count: int


class RepaymentStatsResponse(BaseModel):
    range: StatsRange
    total_repaid_usd: Decimal
    total_count: int
    average_usd: Decimal
    daily: List[DailyRepayment]
    by_method: Dict[str, Decimal]
    top_clients: List[ClientRepaymentTotal]
