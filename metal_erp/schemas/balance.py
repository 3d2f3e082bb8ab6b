from decimal import Decimal
from pydantic import BaseModel, Field
from typing import List, Literal


class AccountBucket(BaseModel):
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")


class Correction(BaseModel):
    """Data-quality warning: a USD amount that looked like a UZS figure."""
    id: str
    type: Literal["order", "transaction", "expense"]
    original_amount: Decimal
    corrected_amount: Decimal
    reason: str


class LiquiditySummary(BaseModel):
    total_cash_usd: Decimal
    net_bank_usd: Decimal
    net_card_usd: Decimal
    total_liquid_usd: Decimal


class AccountBalancesResponse(BaseModel):
    cash_usd: AccountBucket
    cash_uzs: AccountBucket
    bank_uzs: AccountBucket
    card_uzs: AccountBucket
    exchange_rate: Decimal
    summary: LiquiditySummary
    corrections: List[Correction] = Field(default_factory=list)
