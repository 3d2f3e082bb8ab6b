from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from decimal import Decimal

from metal_erp.models.client import ClientType


class ClientBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    company_name: Optional[str] = Field(None, max_length=255)
    type: ClientType = ClientType.individual
    phone: Optional[str] = Field(None, max_length=30)
    inn: Optional[str] = Field(None, max_length=20)
    notes: Optional[str] = None


class ClientCreate(ClientBase):
    # Legacy imports keep their original id
    id: Optional[str] = Field(None, max_length=40)


class ClientUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    company_name: Optional[str] = Field(None, max_length=255)
    type: Optional[ClientType] = None
    phone: Optional[str] = Field(None, max_length=30)
    inn: Optional[str] = Field(None, max_length=20)
    notes: Optional[str] = None


class ClientResponse(ClientBase):
    id: str
    total_debt: Decimal
    total_purchases: Decimal
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ClientListResponse(BaseModel):
    total: int
    clients: List[ClientResponse]


class RecalculateDebtsResponse(BaseModel):
    checked: int
    updated: int
