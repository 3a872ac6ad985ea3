"""
Pydantic schemas for credit packages, grants and balances.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class CreditPackageCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    # Amounts are validated by the ledger so the error kind is InvalidAmount
    credit_amount: int
    price: int


class CreditPackageResponse(BaseModel):
    id: int
    name: str
    credit_amount: int
    price: int

    model_config = {"from_attributes": True}


class CreditGrantCreate(BaseModel):
    user_id: int
    # Amount is validated by the ledger so the error kind is InvalidAmount
    credits: int
    price_paid: int = 0


class CreditGrantResponse(BaseModel):
    id: int
    user_id: int
    credit_package_id: Optional[int] = None
    credits: int
    price_paid: int
    granted_at: datetime

    model_config = {"from_attributes": True}


class CreditPurchaseItem(BaseModel):
    name: Optional[str] = None
    purchased_credits: int
    price_paid: int
    purchase_at: datetime


class CreditSummary(BaseModel):
    granted: int
    used: int
    remaining: int
