"""
Pydantic schemas for personal finance operations.
"""

import datetime as dt
import uuid
from decimal import Decimal

from pydantic import BaseModel, Field

from cryptovibe.models.enums import TransactionKind, CategoryKind


# --- Transactions ---

class TransactionCreate(BaseModel):
    category_id: uuid.UUID | None = None
    amount: Decimal = Field(gt=0)
    date: dt.date
    note: str | None = Field(default=None, max_length=255)
    type: TransactionKind


class TransactionUpdate(BaseModel):
    """Partial update. Only fields that are explicitly set are written."""
    category_id: uuid.UUID | None = None
    amount: Decimal | None = Field(default=None, gt=0)
    date: dt.date | None = None
    note: str | None = Field(default=None, max_length=255)
    type: TransactionKind | None = None


class TransactionFilter(BaseModel):
    type: TransactionKind | None = None
    start_date: dt.date | None = None
    end_date: dt.date | None = None
    limit: int | None = Field(default=None, ge=1)


class TransactionResponse(BaseModel):
    id: uuid.UUID
    category_id: uuid.UUID | None
    amount: Decimal
    date: dt.date
    note: str | None
    type: TransactionKind
    created_at: dt.datetime

    model_config = {"from_attributes": True}


class MonthlySummary(BaseModel):
    total_income: Decimal = Decimal("0")
    total_expense: Decimal = Decimal("0")
    total_investment: Decimal = Decimal("0")
    net_balance: Decimal = Decimal("0")
    transaction_count: int = 0


# --- Categories ---

class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    type: CategoryKind
    icon: str = Field(default="circle", max_length=50)
    color: str = Field(default="#6366f1", max_length=20)


class CategoryUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    type: CategoryKind | None = None
    icon: str | None = Field(default=None, max_length=50)
    color: str | None = Field(default=None, max_length=20)


class CategoryResponse(BaseModel):
    id: uuid.UUID
    name: str
    type: CategoryKind
    icon: str
    color: str
    created_at: dt.datetime

    model_config = {"from_attributes": True}


class CategoryDeleteResult(BaseModel):
    success: bool
    message: str
    linked_count: int | None = None


# --- Savings vaults ---

class SavingsVaultCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    target_amount: Decimal = Field(gt=0)
    current_amount: Decimal = Field(default=Decimal("0"), ge=0)


class SavingsVaultUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    target_amount: Decimal | None = Field(default=None, gt=0)
    current_amount: Decimal | None = Field(default=None, ge=0)


class SavingsDeposit(BaseModel):
    amount: Decimal = Field(gt=0)


class SavingsVaultResponse(BaseModel):
    id: uuid.UUID
    name: str
    target_amount: Decimal
    current_amount: Decimal
    is_completed: bool
    created_at: dt.datetime

    model_config = {"from_attributes": True}
