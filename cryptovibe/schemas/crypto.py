"""
Pydantic schemas for crypto asset operations.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator


class AssetCreate(BaseModel):
    symbol: str = Field(min_length=1, max_length=20)
    name: str | None = Field(default=None, max_length=100)
    quantity: Decimal = Field(gt=0)
    buy_price: Decimal = Field(ge=0)

    @field_validator("symbol")
    @classmethod
    def normalize_symbol(cls, v: str) -> str:
        return v.strip().upper()


class BuyRequest(BaseModel):
    quantity: Decimal = Field(gt=0)
    price: Decimal = Field(ge=0)


class SellRequest(BaseModel):
    quantity: Decimal = Field(gt=0)


class QuantityUpdate(BaseModel):
    quantity: Decimal = Field(ge=0)
    avg_price: Decimal | None = Field(default=None, ge=0)


class AssetResponse(BaseModel):
    id: uuid.UUID
    symbol: str
    name: str | None
    quantity: Decimal
    buy_price: Decimal
    created_at: datetime

    model_config = {"from_attributes": True}


class SellResult(BaseModel):
    success: bool
    remaining_quantity: Decimal
    removed: bool
