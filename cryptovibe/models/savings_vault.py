"""
Savings vault model.

A named savings goal with a target and the amount put aside so far.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import String, Boolean, DateTime, Numeric, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from cryptovibe.models.base import Base


class SavingsVault(Base):
    __tablename__ = "savings_vault"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    target_amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    current_amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    is_completed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    def __repr__(self) -> str:
        return f"<SavingsVault {self.name} {self.current_amount}/{self.target_amount}>"
