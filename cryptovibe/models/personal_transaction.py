"""
Personal transaction model.

An income, expense or investment line in the personal finance
ledger, optionally linked to a category.
"""

import datetime as dt
import uuid
from decimal import Decimal

from sqlalchemy import (
    String, Date, DateTime, Numeric, ForeignKey,
    Enum as SAEnum, Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cryptovibe.models.base import Base
from cryptovibe.models.enums import TransactionKind


class PersonalTransaction(Base):
    __tablename__ = "personal_transactions"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    category_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("finance_categories.id"), nullable=True, index=True
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    # "date" is the column name the UI and the chat agent use
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    note: Mapped[str | None] = mapped_column(String(255), nullable=True)
    type: Mapped[TransactionKind] = mapped_column(
        SAEnum(
            TransactionKind,
            name="transaction_kind_enum",
            create_constraint=True,
            values_callable=lambda kinds: [k.value for k in kinds],
        ),
        nullable=False,
    )
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime, nullable=False, default=dt.datetime.utcnow
    )

    category: Mapped["FinanceCategory | None"] = relationship()

    def __repr__(self) -> str:
        return f"<PersonalTransaction {self.type.value} {self.amount} on {self.date}>"
