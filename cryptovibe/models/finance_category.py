"""
Finance category model.

Categories group personal transactions for reporting. A
transaction may also have no category at all.
"""

import uuid
from datetime import datetime

from sqlalchemy import String, DateTime, Enum as SAEnum, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from cryptovibe.models.base import Base
from cryptovibe.models.enums import CategoryKind


class FinanceCategory(Base):
    __tablename__ = "finance_categories"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[CategoryKind] = mapped_column(
        SAEnum(
            CategoryKind,
            name="category_kind_enum",
            create_constraint=True,
            values_callable=lambda kinds: [k.value for k in kinds],
        ),
        nullable=False,
    )
    icon: Mapped[str] = mapped_column(
        String(50), nullable=False, default="circle"
    )
    color: Mapped[str] = mapped_column(
        String(20), nullable=False, default="#6366f1"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    def __repr__(self) -> str:
        return f"<FinanceCategory {self.name} ({self.type.value})>"
