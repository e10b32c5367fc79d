"""
Audit log model.

One row per mutation of a tracked entity, across both the crypto
and the personal finance domains. Entries are append-only: once
written they are never updated or deleted by the application.
"""

import uuid
from datetime import datetime

from sqlalchemy import String, DateTime, JSON, Index, Enum as SAEnum, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from cryptovibe.models.base import Base
from cryptovibe.models.enums import AuditModule, AuditTrigger


class AuditLog(Base):
    """
    Immutable record of one mutation.

    old_data and new_data are partial snapshots: only the fields
    the mutating code chose to capture, not a full row image.
    A creation entry has no old_data; a deletion entry has no
    new_data.
    """

    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_entity", "entity_type", "entity_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    module: Mapped[AuditModule] = mapped_column(
        SAEnum(AuditModule, name="audit_module_enum", create_constraint=True),
        nullable=False,
        index=True,
    )
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    old_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    new_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    triggered_by: Mapped[AuditTrigger] = mapped_column(
        SAEnum(AuditTrigger, name="audit_trigger_enum", create_constraint=True),
        nullable=False,
    )
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, index=True
    )

    @property
    def is_creation(self) -> bool:
        return "ADD" in self.action

    @property
    def is_rollback(self) -> bool:
        return "ROLLBACK" in self.action

    @property
    def can_rollback(self) -> bool:
        """Whether the history feed should offer a rollback for this entry."""
        if self.is_rollback:
            return False
        return self.old_data is not None or self.is_creation

    def __repr__(self) -> str:
        return (
            f"<AuditLog {self.module.value} {self.action} "
            f"{self.entity_type}:{self.entity_id}>"
        )
