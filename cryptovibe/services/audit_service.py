"""
Audit service — the recorder for every mutation in the system.

Domain services perform their write first and then describe it
here. The audit trail is best-effort: a failed audit write is
logged and reported as None, and never undoes or blocks the
business mutation it describes. Deployments that want the two
writes coupled set AUDIT_STRICT, in which case the storage error
propagates and the caller's transaction can be rolled back as a
whole.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cryptovibe.config import get_settings
from cryptovibe.logging_config import get_logger
from cryptovibe.models.audit_log import AuditLog
from cryptovibe.models.enums import AuditModule, AuditTrigger
from cryptovibe.schemas.audit import AuditLogCreate, AuditLogQuery
from cryptovibe.services.snapshots import snapshot

logger = get_logger(__name__)

FINANCE_ENTITY_TYPES = ("transaction", "category", "savings")


class AuditService:
    """
    Append-only access to the audit_logs table.

    Like the other services, it works on the caller's session and
    never commits. Each entry is written inside a SAVEPOINT so that
    a failure only discards the audit row.
    """

    def __init__(self, db: Session, strict: bool | None = None):
        self.db = db
        self.strict = get_settings().AUDIT_STRICT if strict is None else strict

    def _insert(self, entry: AuditLog) -> None:
        with self.db.begin_nested():
            self.db.add(entry)

    def record(self, request: AuditLogCreate) -> uuid.UUID | None:
        """
        Append one audit entry and return its id.

        Returns None when the write fails (unless strict, in which
        case the storage error is raised).
        """
        entry = AuditLog(
            id=uuid.uuid4(),
            module=request.module,
            action=request.action,
            entity_type=request.entity_type,
            entity_id=request.entity_id,
            old_data=snapshot(request.old_data),
            new_data=snapshot(request.new_data),
            triggered_by=request.triggered_by,
            description=request.description,
        )
        try:
            self._insert(entry)
        except SQLAlchemyError as e:
            logger.error(
                "audit_log_write_failed",
                module=request.module.value,
                action=request.action,
                entity_type=request.entity_type,
                entity_id=str(request.entity_id) if request.entity_id else None,
                error=str(e),
            )
            if self.strict:
                raise
            return None

        logger.info(
            "audit_log_recorded",
            audit_log_id=str(entry.id),
            module=entry.module.value,
            action=entry.action,
            triggered_by=entry.triggered_by.value,
        )
        return entry.id

    def log_crypto_action(
        self,
        action: str,
        entity_id: uuid.UUID | None,
        old_data: dict | None,
        new_data: dict | None,
        triggered_by: AuditTrigger = AuditTrigger.USER_MANUAL,
        description: str | None = None,
    ) -> uuid.UUID | None:
        """Record a mutation of a crypto asset."""
        return self.record(AuditLogCreate(
            module=AuditModule.CRYPTO,
            action=action,
            entity_type="asset",
            entity_id=entity_id,
            old_data=old_data,
            new_data=new_data,
            triggered_by=triggered_by,
            description=description,
        ))

    def log_finance_action(
        self,
        action: str,
        entity_type: str,
        entity_id: uuid.UUID | None,
        old_data: dict | None,
        new_data: dict | None,
        triggered_by: AuditTrigger = AuditTrigger.USER_MANUAL,
        description: str | None = None,
    ) -> uuid.UUID | None:
        """Record a mutation of a transaction, category or savings vault."""
        if entity_type not in FINANCE_ENTITY_TYPES:
            raise ValueError(f"Unknown finance entity type '{entity_type}'")
        return self.record(AuditLogCreate(
            module=AuditModule.FINANCE,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            old_data=old_data,
            new_data=new_data,
            triggered_by=triggered_by,
            description=description,
        ))

    def get(self, audit_log_id: uuid.UUID) -> AuditLog | None:
        return self.db.get(AuditLog, audit_log_id)

    def list_recent(self, query: AuditLogQuery | None = None) -> list[AuditLog]:
        """
        Return recent entries, newest first.

        A read failure is logged and yields an empty list so the
        history feed degrades instead of erroring.
        """
        if query is None:
            query = AuditLogQuery(limit=get_settings().AUDIT_PAGE_SIZE)

        stmt = select(AuditLog).order_by(AuditLog.created_at.desc())
        if query.module is not None:
            stmt = stmt.where(AuditLog.module == query.module)
        stmt = stmt.offset(query.offset).limit(query.limit)

        try:
            return list(self.db.execute(stmt).scalars().all())
        except SQLAlchemyError as e:
            logger.error("audit_log_list_failed", error=str(e))
            return []

    def history(self, entity_type: str, entity_id: uuid.UUID) -> list[AuditLog]:
        """Return every entry for one entity, newest first."""
        stmt = (
            select(AuditLog)
            .where(
                AuditLog.entity_type == entity_type,
                AuditLog.entity_id == entity_id,
            )
            .order_by(AuditLog.created_at.desc())
        )
        try:
            return list(self.db.execute(stmt).scalars().all())
        except SQLAlchemyError as e:
            logger.error(
                "audit_history_failed",
                entity_type=entity_type,
                entity_id=str(entity_id),
                error=str(e),
            )
            return []
