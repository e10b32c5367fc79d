"""
Rollback service — undoes a past mutation from its audit entry.

The inverse is derived entirely from the entry:
- a creation (action contains ADD, no old_data) is undone by
  deleting the created row,
- anything with old_data is undone by writing old_data back
  onto the row, field by field.

Restoration is a field-level patch, not a full-row replace.
Columns missing from old_data keep their current values, so a
partial snapshot can leave the row in a hybrid state. That is
the contract, and the engine does not try to detect it.

Every successful rollback appends its own audit entry
(ROLLBACK_DELETE or ROLLBACK). Failures, including snapshot values
that cannot be converted back to the column type, write nothing.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cryptovibe.config import get_settings
from cryptovibe.logging_config import get_logger
from cryptovibe.models.audit_log import AuditLog
from cryptovibe.models.asset import Asset
from cryptovibe.models.enums import AuditModule, AuditTrigger
from cryptovibe.models.finance_category import FinanceCategory
from cryptovibe.models.personal_transaction import PersonalTransaction
from cryptovibe.models.savings_vault import SavingsVault
from cryptovibe.schemas.audit import AuditLogCreate, RollbackResult
from cryptovibe.services.audit_service import AuditService
from cryptovibe.services.snapshots import jsonable

logger = get_logger(__name__)


# Where a rollback writes, keyed by (module, entity_type).
# None acts as a wildcard: every CRYPTO entry targets assets.
# Adding a trackable entity type is one line here.
ROLLBACK_TARGETS: dict[tuple[AuditModule | None, str | None], type] = {
    (AuditModule.CRYPTO, None): Asset,
    (None, "transaction"): PersonalTransaction,
    (None, "category"): FinanceCategory,
    (None, "savings"): SavingsVault,
}

# Anything not covered by the table lands here
DEFAULT_ROLLBACK_TARGET = SavingsVault


def resolve_target(module: AuditModule, entity_type: str) -> type:
    """Return the model class a rollback of this entry must write to."""
    for key in (
        (module, entity_type),
        (module, None),
        (None, entity_type),
    ):
        if key in ROLLBACK_TARGETS:
            return ROLLBACK_TARGETS[key]
    return DEFAULT_ROLLBACK_TARGET


def _coerce(column, value: Any) -> Any:
    """Turn a JSON snapshot value back into what the column expects."""
    if value is None:
        return None
    enum_class = getattr(column.type, "enum_class", None)
    if enum_class is not None:
        return enum_class(value)
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return value
    if python_type is Decimal:
        return Decimal(str(value))
    if python_type is datetime and isinstance(value, str):
        return datetime.fromisoformat(value)
    if python_type is date and isinstance(value, str):
        return date.fromisoformat(value)
    if python_type is uuid.UUID and isinstance(value, str):
        return uuid.UUID(value)
    return value


def _same(current: Any, expected: Any) -> bool:
    """Compare a row value against a snapshot value."""
    if isinstance(current, Decimal) and expected is not None:
        try:
            return current == Decimal(str(expected))
        except ArithmeticError:
            return False
    return jsonable(current) == expected


class RollbackService:

    def __init__(self, db: Session, require_unchanged: bool | None = None):
        self.db = db
        self.audit = AuditService(db)
        if require_unchanged is None:
            require_unchanged = get_settings().ROLLBACK_REQUIRE_UNCHANGED
        self.require_unchanged = require_unchanged

    def rollback(self, audit_log_id: uuid.UUID) -> RollbackResult:
        """
        Apply the inverse of the mutation described by an audit entry.

        Never raises for expected failures; the result carries a
        short message suitable for direct display. Entries that are
        themselves rollbacks are not refused, which lets an operator
        redo by rolling back a rollback.
        """
        log = self.db.get(AuditLog, audit_log_id)
        if log is None:
            return self._fail(audit_log_id, f"Audit log entry {audit_log_id} not found")

        model = resolve_target(log.module, log.entity_type)

        if log.old_data is None and log.is_creation and log.entity_id is not None:
            return self._undo_creation(log, model)

        if log.old_data is None:
            return self._fail(
                audit_log_id,
                f"No prior data to restore for {log.action}",
            )

        if log.entity_id is None:
            return self._fail(
                audit_log_id,
                f"Missing entity id, cannot roll back {log.action}",
            )

        return self._restore(log, model)

    # --- Inverse operations ---

    def _undo_creation(self, log: AuditLog, model: type) -> RollbackResult:
        table = model.__tablename__
        row = self.db.get(model, log.entity_id)
        if row is None:
            return self._fail(
                log.id,
                f"{log.entity_type} {log.entity_id} was already removed from {table}",
            )

        try:
            with self.db.begin_nested():
                self.db.delete(row)
        except SQLAlchemyError as e:
            return self._fail(log.id, f"Storage error while deleting: {e}")

        trailing_id = self.audit.record(AuditLogCreate(
            module=log.module,
            action="ROLLBACK_DELETE",
            entity_type=log.entity_type,
            entity_id=log.entity_id,
            old_data=log.new_data,
            new_data=None,
            triggered_by=AuditTrigger.USER_MANUAL,
            description=f"Rollback: removed {log.entity_type} created by {log.action}",
        ))
        logger.info(
            "rollback_applied",
            audit_log_id=str(log.id),
            kind="delete",
            table=table,
            entity_id=str(log.entity_id),
        )
        return RollbackResult(
            success=True,
            message=f"Rolled back {log.action}: record removed",
            audit_log_id=trailing_id,
        )

    def _restore(self, log: AuditLog, model: type) -> RollbackResult:
        table = model.__tablename__
        columns = model.__table__.columns
        unknown = sorted(set(log.old_data) - set(columns.keys()))
        if unknown:
            return self._fail(
                log.id,
                f"Cannot restore unknown field(s) on {table}: {', '.join(unknown)}",
            )

        primary = {c.key for c in model.__table__.primary_key}
        values = {}
        for key, value in log.old_data.items():
            if key in primary:
                continue
            try:
                values[key] = _coerce(columns[key], value)
            except (ValueError, ArithmeticError):
                return self._fail(
                    log.id,
                    f"Invalid value for {key} on {table}: {value!r}",
                )

        row = self.db.get(model, log.entity_id)
        if row is None and log.new_data is not None:
            return self._fail(
                log.id,
                f"Target record {log.entity_id} not found in {table}",
            )

        if row is not None:
            if all(_same(getattr(row, k), v) for k, v in log.old_data.items()):
                return RollbackResult(
                    success=True,
                    message=f"{log.entity_type} {log.entity_id} is already restored",
                )
            if self.require_unchanged and log.new_data and not all(
                _same(getattr(row, k), v)
                for k, v in log.new_data.items() if k in columns
            ):
                return self._fail(
                    log.id,
                    f"{log.entity_type} {log.entity_id} changed after {log.action}, "
                    f"refusing to overwrite",
                )

        try:
            with self.db.begin_nested():
                if row is None:
                    # The original entry deleted the row: re-create it
                    self.db.add(model(id=log.entity_id, **values))
                else:
                    for key, value in values.items():
                        setattr(row, key, value)
        except SQLAlchemyError as e:
            return self._fail(log.id, f"Storage error while restoring: {e}")

        trailing_id = self.audit.record(AuditLogCreate(
            module=log.module,
            action="ROLLBACK",
            entity_type=log.entity_type,
            entity_id=log.entity_id,
            old_data=log.new_data,
            new_data=log.old_data,
            triggered_by=AuditTrigger.USER_MANUAL,
            description=f"Rollback of {log.action}",
        ))
        logger.info(
            "rollback_applied",
            audit_log_id=str(log.id),
            kind="reinsert" if row is None else "update",
            table=table,
            entity_id=str(log.entity_id),
        )
        return RollbackResult(
            success=True,
            message=f"Rolled back {log.action}: previous data restored",
            audit_log_id=trailing_id,
        )

    def _fail(self, audit_log_id: uuid.UUID, message: str) -> RollbackResult:
        logger.warning(
            "rollback_failed",
            audit_log_id=str(audit_log_id),
            reason=message,
        )
        return RollbackResult(success=False, message=message)
