"""
Finance service — personal transactions, categories and savings vaults.

Same pattern as the crypto side: write, flush, then describe the
mutation to the AuditService. Delete paths capture the full row
before deleting so that a rollback can re-create it. Update paths
capture only the fields that changed.
"""

import calendar
import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import select, func, update
from sqlalchemy.orm import Session

from cryptovibe.models.enums import AuditTrigger, CategoryKind, TransactionKind
from cryptovibe.models.finance_category import FinanceCategory
from cryptovibe.models.personal_transaction import PersonalTransaction
from cryptovibe.models.savings_vault import SavingsVault
from cryptovibe.schemas.finance import (
    TransactionCreate,
    TransactionUpdate,
    TransactionFilter,
    MonthlySummary,
    CategoryCreate,
    CategoryUpdate,
    CategoryDeleteResult,
    SavingsVaultCreate,
    SavingsVaultUpdate,
)
from cryptovibe.services.audit_service import AuditService
from cryptovibe.services.snapshots import row_snapshot


class FinanceService:

    def __init__(self, db: Session, audit: AuditService | None = None):
        self.db = db
        self.audit = audit or AuditService(db)

    def _apply_changes(self, row, changes: dict) -> tuple[dict, dict]:
        """Set changed fields on a row and return (before, after) snapshots."""
        fields = [
            key for key, value in changes.items()
            if getattr(row, key) != value
        ]
        before = row_snapshot(row, fields)
        for key in fields:
            setattr(row, key, changes[key])
        self.db.flush()
        return before, row_snapshot(row, fields)

    # --- Transactions ---

    def add_transaction(
        self,
        request: TransactionCreate,
        triggered_by: AuditTrigger = AuditTrigger.USER_MANUAL,
    ) -> PersonalTransaction:
        if request.category_id is not None:
            self.get_category(request.category_id)

        txn = PersonalTransaction(
            category_id=request.category_id,
            amount=request.amount,
            date=request.date,
            note=request.note,
            type=request.type,
        )
        self.db.add(txn)
        self.db.flush()

        category = self.db.get(FinanceCategory, txn.category_id) if txn.category_id else None
        self.audit.log_finance_action(
            "ADD_TRANSACTION",
            "transaction",
            txn.id,
            None,
            row_snapshot(txn, ["amount", "type", "category_id", "date", "note"]),
            triggered_by,
            f"Added {txn.type.value} transaction: {txn.amount}"
            + (f" ({category.name})" if category else ""),
        )
        return txn

    def get_transaction(self, transaction_id: uuid.UUID) -> PersonalTransaction:
        txn = self.db.get(PersonalTransaction, transaction_id)
        if not txn:
            raise ValueError(f"Transaction {transaction_id} not found")
        return txn

    def update_transaction(
        self,
        transaction_id: uuid.UUID,
        request: TransactionUpdate,
        triggered_by: AuditTrigger = AuditTrigger.USER_MANUAL,
    ) -> PersonalTransaction:
        """Apply a partial update. Only explicitly set fields are written."""
        txn = self.get_transaction(transaction_id)
        changes = request.model_dump(exclude_unset=True)
        if changes.get("category_id") is not None:
            self.get_category(changes["category_id"])

        before, after = self._apply_changes(txn, changes)
        if before:
            self.audit.log_finance_action(
                "UPDATE_TRANSACTION",
                "transaction",
                txn.id,
                before,
                after,
                triggered_by,
                f"Updated transaction: {', '.join(sorted(before))}",
            )
        return txn

    def delete_transaction(
        self,
        transaction_id: uuid.UUID,
        triggered_by: AuditTrigger = AuditTrigger.USER_MANUAL,
    ) -> None:
        txn = self.get_transaction(transaction_id)
        before = row_snapshot(txn)
        self.db.delete(txn)
        self.db.flush()

        self.audit.log_finance_action(
            "DELETE_TRANSACTION",
            "transaction",
            transaction_id,
            before,
            None,
            triggered_by,
            f"Deleted {before['type']} transaction: {before['amount']}",
        )

    def list_transactions(
        self, filters: TransactionFilter | None = None
    ) -> list[PersonalTransaction]:
        """Return transactions, most recent date first."""
        filters = filters or TransactionFilter()
        stmt = select(PersonalTransaction).order_by(PersonalTransaction.date.desc())
        if filters.type is not None:
            stmt = stmt.where(PersonalTransaction.type == filters.type)
        if filters.start_date is not None:
            stmt = stmt.where(PersonalTransaction.date >= filters.start_date)
        if filters.end_date is not None:
            stmt = stmt.where(PersonalTransaction.date <= filters.end_date)
        if filters.limit is not None:
            stmt = stmt.limit(filters.limit)
        return list(self.db.execute(stmt).scalars().all())

    def monthly_summary(self, year: int, month: int) -> MonthlySummary:
        """
        Totals per transaction type for one calendar month.

        net_balance = income - expense - investment
        """
        start = date(year, month, 1)
        end = date(year, month, calendar.monthrange(year, month)[1])
        rows = self.db.execute(
            select(
                PersonalTransaction.type,
                func.coalesce(func.sum(PersonalTransaction.amount), 0),
                func.count(PersonalTransaction.id),
            )
            .where(
                PersonalTransaction.date >= start,
                PersonalTransaction.date <= end,
            )
            .group_by(PersonalTransaction.type)
        ).all()

        totals = {kind: Decimal("0") for kind in TransactionKind}
        count = 0
        for kind, total, n in rows:
            totals[kind] = Decimal(str(total))
            count += n

        income = totals[TransactionKind.INCOME]
        expense = totals[TransactionKind.EXPENSE]
        investment = totals[TransactionKind.INVESTMENT]
        return MonthlySummary(
            total_income=income,
            total_expense=expense,
            total_investment=investment,
            net_balance=income - expense - investment,
            transaction_count=count,
        )

    # --- Categories ---

    def list_categories(self, kind: CategoryKind | None = None) -> list[FinanceCategory]:
        stmt = select(FinanceCategory).order_by(FinanceCategory.name)
        if kind is not None:
            stmt = stmt.where(FinanceCategory.type == kind)
        return list(self.db.execute(stmt).scalars().all())

    def get_category(self, category_id: uuid.UUID) -> FinanceCategory:
        category = self.db.get(FinanceCategory, category_id)
        if not category:
            raise ValueError(f"Category {category_id} not found")
        return category

    def find_category_by_name(
        self, name: str, kind: CategoryKind | None = None
    ) -> FinanceCategory | None:
        """Case-insensitive substring match, first hit by name."""
        stmt = select(FinanceCategory).where(
            FinanceCategory.name.ilike(f"%{name}%")
        )
        if kind is not None:
            stmt = stmt.where(FinanceCategory.type == kind)
        stmt = stmt.order_by(FinanceCategory.name).limit(1)
        return self.db.execute(stmt).scalar_one_or_none()

    def add_category(
        self,
        request: CategoryCreate,
        triggered_by: AuditTrigger = AuditTrigger.USER_MANUAL,
    ) -> FinanceCategory:
        category = FinanceCategory(
            name=request.name,
            type=request.type,
            icon=request.icon,
            color=request.color,
        )
        self.db.add(category)
        self.db.flush()

        self.audit.log_finance_action(
            "ADD_CATEGORY",
            "category",
            category.id,
            None,
            row_snapshot(category, ["name", "type", "icon", "color"]),
            triggered_by,
            f"Added {category.type.value} category: {category.name}",
        )
        return category

    def update_category(
        self,
        category_id: uuid.UUID,
        request: CategoryUpdate,
        triggered_by: AuditTrigger = AuditTrigger.USER_MANUAL,
    ) -> FinanceCategory:
        category = self.get_category(category_id)
        before, after = self._apply_changes(
            category, request.model_dump(exclude_unset=True, exclude_none=True)
        )
        if before:
            self.audit.log_finance_action(
                "UPDATE_CATEGORY",
                "category",
                category.id,
                before,
                after,
                triggered_by,
                f"Updated category {category.name}",
            )
        return category

    def category_transaction_count(self, category_id: uuid.UUID) -> int:
        return self.db.execute(
            select(func.count(PersonalTransaction.id)).where(
                PersonalTransaction.category_id == category_id
            )
        ).scalar_one()

    def delete_category(
        self,
        category_id: uuid.UUID,
        force: bool = False,
        triggered_by: AuditTrigger = AuditTrigger.USER_MANUAL,
    ) -> CategoryDeleteResult:
        """
        Delete a category.

        Refuses while transactions are linked to it, unless force.
        With force, each linked transaction is unlinked and gets its
        own UNLINK_CATEGORY entry, so the cascade can be rolled back
        transaction by transaction.
        """
        category = self.get_category(category_id)
        linked_count = self.category_transaction_count(category_id)

        if linked_count > 0 and not force:
            return CategoryDeleteResult(
                success=False,
                linked_count=linked_count,
                message=(
                    f"Category {category.name} has {linked_count} linked "
                    f"transaction(s). Delete anyway?"
                ),
            )

        if linked_count > 0:
            linked_ids = self.db.execute(
                select(PersonalTransaction.id).where(
                    PersonalTransaction.category_id == category_id
                )
            ).scalars().all()
            self.db.execute(
                update(PersonalTransaction)
                .where(PersonalTransaction.category_id == category_id)
                .values(category_id=None)
            )
            for txn_id in linked_ids:
                self.audit.log_finance_action(
                    "UNLINK_CATEGORY",
                    "transaction",
                    txn_id,
                    {"category_id": category_id},
                    {"category_id": None},
                    triggered_by,
                    f"Unlinked from deleted category {category.name}",
                )

        before = row_snapshot(category)
        self.db.delete(category)
        self.db.flush()

        self.audit.log_finance_action(
            "DELETE_CATEGORY",
            "category",
            category_id,
            before,
            None,
            triggered_by,
            f"Deleted category {before['name']}",
        )
        return CategoryDeleteResult(
            success=True,
            linked_count=linked_count,
            message=f"Category {before['name']} deleted",
        )

    # --- Savings vaults ---

    def list_savings_vaults(self, include_completed: bool = True) -> list[SavingsVault]:
        stmt = select(SavingsVault).order_by(SavingsVault.created_at.desc())
        if not include_completed:
            stmt = stmt.where(SavingsVault.is_completed.is_(False))
        return list(self.db.execute(stmt).scalars().all())

    def get_savings_vault(self, vault_id: uuid.UUID) -> SavingsVault:
        vault = self.db.get(SavingsVault, vault_id)
        if not vault:
            raise ValueError(f"Savings vault {vault_id} not found")
        return vault

    def add_savings_vault(
        self,
        request: SavingsVaultCreate,
        triggered_by: AuditTrigger = AuditTrigger.USER_MANUAL,
    ) -> SavingsVault:
        vault = SavingsVault(
            name=request.name,
            target_amount=request.target_amount,
            current_amount=request.current_amount,
            is_completed=request.current_amount >= request.target_amount,
        )
        self.db.add(vault)
        self.db.flush()

        self.audit.log_finance_action(
            "ADD_SAVINGS",
            "savings",
            vault.id,
            None,
            row_snapshot(vault, ["name", "target_amount", "current_amount"]),
            triggered_by,
            f"Added savings vault {vault.name} (target {vault.target_amount})",
        )
        return vault

    def update_savings_vault(
        self,
        vault_id: uuid.UUID,
        request: SavingsVaultUpdate,
        triggered_by: AuditTrigger = AuditTrigger.USER_MANUAL,
        action: str = "UPDATE_SAVINGS",
    ) -> SavingsVault:
        vault = self.get_savings_vault(vault_id)
        changes = request.model_dump(exclude_unset=True, exclude_none=True)
        target = changes.get("target_amount", vault.target_amount)
        current = changes.get("current_amount", vault.current_amount)
        changes["is_completed"] = current >= target

        before, after = self._apply_changes(vault, changes)
        if before:
            self.audit.log_finance_action(
                action,
                "savings",
                vault.id,
                before,
                after,
                triggered_by,
                f"Updated savings vault {vault.name}",
            )
        return vault

    def delete_savings_vault(
        self,
        vault_id: uuid.UUID,
        triggered_by: AuditTrigger = AuditTrigger.USER_MANUAL,
    ) -> None:
        vault = self.get_savings_vault(vault_id)
        before = row_snapshot(vault)
        self.db.delete(vault)
        self.db.flush()

        self.audit.log_finance_action(
            "DELETE_SAVINGS",
            "savings",
            vault_id,
            before,
            None,
            triggered_by,
            f"Deleted savings vault {before['name']}",
        )

    def deposit_to_savings_vault(
        self,
        vault_id: uuid.UUID,
        amount: Decimal,
        triggered_by: AuditTrigger = AuditTrigger.USER_MANUAL,
    ) -> SavingsVault:
        """Add money to a vault; marks it completed once the target is reached."""
        vault = self.get_savings_vault(vault_id)
        return self.update_savings_vault(
            vault_id,
            SavingsVaultUpdate(current_amount=vault.current_amount + amount),
            triggered_by,
            action="DEPOSIT_SAVINGS",
        )
