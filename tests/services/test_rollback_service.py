"""
Tests for the RollbackService.

Covers both inverse operations (delete a created row, restore a
prior snapshot), the failure messages an operator sees, routing
to the right table, and the behaviours that are deliberate but
easy to change by accident: repeated rollbacks, rollback of a
rollback, and partial snapshots.
"""

import uuid
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select, func

from cryptovibe.models.asset import Asset
from cryptovibe.models.audit_log import AuditLog
from cryptovibe.models.enums import (
    AuditModule,
    AuditTrigger,
    CategoryKind,
    TransactionKind,
)
from cryptovibe.models.finance_category import FinanceCategory
from cryptovibe.models.personal_transaction import PersonalTransaction
from cryptovibe.models.savings_vault import SavingsVault
from cryptovibe.schemas.crypto import AssetCreate
from cryptovibe.schemas.finance import (
    CategoryCreate,
    SavingsVaultCreate,
    TransactionCreate,
    TransactionUpdate,
)
from cryptovibe.services.audit_service import AuditService
from cryptovibe.services.crypto_service import CryptoService
from cryptovibe.services.finance_service import FinanceService
from cryptovibe.services.rollback_service import (
    DEFAULT_ROLLBACK_TARGET,
    RollbackService,
    resolve_target,
)


def latest_entry(db_session, action: str) -> AuditLog:
    return db_session.execute(
        select(AuditLog)
        .where(AuditLog.action == action)
        .order_by(AuditLog.created_at.desc())
        .limit(1)
    ).scalar_one()


def count_entries(db_session, action: str | None = None) -> int:
    stmt = select(func.count(AuditLog.id))
    if action is not None:
        stmt = stmt.where(AuditLog.action == action)
    return db_session.execute(stmt).scalar_one()


def add_groceries(db_session) -> PersonalTransaction:
    txn = FinanceService(db_session).add_transaction(TransactionCreate(
        amount=Decimal("120.00"),
        date=date(2026, 4, 2),
        type=TransactionKind.EXPENSE,
        note="Groceries",
    ))
    db_session.commit()
    return txn


def hold_btc(db_session) -> Asset:
    """1 BTC @ 10, then buy 1 more @ 20 -> 2 BTC @ 15."""
    service = CryptoService(db_session)
    service.add_asset(AssetCreate(
        symbol="btc", quantity=Decimal("1.0"), buy_price=Decimal("10"),
    ))
    asset = service.buy("BTC", Decimal("1.0"), Decimal("20"))
    db_session.commit()
    return asset


def add_manual_entry(db_session, **fields) -> AuditLog:
    entry = AuditLog(triggered_by=AuditTrigger.USER_MANUAL, **fields)
    db_session.add(entry)
    db_session.commit()
    return entry


# --- Creation rollback ---

class TestCreationRollback:

    def test_deletes_created_row(self, db_session):
        txn = add_groceries(db_session)
        created = latest_entry(db_session, "ADD_TRANSACTION")

        result = RollbackService(db_session).rollback(created.id)
        db_session.commit()

        assert result.success is True
        assert db_session.get(PersonalTransaction, txn.id) is None

    def test_appends_rollback_delete_entry(self, db_session):
        add_groceries(db_session)
        created = latest_entry(db_session, "ADD_TRANSACTION")

        result = RollbackService(db_session).rollback(created.id)
        db_session.commit()

        trailing = db_session.get(AuditLog, result.audit_log_id)
        assert trailing.action == "ROLLBACK_DELETE"
        assert trailing.module == created.module
        assert trailing.entity_type == "transaction"
        assert trailing.entity_id == created.entity_id
        assert trailing.old_data == created.new_data
        assert trailing.new_data is None
        assert trailing.triggered_by == AuditTrigger.USER_MANUAL

    def test_second_call_fails_cleanly(self, db_session):
        add_groceries(db_session)
        created = latest_entry(db_session, "ADD_TRANSACTION")
        service = RollbackService(db_session)

        service.rollback(created.id)
        db_session.commit()
        second = service.rollback(created.id)

        assert second.success is False
        assert "already removed" in second.message
        assert count_entries(db_session, "ROLLBACK_DELETE") == 1

    def test_creation_without_entity_id_cannot_be_rolled_back(self, db_session):
        entry = add_manual_entry(
            db_session,
            module=AuditModule.FINANCE,
            action="ADD_TRANSACTION",
            entity_type="transaction",
            entity_id=None,
            old_data=None,
            new_data={"amount": 5.0},
        )

        result = RollbackService(db_session).rollback(entry.id)

        assert result.success is False
        assert "No prior data" in result.message


# --- Update rollback ---

class TestUpdateRollback:

    def test_restores_old_values(self, db_session):
        asset = hold_btc(db_session)
        bought = latest_entry(db_session, "BUY_MORE")

        result = RollbackService(db_session).rollback(bought.id)
        db_session.commit()

        assert result.success is True
        db_session.refresh(asset)
        assert asset.quantity == Decimal("1.0")
        assert asset.buy_price == Decimal("10")

    def test_appends_rollback_entry_with_swapped_snapshots(self, db_session):
        hold_btc(db_session)
        bought = latest_entry(db_session, "BUY_MORE")

        result = RollbackService(db_session).rollback(bought.id)
        db_session.commit()

        trailing = db_session.get(AuditLog, result.audit_log_id)
        assert trailing.action == "ROLLBACK"
        assert trailing.old_data == {"quantity": "2", "buy_price": "15"}
        assert trailing.new_data == {"quantity": "1", "buy_price": "10"}
        assert trailing.triggered_by == AuditTrigger.USER_MANUAL

    def test_second_call_is_a_no_op(self, db_session):
        asset = hold_btc(db_session)
        bought = latest_entry(db_session, "BUY_MORE")
        service = RollbackService(db_session)

        service.rollback(bought.id)
        db_session.commit()
        second = service.rollback(bought.id)
        db_session.commit()

        assert second.success is True
        assert "already restored" in second.message
        assert second.audit_log_id is None
        assert count_entries(db_session, "ROLLBACK") == 1
        db_session.refresh(asset)
        assert asset.quantity == Decimal("1.0")

    def test_restores_a_deleted_row(self, db_session):
        txn = add_groceries(db_session)
        txn_id = txn.id
        FinanceService(db_session).delete_transaction(txn_id)
        db_session.commit()
        deleted = latest_entry(db_session, "DELETE_TRANSACTION")

        result = RollbackService(db_session).rollback(deleted.id)
        db_session.commit()

        assert result.success is True
        restored = db_session.get(PersonalTransaction, txn_id)
        assert restored is not None
        assert restored.amount == Decimal("120.00")
        assert restored.date == date(2026, 4, 2)
        assert restored.type == TransactionKind.EXPENSE
        assert restored.note == "Groceries"

    def test_restores_enum_and_date_fields(self, db_session):
        txn = add_groceries(db_session)
        FinanceService(db_session).update_transaction(txn.id, TransactionUpdate(
            type=TransactionKind.INVESTMENT,
            date=date(2026, 4, 30),
        ))
        db_session.commit()
        updated = latest_entry(db_session, "UPDATE_TRANSACTION")

        result = RollbackService(db_session).rollback(updated.id)
        db_session.commit()

        assert result.success is True
        db_session.refresh(txn)
        assert txn.type == TransactionKind.EXPENSE
        assert txn.date == date(2026, 4, 2)


    def test_decimal_precision_survives_round_trip(self, db_session):
        service = CryptoService(db_session)
        asset = service.add_asset(AssetCreate(
            symbol="SHIB",
            quantity=Decimal("1234567.1234567891"),
            buy_price=Decimal("0.00001"),
        ))
        service.update_quantity("SHIB", Decimal("5"))
        updated = latest_entry(db_session, "UPDATE_ASSET")

        result = RollbackService(db_session).rollback(updated.id)

        assert updated.old_data == {"quantity": "1234567.1234567891"}
        assert result.success is True
        # Checked inside the session: SQLite itself stores Numeric as REAL
        assert asset.quantity == Decimal("1234567.1234567891")

    def test_nearby_decimal_is_not_treated_as_restored(self, db_session):
        asset = CryptoService(db_session).add_asset(AssetCreate(
            symbol="SHIB",
            quantity=Decimal("1234567.1234567891"),
            buy_price=Decimal("0.00001"),
        ))
        audit_log_id = AuditService(db_session).log_crypto_action(
            "UPDATE_ASSET",
            asset.id,
            {"quantity": "1234567.1234567892"},
            {"quantity": "1234567.1234567891"},
        )

        result = RollbackService(db_session).rollback(audit_log_id)

        assert result.message == "Rolled back UPDATE_ASSET: previous data restored"
        assert asset.quantity == Decimal("1234567.1234567892")


# --- Rejections ---

class TestRejections:

    def test_unknown_entry(self, db_session):
        result = RollbackService(db_session).rollback(uuid.uuid4())

        assert result.success is False
        assert "not found" in result.message

    def test_missing_old_data_performs_no_mutation(self, db_session):
        txn = add_groceries(db_session)
        entry = add_manual_entry(
            db_session,
            module=AuditModule.FINANCE,
            action="DELETE_TRANSACTION",
            entity_type="transaction",
            entity_id=txn.id,
            old_data=None,
            new_data=None,
        )
        before = count_entries(db_session)

        result = RollbackService(db_session).rollback(entry.id)
        db_session.commit()

        assert result.success is False
        assert "No prior data" in result.message
        assert db_session.get(PersonalTransaction, txn.id) is not None
        assert count_entries(db_session) == before

    def test_missing_entity_id(self, db_session):
        entry = add_manual_entry(
            db_session,
            module=AuditModule.CRYPTO,
            action="UPDATE_ASSET",
            entity_type="asset",
            entity_id=None,
            old_data={"quantity": 1.0},
            new_data={"quantity": 3.0},
        )

        result = RollbackService(db_session).rollback(entry.id)

        assert result.success is False
        assert "Missing entity id" in result.message

    def test_target_row_gone(self, db_session):
        entry = add_manual_entry(
            db_session,
            module=AuditModule.CRYPTO,
            action="UPDATE_ASSET",
            entity_type="asset",
            entity_id=uuid.uuid4(),
            old_data={"quantity": 1.0},
            new_data={"quantity": 3.0},
        )

        result = RollbackService(db_session).rollback(entry.id)

        assert result.success is False
        assert "not found in assets" in result.message

    def test_unknown_field_in_snapshot(self, db_session):
        asset = hold_btc(db_session)
        entry = add_manual_entry(
            db_session,
            module=AuditModule.CRYPTO,
            action="UPDATE_ASSET",
            entity_type="asset",
            entity_id=asset.id,
            old_data={"quantity": 1.0, "market_cap": 5},
            new_data={"quantity": 2.0},
        )

        result = RollbackService(db_session).rollback(entry.id)

        assert result.success is False
        assert "market_cap" in result.message
        db_session.refresh(asset)
        assert asset.quantity == Decimal("2.0")

    def test_storage_error_writes_no_trailing_entry(self, db_session):
        asset = hold_btc(db_session)
        entry = add_manual_entry(
            db_session,
            module=AuditModule.CRYPTO,
            action="UPDATE_ASSET",
            entity_type="asset",
            entity_id=asset.id,
            old_data={"symbol": None},
            new_data={"symbol": "BTC"},
        )
        before = count_entries(db_session)

        result = RollbackService(db_session).rollback(entry.id)
        db_session.commit()

        assert result.success is False
        assert "Storage error" in result.message
        assert count_entries(db_session) == before
        db_session.refresh(asset)
        assert asset.symbol == "BTC"


    def test_non_numeric_amount_is_rejected(self, db_session):
        txn = add_groceries(db_session)
        entry = add_manual_entry(
            db_session,
            module=AuditModule.FINANCE,
            action="UPDATE_TRANSACTION",
            entity_type="transaction",
            entity_id=txn.id,
            old_data={"amount": "abc"},
            new_data={"amount": "120"},
        )
        before = count_entries(db_session)

        result = RollbackService(db_session).rollback(entry.id)
        db_session.commit()

        assert result.success is False
        assert result.message == (
            "Invalid value for amount on personal_transactions: 'abc'"
        )
        assert count_entries(db_session) == before
        db_session.refresh(txn)
        assert txn.amount == Decimal("120.00")

    def test_unknown_enum_value_is_rejected(self, db_session):
        txn = add_groceries(db_session)
        entry = add_manual_entry(
            db_session,
            module=AuditModule.FINANCE,
            action="UPDATE_TRANSACTION",
            entity_type="transaction",
            entity_id=txn.id,
            old_data={"type": "gift"},
            new_data={"type": "expense"},
        )

        result = RollbackService(db_session).rollback(entry.id)
        db_session.commit()

        assert result.success is False
        assert "Invalid value for type" in result.message
        db_session.refresh(txn)
        assert txn.type == TransactionKind.EXPENSE

    def test_malformed_date_is_rejected(self, db_session):
        txn = add_groceries(db_session)
        entry = add_manual_entry(
            db_session,
            module=AuditModule.FINANCE,
            action="UPDATE_TRANSACTION",
            entity_type="transaction",
            entity_id=txn.id,
            old_data={"date": "2026-13-45"},
            new_data={"date": "2026-04-02"},
        )

        result = RollbackService(db_session).rollback(entry.id)

        assert result.success is False
        assert "Invalid value for date" in result.message


# --- Routing ---

class TestRouting:

    @pytest.mark.parametrize("module, entity_type, expected", [
        (AuditModule.CRYPTO, "asset", Asset),
        (AuditModule.FINANCE, "transaction", PersonalTransaction),
        (AuditModule.FINANCE, "category", FinanceCategory),
        (AuditModule.FINANCE, "savings", SavingsVault),
        # CRYPTO always means assets, whatever the entity type says
        (AuditModule.CRYPTO, "transaction", Asset),
        (AuditModule.SYSTEM, "category", FinanceCategory),
        (AuditModule.FINANCE, "loan", DEFAULT_ROLLBACK_TARGET),
    ])
    def test_resolve_target(self, module, entity_type, expected):
        assert resolve_target(module, entity_type) is expected

    def test_fallback_is_savings_vault(self):
        assert DEFAULT_ROLLBACK_TARGET is SavingsVault

    @pytest.mark.parametrize("create, model, action", [
        (
            lambda db: CryptoService(db).add_asset(AssetCreate(
                symbol="ETH", quantity=Decimal("3"), buy_price=Decimal("2000"),
            )),
            Asset,
            "ADD_ASSET",
        ),
        (
            lambda db: FinanceService(db).add_transaction(TransactionCreate(
                amount=Decimal("50"), date=date(2026, 1, 15),
                type=TransactionKind.INCOME,
            )),
            PersonalTransaction,
            "ADD_TRANSACTION",
        ),
        (
            lambda db: FinanceService(db).add_category(CategoryCreate(
                name="Coffee", type=CategoryKind.EXPENSE,
            )),
            FinanceCategory,
            "ADD_CATEGORY",
        ),
        (
            lambda db: FinanceService(db).add_savings_vault(SavingsVaultCreate(
                name="Holiday", target_amount=Decimal("3000"),
            )),
            SavingsVault,
            "ADD_SAVINGS",
        ),
    ])
    def test_rollback_touches_only_the_routed_table(
        self, db_session, create, model, action
    ):
        row = create(db_session)
        db_session.commit()
        row_id = row.id
        others = {
            m: db_session.execute(select(func.count()).select_from(m)).scalar_one()
            for m in (Asset, PersonalTransaction, FinanceCategory, SavingsVault)
            if m is not model
        }

        result = RollbackService(db_session).rollback(
            latest_entry(db_session, action).id
        )
        db_session.commit()

        assert result.success is True
        assert db_session.get(model, row_id) is None
        for other, count in others.items():
            assert db_session.execute(
                select(func.count()).select_from(other)
            ).scalar_one() == count


# --- Deliberate behaviours ---

class TestRollbackOfRollback:

    def test_rolling_back_a_rollback_is_allowed(self, db_session):
        """The engine does not refuse ROLLBACK entries; this acts as redo."""
        asset = hold_btc(db_session)
        bought = latest_entry(db_session, "BUY_MORE")
        service = RollbackService(db_session)

        undo = service.rollback(bought.id)
        db_session.commit()
        redo = service.rollback(undo.audit_log_id)
        db_session.commit()

        assert redo.success is True
        db_session.refresh(asset)
        assert asset.quantity == Decimal("2.0")
        assert asset.buy_price == Decimal("15")

    def test_redo_of_a_removed_transaction(self, db_session):
        txn = add_groceries(db_session)
        txn_id = txn.id
        created = latest_entry(db_session, "ADD_TRANSACTION")
        service = RollbackService(db_session)

        undo = service.rollback(created.id)
        db_session.commit()
        redo = service.rollback(undo.audit_log_id)
        db_session.commit()

        assert redo.success is True
        restored = db_session.get(PersonalTransaction, txn_id)
        assert restored.amount == Decimal("120.00")
        assert restored.date == date(2026, 4, 2)
        assert restored.type == TransactionKind.EXPENSE
        assert restored.note == "Groceries"

    def test_rollback_entries_are_not_offered_in_the_feed(self, db_session):
        hold_btc(db_session)
        bought = latest_entry(db_session, "BUY_MORE")
        undo = RollbackService(db_session).rollback(bought.id)
        db_session.commit()

        assert bought.can_rollback is True
        assert db_session.get(AuditLog, undo.audit_log_id).can_rollback is False


class TestPartialSnapshots:

    def test_fields_outside_the_snapshot_keep_current_values(self, db_session):
        """
        Restoration is a field-level patch. A mutation that changed
        more than it captured leaves the row in a hybrid state after
        rollback, and the engine does not report it.
        """
        txn = add_groceries(db_session)
        txn.amount = Decimal("80.00")
        txn.note = "Groceries and snacks"
        db_session.commit()
        entry = add_manual_entry(
            db_session,
            module=AuditModule.FINANCE,
            action="UPDATE_TRANSACTION",
            entity_type="transaction",
            entity_id=txn.id,
            old_data={"amount": 120.0},
            new_data={"amount": 80.0},
        )

        result = RollbackService(db_session).rollback(entry.id)
        db_session.commit()

        assert result.success is True
        db_session.refresh(txn)
        assert txn.amount == Decimal("120.00")
        assert txn.note == "Groceries and snacks"


class TestConcurrentChanges:

    def _buy_twice(self, db_session):
        asset = hold_btc(db_session)
        first_buy = latest_entry(db_session, "BUY_MORE")
        CryptoService(db_session).buy("BTC", Decimal("2.0"), Decimal("30"))
        db_session.commit()
        return asset, first_buy

    def test_permissive_by_default_overwrites_later_changes(self, db_session):
        asset, first_buy = self._buy_twice(db_session)

        result = RollbackService(db_session, require_unchanged=False).rollback(
            first_buy.id
        )
        db_session.commit()

        assert result.success is True
        db_session.refresh(asset)
        assert asset.quantity == Decimal("1.0")

    def test_require_unchanged_refuses_stale_rollback(self, db_session):
        asset, first_buy = self._buy_twice(db_session)

        result = RollbackService(db_session, require_unchanged=True).rollback(
            first_buy.id
        )

        assert result.success is False
        assert "changed after BUY_MORE" in result.message
        db_session.refresh(asset)
        assert asset.quantity == Decimal("4.0")

    def test_require_unchanged_allows_untouched_row(self, db_session):
        hold_btc(db_session)
        bought = latest_entry(db_session, "BUY_MORE")

        result = RollbackService(db_session, require_unchanged=True).rollback(
            bought.id
        )

        assert result.success is True


class TestCategoryCascade:

    def test_forced_category_delete_is_reversible(self, db_session):
        service = FinanceService(db_session)
        category = service.add_category(CategoryCreate(
            name="Food", type=CategoryKind.EXPENSE,
        ))
        txn = service.add_transaction(TransactionCreate(
            amount=Decimal("15"), date=date(2026, 6, 1),
            type=TransactionKind.EXPENSE, category_id=category.id,
        ))
        db_session.commit()
        category_id, txn_id = category.id, txn.id

        service.delete_category(category_id, force=True)
        db_session.commit()
        deleted = latest_entry(db_session, "DELETE_CATEGORY")
        unlinked = latest_entry(db_session, "UNLINK_CATEGORY")

        rollback = RollbackService(db_session)
        assert rollback.rollback(deleted.id).success is True
        assert rollback.rollback(unlinked.id).success is True
        db_session.commit()

        assert db_session.get(FinanceCategory, category_id).name == "Food"
        assert db_session.get(PersonalTransaction, txn_id).category_id == category_id
