"""
Tool dispatcher for the chat agent.

The agent picks a tool name and a JSON argument object; this maps
them onto the domain services. Every mutation it performs is
recorded as triggered by AI_AGENT. Results are always a ToolResult
with a short message the agent can relay; nothing is raised for
bad input or domain errors.
"""

import uuid
from typing import Any, Callable

from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.orm import Session

from cryptovibe.logging_config import get_logger
from cryptovibe.models.enums import AuditTrigger
from cryptovibe.schemas.audit import AuditLogQuery, AuditLogResponse
from cryptovibe.schemas.chat import ToolResult
from cryptovibe.schemas.crypto import AssetResponse, BuyRequest, SellRequest
from cryptovibe.schemas.finance import (
    CategoryCreate,
    CategoryResponse,
    SavingsDeposit,
    SavingsVaultResponse,
    TransactionCreate,
    TransactionResponse,
)
from cryptovibe.services.audit_service import AuditService
from cryptovibe.services.crypto_service import CryptoService
from cryptovibe.services.finance_service import FinanceService
from cryptovibe.services.rollback_service import RollbackService

logger = get_logger(__name__)

AGENT = AuditTrigger.AI_AGENT


# --- Argument Schemas ---

class TransactionArgs(TransactionCreate):
    # Agents tend to name the category rather than know its id
    category_name: str | None = None


class TransactionIdArgs(BaseModel):
    transaction_id: uuid.UUID


class SymbolTradeArgs(BaseModel):
    symbol: str = Field(min_length=1, max_length=20)


class BuyArgs(SymbolTradeArgs, BuyRequest):
    pass


class SellArgs(SymbolTradeArgs, SellRequest):
    pass


class SavingsDepositArgs(SavingsDeposit):
    vault_id: uuid.UUID


class AuditLogIdArgs(BaseModel):
    audit_log_id: uuid.UUID


class ToolDispatcher:

    def __init__(self, db: Session):
        self.db = db
        self.audit = AuditService(db)
        self.crypto = CryptoService(db, self.audit)
        self.finance = FinanceService(db, self.audit)
        self.tools: dict[str, tuple[type[BaseModel], Callable[[Any], ToolResult]]] = {
            "add_transaction": (TransactionArgs, self._add_transaction),
            "delete_transaction": (TransactionIdArgs, self._delete_transaction),
            "add_category": (CategoryCreate, self._add_category),
            "buy_crypto": (BuyArgs, self._buy_crypto),
            "sell_crypto": (SellArgs, self._sell_crypto),
            "remove_crypto": (SymbolTradeArgs, self._remove_crypto),
            "deposit_savings": (SavingsDepositArgs, self._deposit_savings),
            "get_audit_logs": (AuditLogQuery, self._get_audit_logs),
            "rollback": (AuditLogIdArgs, self._rollback),
        }

    def dispatch(self, name: str, arguments: dict[str, Any]) -> ToolResult:
        """Validate arguments for a tool and run it."""
        if name not in self.tools:
            return ToolResult(success=False, message=f"Unknown tool '{name}'")

        schema, handler = self.tools[name]
        try:
            args = schema.model_validate(arguments)
        except ValidationError as e:
            fields = ", ".join(
                ".".join(str(p) for p in err["loc"]) for err in e.errors()
            )
            return ToolResult(
                success=False,
                message=f"Invalid arguments for {name}: {fields}",
            )

        try:
            result = handler(args)
        except ValueError as e:
            logger.info("tool_call_rejected", tool=name, reason=str(e))
            return ToolResult(success=False, message=str(e))

        logger.info("tool_call_completed", tool=name, success=result.success)
        return result

    # --- Handlers ---

    def _add_transaction(self, args: TransactionArgs) -> ToolResult:
        request = TransactionCreate(**args.model_dump(exclude={"category_name"}))
        if request.category_id is None and args.category_name:
            category = self.finance.find_category_by_name(args.category_name)
            if category:
                request.category_id = category.id

        txn = self.finance.add_transaction(request, AGENT)
        return ToolResult(
            success=True,
            message=f"Recorded {txn.type.value} of {txn.amount} on {txn.date}",
            data=TransactionResponse.model_validate(txn).model_dump(mode="json"),
        )

    def _delete_transaction(self, args: TransactionIdArgs) -> ToolResult:
        self.finance.delete_transaction(args.transaction_id, AGENT)
        return ToolResult(
            success=True,
            message=f"Deleted transaction {args.transaction_id}",
        )

    def _add_category(self, args: CategoryCreate) -> ToolResult:
        category = self.finance.add_category(args, AGENT)
        return ToolResult(
            success=True,
            message=f"Added {category.type.value} category {category.name}",
            data=CategoryResponse.model_validate(category).model_dump(mode="json"),
        )

    def _buy_crypto(self, args: BuyArgs) -> ToolResult:
        asset = self.crypto.buy(args.symbol, args.quantity, args.price, AGENT)
        return ToolResult(
            success=True,
            message=(
                f"Bought {args.quantity} {asset.symbol} @ ${args.price}; "
                f"position is now {asset.quantity} @ ${asset.buy_price}"
            ),
            data=AssetResponse.model_validate(asset).model_dump(mode="json"),
        )

    def _sell_crypto(self, args: SellArgs) -> ToolResult:
        result = self.crypto.sell(args.symbol, args.quantity, AGENT)
        symbol = args.symbol.upper()
        if not result.success:
            return ToolResult(success=False, message=f"No {symbol} position to sell")
        if result.removed:
            message = f"Sold all {symbol}; position closed"
        else:
            message = f"Sold {args.quantity} {symbol}; {result.remaining_quantity} left"
        return ToolResult(
            success=True, message=message, data=result.model_dump(mode="json")
        )

    def _remove_crypto(self, args: SymbolTradeArgs) -> ToolResult:
        self.crypto.remove_asset(args.symbol, AGENT)
        return ToolResult(
            success=True, message=f"Removed {args.symbol.upper()} from portfolio"
        )

    def _deposit_savings(self, args: SavingsDepositArgs) -> ToolResult:
        vault = self.finance.deposit_to_savings_vault(args.vault_id, args.amount, AGENT)
        return ToolResult(
            success=True,
            message=(
                f"Added {args.amount} to {vault.name}: "
                f"{vault.current_amount}/{vault.target_amount}"
            ),
            data=SavingsVaultResponse.model_validate(vault).model_dump(mode="json"),
        )

    def _get_audit_logs(self, args: AuditLogQuery) -> ToolResult:
        logs = self.audit.list_recent(args)
        return ToolResult(
            success=True,
            message=f"{len(logs)} recent action(s)",
            data=[
                AuditLogResponse.model_validate(log).model_dump(mode="json")
                for log in logs
            ],
        )

    def _rollback(self, args: AuditLogIdArgs) -> ToolResult:
        result = RollbackService(self.db).rollback(args.audit_log_id)
        return ToolResult(success=result.success, message=result.message)
