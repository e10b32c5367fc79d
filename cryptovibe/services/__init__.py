"""Business logic services."""

from cryptovibe.services.audit_service import AuditService
from cryptovibe.services.rollback_service import RollbackService
from cryptovibe.services.crypto_service import CryptoService
from cryptovibe.services.finance_service import FinanceService
from cryptovibe.services.tool_dispatcher import ToolDispatcher
from cryptovibe.services.audit_feed import AuditFeed, audit_feed

__all__ = [
    "AuditService",
    "RollbackService",
    "CryptoService",
    "FinanceService",
    "ToolDispatcher",
    "AuditFeed",
    "audit_feed",
]
