"""
Database models package.

All models must be imported here so that Alembic can discover
them through Base.metadata when generating migrations.
"""

from cryptovibe.models.base import Base
from cryptovibe.models.enums import (
    AuditModule,
    AuditTrigger,
    TransactionKind,
    CategoryKind,
)
from cryptovibe.models.audit_log import AuditLog
from cryptovibe.models.asset import Asset
from cryptovibe.models.finance_category import FinanceCategory
from cryptovibe.models.personal_transaction import PersonalTransaction
from cryptovibe.models.savings_vault import SavingsVault

__all__ = [
    "Base",
    "AuditModule",
    "AuditTrigger",
    "TransactionKind",
    "CategoryKind",
    "AuditLog",
    "Asset",
    "FinanceCategory",
    "PersonalTransaction",
    "SavingsVault",
]
