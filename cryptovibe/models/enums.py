"""
Shared enumerations for database models.

Module and trigger tags are closed sets at the type level even
though they are persisted as plain string enums.
"""

import enum


class AuditModule(str, enum.Enum):
    """The domain that produced an audit entry."""
    CRYPTO = "CRYPTO"
    FINANCE = "FINANCE"
    SYSTEM = "SYSTEM"


class AuditTrigger(str, enum.Enum):
    """Who initiated a mutation."""
    USER_MANUAL = "USER_MANUAL"
    AI_AGENT = "AI_AGENT"


class TransactionKind(str, enum.Enum):
    """Direction of a personal finance transaction."""
    INCOME = "income"
    EXPENSE = "expense"
    INVESTMENT = "investment"


class CategoryKind(str, enum.Enum):
    INCOME = "income"
    EXPENSE = "expense"
