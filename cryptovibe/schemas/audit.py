"""
Pydantic schemas for the audit trail and rollback.
"""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, model_validator

from cryptovibe.models.enums import AuditModule, AuditTrigger


# --- Request Schemas ---

class AuditLogCreate(BaseModel):
    """
    Description of one mutation, as handed to the recorder.

    id and created_at are assigned on write and cannot be supplied.
    """
    module: AuditModule
    action: str = Field(min_length=1, max_length=100)
    entity_type: str = Field(min_length=1, max_length=50)
    entity_id: uuid.UUID | None = None
    old_data: dict[str, Any] | None = None
    new_data: dict[str, Any] | None = None
    triggered_by: AuditTrigger = AuditTrigger.USER_MANUAL
    description: str | None = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def creation_has_no_old_data(self) -> "AuditLogCreate":
        if "ADD" in self.action and self.old_data is not None:
            raise ValueError("creation entries cannot carry old_data")
        return self


class AuditLogQuery(BaseModel):
    module: AuditModule | None = None
    limit: int = Field(default=50, ge=1, le=500)
    offset: int = Field(default=0, ge=0)


# --- Response Schemas ---

class AuditLogResponse(BaseModel):
    id: uuid.UUID
    module: AuditModule
    action: str
    entity_type: str
    entity_id: uuid.UUID | None
    old_data: dict[str, Any] | None
    new_data: dict[str, Any] | None
    triggered_by: AuditTrigger
    description: str | None
    created_at: datetime
    can_rollback: bool

    model_config = {"from_attributes": True}


class AuditLogCreated(BaseModel):
    """id is None when the audit write failed."""
    id: uuid.UUID | None


class RollbackResult(BaseModel):
    success: bool
    message: str
    # Identifier of the trailing ROLLBACK / ROLLBACK_DELETE entry, if one was written
    audit_log_id: uuid.UUID | None = None
