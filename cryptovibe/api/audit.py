"""
Audit trail API endpoints.

Feeds the activity history view: recent entries, per-entity
history, a live stream of new entries, and rollback.
"""

import asyncio
import uuid

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sse_starlette.sse import EventSourceResponse

from cryptovibe.models.base import get_db
from cryptovibe.models.enums import AuditModule
from cryptovibe.schemas.audit import (
    AuditLogCreate,
    AuditLogCreated,
    AuditLogQuery,
    AuditLogResponse,
    RollbackResult,
)
from cryptovibe.services.audit_feed import audit_feed
from cryptovibe.services.audit_service import AuditService
from cryptovibe.services.rollback_service import RollbackService

router = APIRouter(prefix="/audit-logs", tags=["Audit"])

STREAM_PING_SECONDS = 15


@router.post("", response_model=AuditLogCreated, status_code=201)
def create_audit_log(
    request: AuditLogCreate,
    db: Session = Depends(get_db),
):
    """
    Record an audit entry for a mutation made elsewhere.

    id is null when the write failed; the audit trail is
    best-effort and never turns into an error for the caller.
    """
    audit_log_id = AuditService(db).record(request)
    db.commit()
    return AuditLogCreated(id=audit_log_id)


@router.get("", response_model=list[AuditLogResponse])
def list_audit_logs(
    module: AuditModule | None = None,
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    """Recent audit entries, newest first."""
    query = AuditLogQuery(module=module, limit=limit, offset=offset)
    return AuditService(db).list_recent(query)


@router.get(
    "/entity/{entity_type}/{entity_id}",
    response_model=list[AuditLogResponse],
)
def get_entity_history(
    entity_type: str,
    entity_id: uuid.UUID,
    db: Session = Depends(get_db),
):
    """Every audit entry for one entity, newest first."""
    return AuditService(db).history(entity_type, entity_id)


@router.get("/stream")
async def stream_audit_logs(request: Request):
    """Server-sent events, one per committed audit entry."""
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[AuditLogResponse] = asyncio.Queue()
    unsubscribe = audit_feed.subscribe(
        lambda entry: loop.call_soon_threadsafe(queue.put_nowait, entry)
    )

    async def event_generator():
        try:
            while not await request.is_disconnected():
                try:
                    entry = await asyncio.wait_for(
                        queue.get(), timeout=STREAM_PING_SECONDS
                    )
                except asyncio.TimeoutError:
                    continue
                yield {"event": "audit_log", "data": entry.model_dump_json()}
        finally:
            unsubscribe()

    return EventSourceResponse(event_generator(), ping=STREAM_PING_SECONDS)


@router.post("/{audit_log_id}/rollback", response_model=RollbackResult)
def rollback_audit_log(
    audit_log_id: uuid.UUID,
    db: Session = Depends(get_db),
):
    """
    Undo the mutation described by an audit entry.

    The body is a RollbackResult either way; the status code is
    400 when the rollback did not happen.
    """
    result = RollbackService(db).rollback(audit_log_id)
    if not result.success:
        db.rollback()
        return JSONResponse(status_code=400, content=result.model_dump(mode="json"))
    db.commit()
    return result
