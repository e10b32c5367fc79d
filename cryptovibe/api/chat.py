"""
Tool-call endpoint for the chat agent.

The LLM layer resolves the user's intent to a tool name and
arguments and calls this endpoint; the agent's mutations are
audited as AI_AGENT.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from cryptovibe.models.base import get_db
from cryptovibe.schemas.chat import ToolCall, ToolResult
from cryptovibe.services.tool_dispatcher import ToolDispatcher

router = APIRouter(prefix="/chat", tags=["Chat"])


@router.post("/tools/{name}", response_model=ToolResult)
def call_tool(
    name: str,
    request: ToolCall,
    db: Session = Depends(get_db),
):
    result = ToolDispatcher(db).dispatch(name, request.arguments)
    if result.success:
        db.commit()
    else:
        db.rollback()
    return result
