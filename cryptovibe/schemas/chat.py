"""
Pydantic schemas for the chat agent's tool calls.
"""

from typing import Any

from pydantic import BaseModel, Field


class ToolCall(BaseModel):
    arguments: dict[str, Any] = Field(default_factory=dict)


class ToolResult(BaseModel):
    success: bool
    message: str
    data: Any = None
