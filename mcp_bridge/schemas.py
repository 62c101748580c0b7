from typing import Any, Dict, List

from pydantic import BaseModel, Field


class ToolCallRequest(BaseModel):
    arguments: Dict[str, Any] = Field(default_factory=dict, description="Structured tool arguments")


class ToolActiveUpdate(BaseModel):
    active: bool


class ToolCallResponse(BaseModel):
    content: List[Dict[str, Any]]
    isError: bool
