"""
Console request and response models.

These models define the payloads exchanged between the console front end
and the session endpoints.
"""

from typing import List

from pydantic import BaseModel, Field


class EvaluateRequest(BaseModel):
    """Input to evaluate in a session's current context."""

    input: str = Field(..., description="Source to evaluate")


class EvaluateResponse(BaseModel):
    output: str = Field(..., description="Formatted result or error")


class SwitchRequest(BaseModel):
    """Switch the current context to another frame."""

    frame_id: int = Field(..., description="Frame position within the group")
    exception_object_id: str = Field(..., description="Identity key of the group's error")


class SwitchResponse(BaseModel):
    ok: bool = True


class ContextResponse(BaseModel):
    context: List[str] = Field(default_factory=list, description="Visible names")
