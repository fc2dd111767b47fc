"""
Pydantic schemas for the voice command bridge.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from .recipe import RecipeResponse
from .render import RenderQuality, RenderResponse


class VoiceCommandRequest(BaseModel):
    """A single spoken or typed edit command."""

    command: Optional[str] = Field(None, max_length=2000)
    transcript_id: Optional[str] = Field(None, max_length=36)
    deliverable_id: Optional[str] = Field(None, max_length=36)
    auto_render: bool = False
    task_id: Optional[str] = Field(None, max_length=100)
    quality: RenderQuality = "final"


class VoiceCommandResponse(BaseModel):
    """Recipe produced by the command, plus the render when one was started."""

    recipe: RecipeResponse
    render: Optional[RenderResponse] = None
    render_error: Optional[Dict[str, Any]] = None
    message: str
