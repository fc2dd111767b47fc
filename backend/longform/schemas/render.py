"""
Pydantic schemas for Render API endpoints.

Includes request/response models for submitting renders and polling status.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

RenderQuality = Literal["preview", "final"]
AspectRatio = Literal["16:9", "9:16", "1:1"]


# --- Request Schemas ---


class RenderScriptRequest(BaseModel):
    """Request to render a script directly, without a recipe."""

    task_id: Optional[str] = Field(None, max_length=100, description="Caller task reference")
    script_text: Optional[str] = Field(None, max_length=20000, description="Script to render")
    recipe_id: Optional[str] = Field(None, max_length=36)
    deliverable_id: Optional[str] = Field(None, max_length=36)
    aspect_ratio: AspectRatio = "16:9"


class ExecuteAndRenderRequest(BaseModel):
    """Request to execute a recipe and render the resulting timeline."""

    recipe_id: Optional[str] = Field(None, max_length=36)
    transcript_id: Optional[str] = Field(None, max_length=36)
    task_id: Optional[str] = Field(None, max_length=100)
    deliverable_id: Optional[str] = Field(None, max_length=36)
    quality: RenderQuality = "final"
    aspect_ratio: AspectRatio = "16:9"


# --- Response Schemas ---


class RenderResponse(BaseModel):
    """Current state of a render."""

    id: str = Field(..., description="Render UUID")
    deliverable_id: Optional[str] = None
    recipe_id: Optional[str] = None
    kind: RenderQuality
    status: Literal["queued", "rendering", "completed", "failed"]
    provider: str
    asset_id: Optional[str] = Field(None, description="Rendered asset reference when completed")
    metrics: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RenderListResponse(BaseModel):
    renders: List[RenderResponse]
