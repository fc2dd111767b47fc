"""
Pydantic schemas for the Edit Timeline.

The timeline is never persisted: it is recomputed from (recipe, transcript)
and handed straight to rendering.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class SegmentOverlay(BaseModel):
    """Overlay attached to a segment."""

    text: Optional[str] = None
    asset_url: Optional[str] = None
    position: Literal["top", "center", "bottom"] = "bottom"
    start: float = Field(..., description="Overlay start in source seconds")
    end: float = Field(..., description="Overlay end in source seconds")


class SegmentTransform(BaseModel):
    """Transformation metadata carried by a segment."""

    speed: float = Field(1.0, ge=0.5, le=2.0, description="Playback speed multiplier")
    overlays: List[SegmentOverlay] = Field(default_factory=list)


class TimelineSegment(BaseModel):
    """A retained stretch of source material."""

    output_order: int = Field(..., ge=0, description="Position in the output video")
    source_start: float = Field(..., ge=0, description="Source in-point in seconds")
    source_end: float = Field(..., ge=0, description="Source out-point in seconds")
    output_start: float = Field(..., ge=0, description="Start in the output video in seconds")
    output_end: float = Field(..., ge=0, description="End in the output video in seconds")
    text: str = Field("", description="Transcript words inside the segment")
    transform: Optional[SegmentTransform] = None


class EditTimeline(BaseModel):
    """Ordered list of retained segments, the direct input to rendering."""

    recipe_id: Optional[str] = None
    transcript_id: str
    segments: List[TimelineSegment]
    total_duration_seconds: float
    script_text: str = Field("", description="Retained words in output order")


class ExecuteRecipeRequest(BaseModel):
    """Request to execute a recipe against a transcript."""

    recipe_id: Optional[str] = Field(None, max_length=36)
    transcript_id: Optional[str] = Field(None, max_length=36)
