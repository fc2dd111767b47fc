"""
Pydantic schemas for the longform editor API.
"""

from .recipe import (
    CutOperation,
    EditOperation,
    OverlayOperation,
    PacingOperation,
    RecipeCompileRequest,
    RecipeListResponse,
    RecipeResponse,
    RecipeSummary,
    RemoveFillersOperation,
    RemoveSilenceOperation,
    ReorderOperation,
    TrimOperation,
    dump_operations,
    parse_operations,
)
from .render import (
    ExecuteAndRenderRequest,
    RenderListResponse,
    RenderResponse,
    RenderScriptRequest,
)
from .timeline import (
    EditTimeline,
    ExecuteRecipeRequest,
    SegmentOverlay,
    SegmentTransform,
    TimelineSegment,
)
from .transcript import TranscribeRequest, TranscriptResponse, Word
from .voice import VoiceCommandRequest, VoiceCommandResponse

__all__ = [
    # Recipe
    "CutOperation",
    "EditOperation",
    "OverlayOperation",
    "PacingOperation",
    "RecipeCompileRequest",
    "RecipeListResponse",
    "RecipeResponse",
    "RecipeSummary",
    "RemoveFillersOperation",
    "RemoveSilenceOperation",
    "ReorderOperation",
    "TrimOperation",
    "dump_operations",
    "parse_operations",
    # Render
    "ExecuteAndRenderRequest",
    "RenderListResponse",
    "RenderResponse",
    "RenderScriptRequest",
    # Timeline
    "EditTimeline",
    "ExecuteRecipeRequest",
    "SegmentOverlay",
    "SegmentTransform",
    "TimelineSegment",
    # Transcript
    "TranscribeRequest",
    "TranscriptResponse",
    "Word",
    # Voice
    "VoiceCommandRequest",
    "VoiceCommandResponse",
]
