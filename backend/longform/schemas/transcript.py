"""
Pydantic schemas for Transcript endpoints.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class Word(BaseModel):
    """A single transcribed word with source timings in seconds."""

    text: str
    start: float = Field(..., ge=0)
    end: float = Field(..., ge=0)
    speaker: Optional[str] = None


class TranscribeRequest(BaseModel):
    """Request to transcribe a media asset."""

    asset_url: Optional[str] = Field(None, max_length=2048, description="Source media location")
    deliverable_id: Optional[str] = Field(None, max_length=36)


class TranscriptResponse(BaseModel):
    """A persisted transcript."""

    id: str
    deliverable_id: Optional[str] = None
    asset_url: str
    words: List[Word]
    full_text: str
    duration_seconds: float
    meta: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime

    class Config:
        from_attributes = True
