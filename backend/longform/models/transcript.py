"""
Transcript model for the longform editor.

Stores a word-level transcription of a media asset.
"""

from datetime import datetime
from typing import Any, Optional
import uuid

from sqlalchemy import JSON, DateTime, Float, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from longform.core.database import Base


def generate_uuid() -> str:
    """Generate a new UUID string."""
    return str(uuid.uuid4())


class Transcript(Base):
    """
    Transcript model representing a word-level transcription.

    Immutable once created: a re-transcription inserts a new row.
    ``words`` is a JSON list of {"text", "start", "end", "speaker"?}
    sorted by start time.
    """

    __tablename__ = "transcripts"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_uuid,
        doc="UUID primary key"
    )
    deliverable_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        nullable=True,
        index=True,
        doc="Weak reference to the owning deliverable"
    )
    asset_url: Mapped[str] = mapped_column(
        String(2048),
        nullable=False,
        doc="Source media location"
    )

    words: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        doc="Word timings"
    )
    full_text: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        doc="Whitespace join of word texts"
    )
    duration_seconds: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=0.0,
        doc="Media duration in seconds"
    )
    meta: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        doc="Opaque provider metadata"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
        index=True,
        doc="Creation timestamp"
    )

    def __repr__(self) -> str:
        return f"<Transcript(id={self.id!r}, words={len(self.words or [])}, duration={self.duration_seconds})>"
