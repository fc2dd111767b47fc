"""
Render model for the longform editor.

Tracks external render jobs and their lifecycle.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from longform.core.database import Base
from .transcript import generate_uuid


class RenderStatus(str, Enum):
    """Render lifecycle states."""

    QUEUED = "queued"
    RENDERING = "rendering"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    def can_transition_to(self, target: "RenderStatus") -> bool:
        return target in ALLOWED_TRANSITIONS[self]


TERMINAL_STATUSES = frozenset({RenderStatus.COMPLETED, RenderStatus.FAILED})

ALLOWED_TRANSITIONS: dict[RenderStatus, frozenset[RenderStatus]] = {
    RenderStatus.QUEUED: frozenset(
        {RenderStatus.RENDERING, RenderStatus.COMPLETED, RenderStatus.FAILED}
    ),
    RenderStatus.RENDERING: frozenset({RenderStatus.COMPLETED, RenderStatus.FAILED}),
    RenderStatus.COMPLETED: frozenset(),
    RenderStatus.FAILED: frozenset(),
}


class Render(Base):
    """
    Render model representing one attempt to produce a video.

    Created when a render is submitted, mutated only by the orchestrator's
    status path, never deleted. Status moves forward only; completed and
    failed are terminal.
    """

    __tablename__ = "renders"

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
    recipe_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("edit_recipes.id"),
        nullable=True,
        index=True,
        doc="Recipe rendered (null for direct script renders)"
    )

    kind: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        index=True,
        doc="Render kind: preview or final"
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=RenderStatus.QUEUED.value,
        nullable=False,
        index=True,
        doc="Status: queued, rendering, completed, failed"
    )

    # Collaborator tracking
    provider: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        doc="Render collaborator name"
    )
    provider_job_id: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        index=True,
        doc="Job identifier assigned by the collaborator"
    )
    poll_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        doc="Status polls sent to the collaborator"
    )

    # Output
    asset_id: Mapped[Optional[str]] = mapped_column(
        String(2048),
        nullable=True,
        doc="Reference to the rendered asset, set on completion"
    )
    metrics: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        doc="Timing, attempts and error information"
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
        index=True,
        doc="Submission timestamp"
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime,
        nullable=True,
        doc="When the render reached a terminal state"
    )

    @property
    def render_status(self) -> RenderStatus:
        return RenderStatus(self.status)

    def __repr__(self) -> str:
        return f"<Render(id={self.id!r}, kind={self.kind!r}, status={self.status!r})>"
