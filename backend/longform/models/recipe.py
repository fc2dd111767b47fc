"""
EditRecipe model for the longform editor.

Stores compiled, versioned edit recipes.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from longform.core.database import Base
from .transcript import generate_uuid


class EditRecipe(Base):
    """
    EditRecipe model: an ordered list of edit operations.

    Recipes of a deliverable form a strictly increasing version chain.
    Rows are never updated; compiling again inserts version N+1.
    The unique constraint on (deliverable_id, version) is what makes
    concurrent compiles safe.
    """

    __tablename__ = "edit_recipes"
    __table_args__ = (
        UniqueConstraint("deliverable_id", "version", name="uq_edit_recipes_deliverable_version"),
    )

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
    transcript_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("transcripts.id"),
        nullable=True,
        index=True,
        doc="Transcript the operations were resolved against"
    )

    instructions: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        doc="Natural-language source text"
    )
    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        doc="Version within the deliverable, starting at 1"
    )
    operations: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        doc="Ordered edit operations"
    )
    compiler_revision: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        doc="Ruleset that produced the operations"
    )
    warnings: Mapped[list[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        doc="Instruction fragments dropped during compilation"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
        index=True,
        doc="Creation timestamp"
    )

    def __repr__(self) -> str:
        return f"<EditRecipe(id={self.id!r}, deliverable={self.deliverable_id!r}, version={self.version}, ops={len(self.operations or [])})>"
