"""
Pydantic v2 schemas for Edit Recipes.

An Edit Recipe is an ordered list of operations. Each operation is tagged
by ``type`` and targets either a source time range (seconds) or an
inclusive word-index range of the transcript it was compiled against.

Example usage:
    from longform.schemas.recipe import parse_operations

    operations = parse_operations(recipe.operations)
"""

from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, model_validator


# =============================================================================
# Operation Models (Discriminated Union)
# =============================================================================


class RangeTarget(BaseModel):
    """Source range addressed either by seconds or by word indices."""

    start: Optional[float] = Field(default=None, ge=0, description="Range start in source seconds")
    end: Optional[float] = Field(default=None, ge=0, description="Range end in source seconds")
    start_word: Optional[int] = Field(default=None, ge=0, description="First word index (inclusive)")
    end_word: Optional[int] = Field(default=None, ge=0, description="Last word index (inclusive)")

    @model_validator(mode="after")
    def _check_range(self):
        has_time = self.start is not None or self.end is not None
        has_words = self.start_word is not None or self.end_word is not None
        if has_time == has_words:
            raise ValueError("Specify either start/end seconds or start_word/end_word")
        if has_time:
            if self.start is None or self.end is None:
                raise ValueError("Both start and end are required")
            if self.end <= self.start:
                raise ValueError(f"end ({self.end}) must be greater than start ({self.start})")
        else:
            if self.start_word is None or self.end_word is None:
                raise ValueError("Both start_word and end_word are required")
            if self.end_word < self.start_word:
                raise ValueError(
                    f"end_word ({self.end_word}) must not precede start_word ({self.start_word})"
                )
        return self


class CutOperation(RangeTarget):
    """Remove the source range from the current segments."""
    type: Literal["cut"] = "cut"


class TrimOperation(RangeTarget):
    """Keep only the source range."""
    type: Literal["trim"] = "trim"


class ReorderOperation(BaseModel):
    """Reorder current segments by position (0-based).

    Exactly one mode: ``order`` (a permutation), ``move_from``/``move_to``,
    ``swap`` (two positions) or ``reverse``. A ``move_from`` or ``move_to``
    of -1 means the last position.
    """
    type: Literal["reorder"] = "reorder"
    order: Optional[List[int]] = None
    move_from: Optional[int] = Field(default=None, ge=-1)
    move_to: Optional[int] = Field(default=None, ge=-1)
    swap: Optional[List[int]] = Field(default=None, min_length=2, max_length=2)
    reverse: bool = False

    @model_validator(mode="after")
    def _check_mode(self):
        modes = [
            self.order is not None,
            self.move_from is not None or self.move_to is not None,
            self.swap is not None,
            self.reverse,
        ]
        if sum(modes) != 1:
            raise ValueError("Reorder needs exactly one of order, move_from/move_to, swap, reverse")
        if modes[1] and (self.move_from is None or self.move_to is None):
            raise ValueError("Both move_from and move_to are required")
        return self


class OverlayOperation(RangeTarget):
    """Attach overlay metadata (title, caption, image) to a source range."""
    type: Literal["overlay"] = "overlay"
    text: Optional[str] = Field(default=None, max_length=500)
    asset_url: Optional[str] = Field(default=None, max_length=2048)
    position: Literal["top", "center", "bottom"] = "bottom"

    @model_validator(mode="after")
    def _check_content(self):
        if not self.text and not self.asset_url:
            raise ValueError("Overlay needs text or asset_url")
        return self


class RemoveSilenceOperation(BaseModel):
    """Cut gaps between words longer than ``min_gap_seconds``."""
    type: Literal["remove_silence"] = "remove_silence"
    min_gap_seconds: float = Field(default=0.75, gt=0, le=30)
    padding_seconds: float = Field(default=0.1, ge=0, le=2)


class RemoveFillersOperation(BaseModel):
    """Cut the spans of filler words."""
    type: Literal["remove_fillers"] = "remove_fillers"
    words: List[str] = Field(
        default_factory=lambda: list(DEFAULT_FILLER_WORDS),
        min_length=1,
    )


class PacingOperation(BaseModel):
    """Set the playback speed of all segments, or of a source range."""
    type: Literal["pacing"] = "pacing"
    speed: float = Field(..., ge=0.5, le=2.0)
    start: Optional[float] = Field(default=None, ge=0)
    end: Optional[float] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _check_range(self):
        if (self.start is None) != (self.end is None):
            raise ValueError("Pacing range needs both start and end")
        if self.start is not None and self.end <= self.start:
            raise ValueError(f"end ({self.end}) must be greater than start ({self.start})")
        return self


DEFAULT_FILLER_WORDS = ("um", "uh", "umm", "uhh", "er", "erm", "ah", "hmm", "mm")

EditOperation = Annotated[
    Union[
        CutOperation,
        TrimOperation,
        ReorderOperation,
        OverlayOperation,
        RemoveSilenceOperation,
        RemoveFillersOperation,
        PacingOperation,
    ],
    Field(discriminator="type"),
]

_operations_adapter = TypeAdapter(List[EditOperation])


def parse_operations(data: list) -> List[EditOperation]:
    """Validate a stored JSON operation list into operation models."""
    return _operations_adapter.validate_python(data)


def dump_operations(operations: List[EditOperation]) -> list:
    """Serialize operation models for storage, omitting unset optionals."""
    return [op.model_dump(exclude_none=True) for op in operations]


# =============================================================================
# Request / Response Schemas
# =============================================================================


class RecipeCompileRequest(BaseModel):
    """Request to compile instructions into a recipe."""

    instructions: Optional[str] = Field(None, max_length=10000, description="Natural-language edit instructions")
    transcript_text: Optional[str] = Field(None, description="Transcript text the instructions refer to")
    deliverable_id: Optional[str] = Field(None, max_length=36)
    transcript_id: Optional[str] = Field(None, max_length=36)


class RecipeResponse(BaseModel):
    """A compiled recipe."""

    id: str
    deliverable_id: Optional[str] = None
    transcript_id: Optional[str] = None
    instructions: str
    version: int
    operations: List[EditOperation]
    compiler_revision: str
    warnings: List[str] = Field(default_factory=list)
    created_at: datetime

    class Config:
        from_attributes = True


class RecipeSummary(BaseModel):
    """Recipe listing entry."""

    id: str
    deliverable_id: Optional[str] = None
    version: int
    instructions: str
    created_at: datetime

    class Config:
        from_attributes = True


class RecipeListResponse(BaseModel):
    recipes: List[RecipeSummary]
