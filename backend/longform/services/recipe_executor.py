"""
Recipe Executor.

Applies an Edit Recipe to a transcript and produces the Edit Timeline: the
ordered list of retained source segments handed to rendering.

apply_operations is pure. Given the same operations and transcript it
always returns the same timeline, and it never touches the database.
RecipeExecutor loads the inputs and delegates to it.

Usage:
    executor = RecipeExecutor(db)
    timeline = await executor.execute(recipe_id, transcript_id)
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from longform.core.errors import ExecutionError, InvalidInput, RecipeNotFound, TranscriptNotFound
from longform.models.recipe import EditRecipe
from longform.models.transcript import Transcript
from longform.rules.instruction_parser import normalize_token
from longform.schemas.recipe import (
    CutOperation,
    EditOperation,
    OverlayOperation,
    PacingOperation,
    RemoveFillersOperation,
    RemoveSilenceOperation,
    ReorderOperation,
    TrimOperation,
    parse_operations,
)
from longform.schemas.timeline import (
    EditTimeline,
    SegmentOverlay,
    SegmentTransform,
    TimelineSegment,
)

logger = logging.getLogger(__name__)

# All timeline times are rounded to milliseconds
PRECISION = 3


def _r(value: float) -> float:
    return round(value, PRECISION)


@dataclass
class _Segment:
    start: float
    end: float
    speed: float = 1.0
    overlays: List[SegmentOverlay] = field(default_factory=list)

    def overlaps(self, start: float, end: float) -> bool:
        return self.start < end and self.end > start

    def piece(self, start: float, end: float) -> Optional["_Segment"]:
        """Copy of the part of this segment inside [start, end], or None."""
        start, end = _r(max(self.start, start)), _r(min(self.end, end))
        if end <= start:
            return None
        overlays = [
            o.model_copy(update={"start": _r(max(o.start, start)), "end": _r(min(o.end, end))})
            for o in self.overlays
            if o.start < end and o.end > start
        ]
        return _Segment(start=start, end=end, speed=self.speed, overlays=overlays)


def apply_operations(
    operations: Sequence[Union[EditOperation, Dict[str, Any]]],
    words: Sequence[Dict[str, Any]],
    duration_seconds: Optional[float] = None,
    transcript_id: str = "",
    recipe_id: Optional[str] = None,
) -> EditTimeline:
    """
    Apply recipe operations to a transcript.

    The timeline starts as one segment covering the whole source. Each
    operation then acts on the current segment list, strictly in order,
    so later operations see the result of earlier ones: reorder positions
    refer to the segments as they are at that point.

    Args:
        operations: Recipe operations (models or stored dicts)
        words: Normalized transcript words with text/start/end
        duration_seconds: Source duration; falls back to the last word's end
        transcript_id: Transcript the words belong to
        recipe_id: Recipe the operations come from

    Returns:
        EditTimeline with output positions computed

    Raises:
        ExecutionError: If an operation's target cannot be resolved against
            the current segments, or the timeline ends up empty
    """
    try:
        ops = parse_operations([
            op if isinstance(op, dict) else op.model_dump(exclude_none=True)
            for op in operations
        ])
    except ValidationError as e:
        raise ExecutionError(
            "Recipe operations are invalid", details={"errors": len(e.errors())}
        )

    duration = duration_seconds
    if not duration or duration <= 0:
        duration = words[-1]["end"] if words else 0.0
    if duration <= 0:
        raise ExecutionError("Transcript has no duration to edit")

    segments = [_Segment(start=0.0, end=_r(duration))]

    for index, op in enumerate(ops):
        try:
            segments = _apply(op, segments, words, duration)
            if not segments:
                raise ExecutionError("Operation leaves the timeline empty")
        except ExecutionError as e:
            e.details.update({"operation_index": index, "operation_type": op.type})
            raise

    return _build_timeline(segments, words, transcript_id, recipe_id)


def _apply(
    op: EditOperation,
    segments: List[_Segment],
    words: Sequence[Dict[str, Any]],
    duration: float,
) -> List[_Segment]:
    if isinstance(op, CutOperation):
        start, end = _resolve_range(op, words)
        _require_overlap(segments, start, end)
        return _cut(segments, start, end)

    if isinstance(op, TrimOperation):
        start, end = _resolve_range(op, words)
        _require_overlap(segments, start, end)
        return [p for p in (s.piece(start, end) for s in segments) if p is not None]

    if isinstance(op, ReorderOperation):
        return _reorder(op, segments)

    if isinstance(op, OverlayOperation):
        start, end = _resolve_range(op, words)
        _require_overlap(segments, start, end)
        for segment in segments:
            if segment.overlaps(start, end):
                segment.overlays.append(
                    SegmentOverlay(
                        text=op.text,
                        asset_url=op.asset_url,
                        position=op.position,
                        start=_r(max(start, segment.start)),
                        end=_r(min(end, segment.end)),
                    )
                )
        return segments

    if isinstance(op, RemoveSilenceOperation):
        for start, end in _silence_spans(words, duration, op.min_gap_seconds, op.padding_seconds):
            segments = _cut(segments, start, end)
        return segments

    if isinstance(op, RemoveFillersOperation):
        fillers = {normalize_token(w) for w in op.words}
        for word in words:
            if normalize_token(word["text"]) in fillers and word["end"] > word["start"]:
                segments = _cut(segments, word["start"], word["end"])
        return segments

    if isinstance(op, PacingOperation):
        return _pace(op, segments)

    raise ExecutionError(f"Unsupported operation type: {op.type}")


def _resolve_range(op: Any, words: Sequence[Dict[str, Any]]) -> Tuple[float, float]:
    """Source seconds for a time or inclusive word-index range."""
    if op.start is not None:
        return _r(op.start), _r(op.end)

    if op.end_word >= len(words):
        raise ExecutionError(
            f"Word index {op.end_word} is out of range (transcript has {len(words)} words)"
        )
    return _r(words[op.start_word]["start"]), _r(words[op.end_word]["end"])


def _require_overlap(segments: List[_Segment], start: float, end: float) -> None:
    if not any(s.overlaps(start, end) for s in segments):
        raise ExecutionError(
            f"Range {start:g}-{end:g}s does not overlap any remaining segment"
        )


def _cut(segments: List[_Segment], start: float, end: float) -> List[_Segment]:
    result = []
    for segment in segments:
        if not segment.overlaps(start, end):
            result.append(segment)
            continue
        for piece in (segment.piece(segment.start, start), segment.piece(end, segment.end)):
            if piece is not None:
                result.append(piece)
    return result


def _position(value: int, count: int) -> int:
    position = count - 1 if value == -1 else value
    if not 0 <= position < count:
        raise ExecutionError(f"Position {value} is outside the {count} current segments")
    return position


def _reorder(op: ReorderOperation, segments: List[_Segment]) -> List[_Segment]:
    count = len(segments)
    if op.order is not None:
        if sorted(op.order) != list(range(count)):
            raise ExecutionError(
                f"Order {op.order} is not a permutation of the {count} current segments"
            )
        return [segments[i] for i in op.order]

    if op.swap is not None:
        a, b = (_position(p, count) for p in op.swap)
        result = list(segments)
        result[a], result[b] = result[b], result[a]
        return result

    if op.reverse:
        return list(reversed(segments))

    source = _position(op.move_from, count)
    target = _position(op.move_to, count)
    result = list(segments)
    result.insert(target, result.pop(source))
    return result


def _silence_spans(
    words: Sequence[Dict[str, Any]],
    duration: float,
    min_gap: float,
    padding: float,
) -> List[Tuple[float, float]]:
    """Gaps of at least min_gap, shrunk by padding on the speech side(s)."""
    if not words:
        return []

    spans = []
    if words[0]["start"] >= min_gap:
        spans.append((0.0, words[0]["start"] - padding))

    last_end = words[0]["end"]
    for word in words[1:]:
        if word["start"] - last_end >= min_gap:
            spans.append((last_end + padding, word["start"] - padding))
        last_end = max(last_end, word["end"])

    if duration - last_end >= min_gap:
        spans.append((last_end + padding, duration))

    return [(_r(start), _r(end)) for start, end in spans if end - start > 0]


def _pace(op: PacingOperation, segments: List[_Segment]) -> List[_Segment]:
    if op.start is None:
        for segment in segments:
            segment.speed = op.speed
        return segments

    _require_overlap(segments, op.start, op.end)
    result = []
    for segment in segments:
        if not segment.overlaps(op.start, op.end):
            result.append(segment)
            continue
        before = segment.piece(segment.start, op.start)
        inside = segment.piece(op.start, op.end)
        after = segment.piece(op.end, segment.end)
        if inside is not None:
            inside.speed = op.speed
        result.extend(p for p in (before, inside, after) if p is not None)
    return result


def _build_timeline(
    segments: List[_Segment],
    words: Sequence[Dict[str, Any]],
    transcript_id: str,
    recipe_id: Optional[str],
) -> EditTimeline:
    timeline_segments = []
    script_parts = []
    cursor = 0.0

    for order, segment in enumerate(segments):
        # A word belongs to the segment containing its midpoint
        text = " ".join(
            w["text"]
            for w in words
            if segment.start <= (w["start"] + w["end"]) / 2 < segment.end
        )
        output_end = _r(cursor + (segment.end - segment.start) / segment.speed)

        transform = None
        if segment.speed != 1.0 or segment.overlays:
            transform = SegmentTransform(speed=segment.speed, overlays=list(segment.overlays))

        timeline_segments.append(
            TimelineSegment(
                output_order=order,
                source_start=segment.start,
                source_end=segment.end,
                output_start=_r(cursor),
                output_end=output_end,
                text=text,
                transform=transform,
            )
        )
        if text:
            script_parts.append(text)
        cursor = output_end

    return EditTimeline(
        recipe_id=recipe_id,
        transcript_id=transcript_id,
        segments=timeline_segments,
        total_duration_seconds=_r(cursor),
        script_text=" ".join(script_parts),
    )


class RecipeExecutor:
    """Loads a recipe and a transcript and executes one against the other."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def load(
        self, recipe_id: Optional[str], transcript_id: Optional[str] = None
    ) -> Tuple[EditRecipe, Transcript]:
        """
        Load a recipe and its transcript.

        transcript_id defaults to the transcript the recipe was compiled
        against.

        Raises:
            InvalidInput: If no recipe id, or no transcript can be determined
            RecipeNotFound: If the recipe does not exist
            TranscriptNotFound: If the transcript does not exist
        """
        if not recipe_id:
            raise InvalidInput("recipe_id is required")
        recipe = await self.db.get(EditRecipe, recipe_id)
        if recipe is None:
            raise RecipeNotFound(recipe_id)

        transcript_id = transcript_id or recipe.transcript_id
        if not transcript_id:
            raise InvalidInput("transcript_id is required for recipes compiled without one")
        transcript = await self.db.get(Transcript, transcript_id)
        if transcript is None:
            raise TranscriptNotFound(transcript_id)
        return recipe, transcript

    async def execute(
        self, recipe_id: Optional[str], transcript_id: Optional[str] = None
    ) -> EditTimeline:
        """
        Execute a recipe against a transcript.

        Raises:
            RecipeNotFound, TranscriptNotFound: If either input is missing
            ExecutionError: If the recipe does not fit the transcript
        """
        recipe, transcript = await self.load(recipe_id, transcript_id)
        return self.run(recipe, transcript)

    def run(self, recipe: EditRecipe, transcript: Transcript) -> EditTimeline:
        """Execute already-loaded inputs."""
        timeline = apply_operations(
            recipe.operations,
            transcript.words,
            transcript.duration_seconds,
            transcript_id=transcript.id,
            recipe_id=recipe.id,
        )
        logger.info(
            f"Executed recipe {recipe.id} v{recipe.version} on transcript {transcript.id}: "
            f"{len(timeline.segments)} segments, {timeline.total_duration_seconds}s"
        )
        return timeline
