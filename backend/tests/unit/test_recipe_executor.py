"""
Unit tests for the Recipe Executor.

Covers the pure apply_operations function (segment arithmetic, operation
order, error reporting) and the database-backed RecipeExecutor.
"""

import pytest

from longform.core.errors import ExecutionError, InvalidInput, RecipeNotFound, TranscriptNotFound
from longform.schemas.recipe import CutOperation
from longform.services.recipe_executor import RecipeExecutor, apply_operations
from tests.conftest import (
    SAMPLE_WORDS,
    TALK_WORDS,
    create_recipe_directly,
    create_transcript_directly,
)


def _spans(timeline):
    return [(s.source_start, s.source_end) for s in timeline.segments]


class TestApplyOperations:
    """Tests for apply_operations."""

    def test_cut_middle_word(self):
        """Cutting [0.3, 0.6] from the/cat/sat leaves the first and last word."""
        timeline = apply_operations(
            [{"type": "cut", "start": 0.3, "end": 0.6}], SAMPLE_WORDS, transcript_id="t-1"
        )
        assert _spans(timeline) == [(0.0, 0.3), (0.6, 1.0)]
        assert [s.output_order for s in timeline.segments] == [0, 1]
        assert [(s.output_start, s.output_end) for s in timeline.segments] == [(0.0, 0.3), (0.3, 0.7)]
        assert [s.text for s in timeline.segments] == ["the", "sat"]
        assert timeline.script_text == "the sat"
        assert timeline.total_duration_seconds == 0.7

    def test_word_range_cut_matches_time_cut(self):
        by_time = apply_operations([CutOperation(start=0.3, end=0.6)], SAMPLE_WORDS)
        by_word = apply_operations([CutOperation(start_word=1, end_word=1)], SAMPLE_WORDS)
        assert _spans(by_word) == _spans(by_time)

    def test_no_operations_is_identity(self):
        timeline = apply_operations([], SAMPLE_WORDS, duration_seconds=1.0)
        assert _spans(timeline) == [(0.0, 1.0)]
        assert timeline.segments[0].text == "the cat sat"
        assert timeline.segments[0].transform is None
        assert timeline.total_duration_seconds == 1.0

    def test_duration_falls_back_to_last_word(self):
        timeline = apply_operations([], SAMPLE_WORDS, duration_seconds=None)
        assert timeline.total_duration_seconds == 1.0

    def test_deterministic(self):
        operations = [
            {"type": "remove_fillers"},
            {"type": "remove_silence"},
            {"type": "pacing", "speed": 1.25},
        ]
        first = apply_operations(operations, TALK_WORDS, 6.0, transcript_id="t-1", recipe_id="r-1")
        second = apply_operations(operations, TALK_WORDS, 6.0, transcript_id="t-1", recipe_id="r-1")
        assert first.model_dump_json() == second.model_dump_json()

    def test_reorder_sees_segments_left_by_cut(self):
        """Cut then swap works; swap then cut fails because only one segment exists yet."""
        cut = {"type": "cut", "start": 0.3, "end": 0.6}
        swap = {"type": "reorder", "swap": [0, 1]}

        timeline = apply_operations([cut, swap], SAMPLE_WORDS)
        assert _spans(timeline) == [(0.6, 1.0), (0.0, 0.3)]
        assert timeline.script_text == "sat the"

        with pytest.raises(ExecutionError) as exc_info:
            apply_operations([swap, cut], SAMPLE_WORDS)
        assert exc_info.value.details["operation_index"] == 0
        assert exc_info.value.details["operation_type"] == "reorder"

    def test_move_last_to_start(self):
        operations = [
            {"type": "cut", "start": 0.2, "end": 0.3},
            {"type": "cut", "start": 0.6, "end": 0.7},
            {"type": "reorder", "move_from": -1, "move_to": 0},
        ]
        timeline = apply_operations(operations, SAMPLE_WORDS)
        assert _spans(timeline) == [(0.7, 1.0), (0.0, 0.2), (0.3, 0.6)]

    def test_reverse(self):
        operations = [
            {"type": "cut", "start": 0.3, "end": 0.6},
            {"type": "reorder", "reverse": True},
        ]
        timeline = apply_operations(operations, SAMPLE_WORDS)
        assert _spans(timeline) == [(0.6, 1.0), (0.0, 0.3)]

    def test_order_must_be_permutation(self):
        operations = [
            {"type": "cut", "start": 0.3, "end": 0.6},
            {"type": "reorder", "order": [0, 0]},
        ]
        with pytest.raises(ExecutionError) as exc_info:
            apply_operations(operations, SAMPLE_WORDS)
        assert exc_info.value.details["operation_index"] == 1

    def test_trim(self):
        timeline = apply_operations([{"type": "trim", "start": 0.3, "end": 1.0}], SAMPLE_WORDS)
        assert _spans(timeline) == [(0.3, 1.0)]
        assert timeline.script_text == "cat sat"

    def test_word_index_out_of_range(self):
        with pytest.raises(ExecutionError) as exc_info:
            apply_operations([{"type": "cut", "start_word": 1, "end_word": 5}], SAMPLE_WORDS)
        assert "out of range" in exc_info.value.message

    def test_cut_outside_remaining_segments(self):
        cut = {"type": "cut", "start": 0.3, "end": 0.6}
        with pytest.raises(ExecutionError) as exc_info:
            apply_operations([cut, cut], SAMPLE_WORDS)
        assert exc_info.value.details["operation_index"] == 1

    def test_cut_everything(self):
        with pytest.raises(ExecutionError) as exc_info:
            apply_operations([{"type": "cut", "start": 0.0, "end": 1.0}], SAMPLE_WORDS)
        assert "empty" in exc_info.value.message

    def test_invalid_operation(self):
        with pytest.raises(ExecutionError) as exc_info:
            apply_operations([{"type": "explode"}], SAMPLE_WORDS)
        assert exc_info.value.message == "Recipe operations are invalid"

    def test_no_duration(self):
        with pytest.raises(ExecutionError):
            apply_operations([], [], duration_seconds=0)

    def test_remove_fillers(self):
        timeline = apply_operations([{"type": "remove_fillers"}], TALK_WORDS, 6.0)
        assert _spans(timeline) == [(0.4, 4.5), (4.8, 6.0)]
        assert timeline.script_text == "welcome to the show today we talk editing"

    def test_remove_silence(self):
        timeline = apply_operations([{"type": "remove_silence"}], TALK_WORDS, 6.0)
        assert _spans(timeline) == [(0.0, 2.1), (3.9, 6.0)]
        assert timeline.total_duration_seconds == 4.2

    def test_remove_silence_trailing_gap(self):
        timeline = apply_operations([{"type": "remove_silence"}], TALK_WORDS, 8.0)
        assert _spans(timeline) == [(0.0, 2.1), (3.9, 6.1)]

    def test_global_pacing(self):
        timeline = apply_operations([{"type": "pacing", "speed": 2.0}], SAMPLE_WORDS)
        segment = timeline.segments[0]
        assert (segment.source_start, segment.source_end) == (0.0, 1.0)
        assert segment.output_end == 0.5
        assert segment.transform.speed == 2.0

    def test_ranged_pacing_splits_segment(self):
        timeline = apply_operations(
            [{"type": "pacing", "speed": 0.5, "start": 0.3, "end": 0.6}], SAMPLE_WORDS
        )
        assert _spans(timeline) == [(0.0, 0.3), (0.3, 0.6), (0.6, 1.0)]
        assert [(s.output_start, s.output_end) for s in timeline.segments] == [
            (0.0, 0.3),
            (0.3, 0.9),
            (0.9, 1.3),
        ]
        assert timeline.segments[0].transform is None
        assert timeline.segments[1].transform.speed == 0.5

    def test_overlay_split_across_segments(self):
        operations = [
            {"type": "cut", "start": 0.3, "end": 0.6},
            {"type": "overlay", "start": 0.2, "end": 0.8, "text": "Hi"},
        ]
        timeline = apply_operations(operations, SAMPLE_WORDS)
        first, second = timeline.segments
        assert [(o.start, o.end) for o in first.transform.overlays] == [(0.2, 0.3)]
        assert [(o.start, o.end) for o in second.transform.overlays] == [(0.6, 0.8)]
        assert first.transform.overlays[0].text == "Hi"
        assert first.transform.speed == 1.0


class TestRecipeExecutor:
    """Tests for RecipeExecutor with the database."""

    @pytest.mark.asyncio
    async def test_execute_defaults_to_recipe_transcript(self, test_db):
        transcript = await create_transcript_directly(test_db)
        recipe = await create_recipe_directly(
            test_db, [{"type": "cut", "start": 0.3, "end": 0.6}], transcript=transcript
        )

        timeline = await RecipeExecutor(test_db).execute(recipe.id)

        assert timeline.recipe_id == recipe.id
        assert timeline.transcript_id == transcript.id
        assert _spans(timeline) == [(0.0, 0.3), (0.6, 1.0)]

    @pytest.mark.asyncio
    async def test_execute_twice_is_identical(self, test_db):
        transcript = await create_transcript_directly(test_db, words=TALK_WORDS)
        recipe = await create_recipe_directly(
            test_db, [{"type": "remove_fillers"}, {"type": "remove_silence"}], transcript=transcript
        )
        executor = RecipeExecutor(test_db)

        first = await executor.execute(recipe.id, transcript.id)
        second = await executor.execute(recipe.id, transcript.id)
        assert first.model_dump_json() == second.model_dump_json()

    @pytest.mark.asyncio
    async def test_explicit_transcript(self, test_db):
        original = await create_transcript_directly(test_db)
        other = await create_transcript_directly(test_db, words=TALK_WORDS)
        recipe = await create_recipe_directly(test_db, [], transcript=original)

        timeline = await RecipeExecutor(test_db).execute(recipe.id, other.id)
        assert timeline.transcript_id == other.id
        assert timeline.total_duration_seconds == 6.0

    @pytest.mark.asyncio
    async def test_recipe_not_found(self, test_db):
        with pytest.raises(RecipeNotFound):
            await RecipeExecutor(test_db).execute("missing-recipe")

    @pytest.mark.asyncio
    async def test_transcript_not_found(self, test_db):
        recipe = await create_recipe_directly(test_db, [])
        with pytest.raises(TranscriptNotFound):
            await RecipeExecutor(test_db).execute(recipe.id, "missing-transcript")

    @pytest.mark.asyncio
    async def test_transcript_required_for_standalone_recipe(self, test_db):
        recipe = await create_recipe_directly(test_db, [])
        with pytest.raises(InvalidInput):
            await RecipeExecutor(test_db).execute(recipe.id)

    @pytest.mark.asyncio
    async def test_recipe_id_required(self, test_db):
        with pytest.raises(InvalidInput):
            await RecipeExecutor(test_db).execute(None)
