"""
Unit tests for the Render Orchestrator.

Tests submission (success, rejection, timeout), status polling against the
render state machine, and render listing. The render provider is a fake.
"""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import select

from longform.core.config import Settings
from longform.core.errors import (
    ExecutionError,
    InvalidInput,
    RenderNotFound,
    RenderSubmissionFailed,
    RenderTimeout,
)
from longform.models.render import Render, RenderStatus
from longform.providers import ProviderError, ProviderJobStatus
from longform.services.recipe_executor import apply_operations
from longform.services.render_orchestrator import RenderOrchestrator
from tests.conftest import (
    SAMPLE_WORDS,
    FakeRenderProvider,
    TestAsyncSessionLocal,
    create_recipe_directly,
    create_transcript_directly,
)


@pytest.fixture
def fast_settings() -> Settings:
    """Settings with short bounds so timeout paths run quickly."""
    return Settings(
        render_submit_timeout_seconds=0.05,
        render_submit_attempts=2,
        render_poll_timeout_seconds=0.05,
        render_max_wait_seconds=3600,
    )


@pytest.fixture
def orchestrator(test_db, fake_renderer, fast_settings) -> RenderOrchestrator:
    return RenderOrchestrator(test_db, fake_renderer, settings=fast_settings)


class TestSubmission:
    """Tests for render submission."""

    @pytest.mark.asyncio
    async def test_render_script_queued(self, orchestrator, fake_renderer):
        render = await orchestrator.render_script(
            "  A short script  ", quality="preview", deliverable_id="deliv-1", task_id="task-1"
        )

        assert render.status == RenderStatus.QUEUED.value
        assert render.kind == "preview"
        assert render.provider == "fake"
        assert render.provider_job_id == "job-1"
        assert render.poll_count == 0
        assert render.metrics["task_id"] == "task-1"
        assert render.metrics["script_chars"] == len("A short script")
        assert render.metrics["submit_attempts"] == 1

        request = fake_renderer.submitted[0]
        assert request.render_id == render.id
        assert request.script_text == "A short script"
        assert request.timeline is None

    @pytest.mark.asyncio
    async def test_render_timeline_sends_timeline(self, orchestrator, fake_renderer):
        timeline = apply_operations(
            [{"type": "cut", "start": 0.3, "end": 0.6}], SAMPLE_WORDS, transcript_id="t-1"
        )
        render = await orchestrator.render_timeline(timeline, quality="final", task_id="task-1")

        assert render.kind == "final"
        assert render.metrics["segment_count"] == 2
        assert render.metrics["output_duration_seconds"] == 0.7
        request = fake_renderer.submitted[0]
        assert request.script_text == "the sat"
        assert len(request.timeline["segments"]) == 2

    @pytest.mark.asyncio
    async def test_blank_script_rejected_before_provider(self, orchestrator, fake_renderer, test_db):
        with pytest.raises(InvalidInput):
            await orchestrator.render_script("   ")
        assert fake_renderer.submitted == []
        result = await test_db.execute(select(Render))
        assert result.scalars().all() == []

    @pytest.mark.asyncio
    async def test_unknown_quality_rejected(self, orchestrator):
        with pytest.raises(InvalidInput) as exc_info:
            await orchestrator.render_script("script", quality="ultra")
        assert exc_info.value.details == {"quality": "ultra"}

    @pytest.mark.asyncio
    async def test_unknown_aspect_ratio_rejected(self, orchestrator):
        with pytest.raises(InvalidInput):
            await orchestrator.render_script("script", aspect_ratio="4:3")

    @pytest.mark.asyncio
    async def test_rejection_marks_render_failed(
        self, orchestrator, fake_renderer, test_db, provider_rejection
    ):
        fake_renderer.submit_error = provider_rejection

        with pytest.raises(RenderSubmissionFailed) as exc_info:
            await orchestrator.render_script("script", deliverable_id="deliv-1")

        render_id = exc_info.value.details["render_id"]
        render = await test_db.get(Render, render_id)
        assert render.status == RenderStatus.FAILED.value
        assert render.completed_at is not None
        assert render.provider_job_id is None
        assert render.metrics["error"] == "quota exceeded"
        # Provider payloads stay in the logs
        assert "do-not-leak" not in str(exc_info.value.to_dict())

    @pytest.mark.asyncio
    async def test_submission_timeout_retries_then_fails(self, orchestrator, fake_renderer, test_db):
        fake_renderer.submit_delay = 1.0

        with pytest.raises(RenderTimeout) as exc_info:
            await orchestrator.render_script("script")

        assert len(fake_renderer.submitted) == 2
        render = await test_db.get(Render, exc_info.value.details["render_id"])
        assert render.status == RenderStatus.FAILED.value
        assert render.metrics["timeout_reason"] == "submission_timeout"
        assert render.metrics["submit_attempts"] == 2

    @pytest.mark.asyncio
    async def test_execute_and_render(self, orchestrator, fake_renderer, test_db):
        transcript = await create_transcript_directly(test_db, deliverable_id="deliv-1")
        recipe = await create_recipe_directly(
            test_db,
            [{"type": "cut", "start_word": 1, "end_word": 1}],
            transcript=transcript,
            deliverable_id="deliv-1",
        )

        render = await orchestrator.execute_and_render(recipe.id, task_id="task-1", quality="preview")

        assert render.recipe_id == recipe.id
        assert render.deliverable_id == "deliv-1"
        assert render.status == RenderStatus.QUEUED.value
        request = fake_renderer.submitted[0]
        assert request.source_url == transcript.asset_url
        assert request.timeline["recipe_id"] == recipe.id

    @pytest.mark.asyncio
    async def test_execute_and_render_execution_error(self, orchestrator, fake_renderer, test_db):
        transcript = await create_transcript_directly(test_db)
        recipe = await create_recipe_directly(
            test_db, [{"type": "cut", "start_word": 0, "end_word": 9}], transcript=transcript
        )

        with pytest.raises(ExecutionError):
            await orchestrator.execute_and_render(recipe.id)
        assert fake_renderer.submitted == []


class TestStatus:
    """Tests for render status polling."""

    @pytest.mark.asyncio
    async def test_progresses_to_completed(self, orchestrator, fake_renderer):
        fake_renderer.states = [
            ProviderJobStatus(state="rendering"),
            ProviderJobStatus(state="completed", asset_ref="https://cdn.example.com/out.mp4"),
        ]
        render = await orchestrator.render_script("script")

        render = await orchestrator.get_status(render.id)
        assert render.status == RenderStatus.RENDERING.value
        assert render.completed_at is None

        render = await orchestrator.get_status(render.id)
        assert render.status == RenderStatus.COMPLETED.value
        assert render.asset_id == "https://cdn.example.com/out.mp4"
        assert render.completed_at is not None
        assert "render_seconds" in render.metrics
        assert render.poll_count == 2

    @pytest.mark.asyncio
    async def test_terminal_render_not_polled_again(self, orchestrator, fake_renderer):
        fake_renderer.states = [
            ProviderJobStatus(state="completed", asset_ref="https://cdn.example.com/out.mp4")
        ]
        render = await orchestrator.render_script("script")
        render = await orchestrator.get_status(render.id)
        assert render.status == RenderStatus.COMPLETED.value
        assert fake_renderer.poll_calls == 1

        for _ in range(3):
            again = await orchestrator.get_status(render.id)
            assert again.status == RenderStatus.COMPLETED.value
            assert again.asset_id == "https://cdn.example.com/out.mp4"
            assert again.poll_count == 1
        assert fake_renderer.poll_calls == 1

    @pytest.mark.asyncio
    async def test_provider_failure_recorded_once(self, orchestrator, fake_renderer):
        fake_renderer.states = [ProviderJobStatus(state="failed", error="encoder crashed")]
        render = await orchestrator.render_script("script")

        render = await orchestrator.get_status(render.id)
        assert render.status == RenderStatus.FAILED.value
        assert render.metrics["error"] == "encoder crashed"

        render = await orchestrator.get_status(render.id)
        assert render.poll_count == 1
        assert fake_renderer.poll_calls == 1

    @pytest.mark.asyncio
    async def test_stale_state_ignored(self, orchestrator, fake_renderer):
        fake_renderer.states = [
            ProviderJobStatus(state="rendering"),
            ProviderJobStatus(state="queued"),
        ]
        render = await orchestrator.render_script("script")
        await orchestrator.get_status(render.id)
        render = await orchestrator.get_status(render.id)

        assert render.status == RenderStatus.RENDERING.value
        assert render.poll_count == 2

    @pytest.mark.asyncio
    async def test_unknown_state_ignored(self, orchestrator, fake_renderer):
        fake_renderer.states = [ProviderJobStatus(state="paused")]
        render = await orchestrator.render_script("script")
        render = await orchestrator.get_status(render.id)
        assert render.status == RenderStatus.QUEUED.value
        assert render.poll_count == 1

    @pytest.mark.asyncio
    async def test_poll_timeout_leaves_render_unchanged(self, orchestrator, fake_renderer, test_db):
        render = await orchestrator.render_script("script")
        fake_renderer.poll_delay = 1.0

        with pytest.raises(RenderTimeout):
            await orchestrator.get_status(render.id)

        stored = await test_db.get(Render, render.id)
        assert stored.status == RenderStatus.QUEUED.value
        assert stored.poll_count == 0

    @pytest.mark.asyncio
    async def test_poll_error_is_transient(self, orchestrator, fake_renderer):
        render = await orchestrator.render_script("script")
        fake_renderer.poll_error = ProviderError("502 from upstream")

        render = await orchestrator.get_status(render.id)
        assert render.status == RenderStatus.QUEUED.value
        assert render.poll_count == 1
        assert render.metrics["last_poll_error"] == "502 from upstream"

    @pytest.mark.asyncio
    async def test_max_wait_exceeded(self, orchestrator, fake_renderer, test_db):
        render = await orchestrator.render_script("script")
        render.created_at = datetime.utcnow() - timedelta(hours=2)
        await test_db.flush()

        render = await orchestrator.get_status(render.id)
        assert render.status == RenderStatus.FAILED.value
        assert render.metrics["timeout_reason"] == "max_wait_exceeded"
        assert render.completed_at is not None
        assert fake_renderer.poll_calls == 1

    @pytest.mark.asyncio
    async def test_overdue_render_finished_at_provider(self, orchestrator, fake_renderer, test_db):
        """A render that finished while nobody polled keeps its asset."""
        fake_renderer.states = [
            ProviderJobStatus(state="completed", asset_ref="https://cdn.example.com/x.mp4")
        ]
        render = await orchestrator.render_script("script")
        render.created_at = datetime.utcnow() - timedelta(hours=2)
        await test_db.flush()

        render = await orchestrator.get_status(render.id)
        assert render.status == RenderStatus.COMPLETED.value
        assert render.asset_id == "https://cdn.example.com/x.mp4"
        assert "timeout_reason" not in render.metrics
        assert render.poll_count == 1

    @pytest.mark.asyncio
    async def test_overdue_render_with_poll_timeout_fails(self, orchestrator, fake_renderer, test_db):
        render = await orchestrator.render_script("script")
        render.created_at = datetime.utcnow() - timedelta(hours=2)
        await test_db.flush()
        fake_renderer.poll_delay = 1.0

        render = await orchestrator.get_status(render.id)
        assert render.status == RenderStatus.FAILED.value
        assert render.metrics["timeout_reason"] == "max_wait_exceeded"

    @pytest.mark.asyncio
    async def test_concurrent_poll_cannot_regress_terminal(
        self, orchestrator, fake_renderer, fast_settings, test_db, monkeypatch
    ):
        """A poll that lands after another session completed the render keeps it completed."""
        render = await orchestrator.render_script("script")
        await test_db.commit()

        other_renderer = FakeRenderProvider()
        other_renderer.states = [ProviderJobStatus(state="completed", asset_ref="asset-1")]

        async def poll_while_other_session_completes(provider_job_id):
            async with TestAsyncSessionLocal() as other_db:
                other = RenderOrchestrator(other_db, other_renderer, settings=fast_settings)
                completed = await other.get_status(render.id)
                assert completed.status == RenderStatus.COMPLETED.value
                await other_db.commit()
            return ProviderJobStatus(state="rendering")

        monkeypatch.setattr(fake_renderer, "poll_status", poll_while_other_session_completes)

        result = await orchestrator.get_status(render.id)
        assert result.status == RenderStatus.COMPLETED.value
        assert result.asset_id == "asset-1"
        assert result.poll_count == 1

        await test_db.commit()
        stored = (
            await test_db.execute(
                select(Render).where(Render.id == render.id).execution_options(populate_existing=True)
            )
        ).scalar_one()
        assert stored.status == RenderStatus.COMPLETED.value
        assert stored.asset_id == "asset-1"

    @pytest.mark.asyncio
    async def test_not_found(self, orchestrator):
        with pytest.raises(RenderNotFound):
            await orchestrator.get_status("missing-render")


class TestListRenders:
    """Tests for render listing."""

    @pytest.mark.asyncio
    async def test_filters(self, orchestrator):
        await orchestrator.render_script("a", quality="preview", deliverable_id="deliv-1")
        await orchestrator.render_script("b", quality="final", deliverable_id="deliv-1")
        await orchestrator.render_script("c", quality="final", deliverable_id="deliv-2")

        assert len(await orchestrator.list_renders(deliverable_id="deliv-1")) == 2
        finals = await orchestrator.list_renders(deliverable_id="deliv-1", kind="final")
        assert [r.metrics["script_chars"] for r in finals] == [1]
        assert len(await orchestrator.list_renders(kind="final")) == 2
        assert len(await orchestrator.list_renders(limit=1)) == 1
