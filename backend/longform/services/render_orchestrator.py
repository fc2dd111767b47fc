"""
Render Orchestrator.

Submits timelines and scripts to the render provider, records each attempt
as a Render row, and polls the provider for progress.

Status moves forward only (see RenderStatus). A terminal render is never
polled again, so reading it is a pure database read.

Usage:
    orchestrator = RenderOrchestrator(db, provider)
    render = await orchestrator.execute_and_render(recipe_id, transcript_id, task_id="t-1")
    render = await orchestrator.get_status(render.id)
"""

import asyncio
import logging
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from longform.core.config import Settings, get_settings
from longform.core.errors import (
    InvalidInput,
    RenderNotFound,
    RenderSubmissionFailed,
    RenderTimeout,
)
from longform.models.render import Render, RenderStatus
from longform.providers import ProviderError, ProviderJobStatus, RenderJobRequest, RenderProvider
from longform.schemas.timeline import EditTimeline

from .recipe_executor import RecipeExecutor

logger = logging.getLogger(__name__)

RENDER_QUALITIES = ("preview", "final")
ASPECT_RATIOS = ("16:9", "9:16", "1:1")

DEFAULT_LIST_LIMIT = 50


class RenderOrchestrator:
    """
    Drives renders through the provider.

    Every provider call is bounded: submission by
    render_submit_timeout_seconds (retried up to render_submit_attempts
    times on timeout), polling by render_poll_timeout_seconds. A render
    still unfinished after render_max_wait_seconds is failed on its next
    poll.
    """

    def __init__(
        self,
        db: AsyncSession,
        provider: RenderProvider,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            db: AsyncSession for database access
            provider: Render collaborator
            settings: Timeouts and retry policy (defaults to application settings)
        """
        self.db = db
        self.provider = provider
        self.settings = settings or get_settings()

    # -------------------------------------------------------------------------
    # Submission
    # -------------------------------------------------------------------------

    async def render_timeline(
        self,
        timeline: EditTimeline,
        quality: str = "final",
        recipe_id: Optional[str] = None,
        deliverable_id: Optional[str] = None,
        task_id: Optional[str] = None,
        aspect_ratio: str = "16:9",
        source_url: Optional[str] = None,
    ) -> Render:
        """
        Submit an executed timeline for rendering.

        Raises:
            InvalidInput: If quality or aspect_ratio is unknown, or the timeline is empty
            RenderSubmissionFailed: If the provider rejects the job
            RenderTimeout: If every submission attempt timed out
        """
        self._check_options(quality, aspect_ratio)
        if not timeline.segments:
            raise InvalidInput("Timeline has no segments to render")

        request = RenderJobRequest(
            render_id="",
            quality=quality,
            aspect_ratio=aspect_ratio,
            script_text=timeline.script_text,
            timeline=timeline.model_dump(mode="json"),
            source_url=source_url,
            task_id=task_id,
        )
        metrics = {
            "task_id": task_id,
            "aspect_ratio": aspect_ratio,
            "segment_count": len(timeline.segments),
            "output_duration_seconds": timeline.total_duration_seconds,
        }
        return await self._submit(
            request,
            recipe_id=recipe_id or timeline.recipe_id,
            deliverable_id=deliverable_id,
            metrics=metrics,
        )

    async def render_script(
        self,
        script_text: Optional[str],
        quality: str = "final",
        recipe_id: Optional[str] = None,
        deliverable_id: Optional[str] = None,
        task_id: Optional[str] = None,
        aspect_ratio: str = "16:9",
    ) -> Render:
        """
        Render a script directly, without executing a recipe.

        Raises:
            InvalidInput: If script_text is blank or an option is unknown
            RenderSubmissionFailed: If the provider rejects the job
            RenderTimeout: If every submission attempt timed out
        """
        if not script_text or not script_text.strip():
            raise InvalidInput("script_text is required")
        self._check_options(quality, aspect_ratio)

        request = RenderJobRequest(
            render_id="",
            quality=quality,
            aspect_ratio=aspect_ratio,
            script_text=script_text.strip(),
            task_id=task_id,
        )
        metrics = {
            "task_id": task_id,
            "aspect_ratio": aspect_ratio,
            "script_chars": len(request.script_text),
        }
        return await self._submit(
            request, recipe_id=recipe_id, deliverable_id=deliverable_id, metrics=metrics
        )

    async def execute_and_render(
        self,
        recipe_id: Optional[str],
        transcript_id: Optional[str] = None,
        task_id: Optional[str] = None,
        quality: str = "final",
        deliverable_id: Optional[str] = None,
        aspect_ratio: str = "16:9",
    ) -> Render:
        """
        Execute a recipe and render the resulting timeline.

        deliverable_id defaults to the recipe's deliverable.

        Raises:
            RecipeNotFound, TranscriptNotFound: If an input is missing
            ExecutionError: If the recipe does not fit the transcript
            RenderSubmissionFailed, RenderTimeout: If submission fails
        """
        self._check_options(quality, aspect_ratio)
        executor = RecipeExecutor(self.db)
        recipe, transcript = await executor.load(recipe_id, transcript_id)
        timeline = executor.run(recipe, transcript)

        return await self.render_timeline(
            timeline,
            quality=quality,
            recipe_id=recipe.id,
            deliverable_id=deliverable_id or recipe.deliverable_id,
            task_id=task_id,
            aspect_ratio=aspect_ratio,
            source_url=transcript.asset_url,
        )

    def _check_options(self, quality: str, aspect_ratio: str) -> None:
        if quality not in RENDER_QUALITIES:
            raise InvalidInput(
                f"quality must be one of {', '.join(RENDER_QUALITIES)}",
                details={"quality": quality},
            )
        if aspect_ratio not in ASPECT_RATIOS:
            raise InvalidInput(
                f"aspect_ratio must be one of {', '.join(ASPECT_RATIOS)}",
                details={"aspect_ratio": aspect_ratio},
            )

    async def _submit(
        self,
        request: RenderJobRequest,
        recipe_id: Optional[str],
        deliverable_id: Optional[str],
        metrics: Dict[str, Any],
    ) -> Render:
        """
        Create the render row and hand the job to the provider.

        The row is created as queued before the provider is contacted. If
        submission fails the row is marked failed and committed before the
        error is raised, so the attempt stays on record.
        """
        render = Render(
            deliverable_id=deliverable_id,
            recipe_id=recipe_id,
            kind=request.quality,
            status=RenderStatus.QUEUED.value,
            provider=self.provider.name,
            poll_count=0,
            metrics=metrics,
        )
        self.db.add(render)
        await self.db.flush()
        render_id = render.id
        request.render_id = render_id

        attempts = max(1, self.settings.render_submit_attempts)
        timeout = self.settings.render_submit_timeout_seconds

        for attempt in range(1, attempts + 1):
            started = time.monotonic()
            try:
                job_id = await asyncio.wait_for(self.provider.submit(request), timeout=timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    f"Render {render_id} submission timed out after {timeout}s "
                    f"(attempt {attempt}/{attempts})"
                )
                continue
            except ProviderError as e:
                logger.error(
                    f"Render {render_id} rejected by {self.provider.name}: {e.message} {e.payload}"
                )
                await self._fail_submission(render, {"error": e.message, "submit_attempts": attempt})
                raise RenderSubmissionFailed(
                    "Render provider rejected the job", details={"render_id": render_id}
                )

            render.provider_job_id = job_id
            render.metrics = {
                **render.metrics,
                "submit_attempts": attempt,
                "submit_ms": int((time.monotonic() - started) * 1000),
            }
            await self.db.flush()
            await self.db.refresh(render)
            logger.info(
                f"Submitted {render.kind} render {render.id} to {self.provider.name} "
                f"as job {job_id} (deliverable {render.deliverable_id})"
            )
            return render

        await self._fail_submission(
            render, {"timeout_reason": "submission_timeout", "submit_attempts": attempts}
        )
        raise RenderTimeout(
            f"Render submission timed out after {attempts} attempts",
            details={"render_id": render_id},
        )

    async def _fail_submission(self, render: Render, metrics: Dict[str, Any]) -> None:
        render.status = RenderStatus.FAILED.value
        render.completed_at = datetime.utcnow()
        render.metrics = {**render.metrics, **metrics}
        await self.db.commit()

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    async def get_status(self, render_id: str) -> Render:
        """
        Return a render, refreshing it from the provider when still in flight.

        Terminal renders are returned as stored; the provider is not
        contacted and poll_count does not change. The provider is always
        asked before the max-wait deadline is applied, so a render that
        finished while nobody was polling keeps its asset.

        The write is conditional on the status read at the start. When a
        concurrent poll has moved the render on in the meantime, this poll's
        result is discarded and the stored row is returned.

        Raises:
            RenderNotFound: If no render has this id
            RenderTimeout: If the status poll itself timed out (record unchanged)
        """
        render = await self.db.get(Render, render_id)
        if render is None:
            raise RenderNotFound(render_id)

        current = render.render_status
        if current.is_terminal:
            return render

        target = current
        values: Dict[str, Any] = {}
        metrics: Dict[str, Any] = {}
        poll_timed_out = False

        if render.provider_job_id:
            try:
                job = await asyncio.wait_for(
                    self.provider.poll_status(render.provider_job_id),
                    timeout=self.settings.render_poll_timeout_seconds,
                )
            except asyncio.TimeoutError:
                logger.warning(f"Status poll for render {render.id} timed out")
                poll_timed_out = True
            except ProviderError as e:
                # Transient; the render stays in flight until max wait runs out
                logger.error(f"Status poll for render {render.id} failed: {e.message} {e.payload}")
                values["poll_count"] = Render.poll_count + 1
                metrics["last_poll_error"] = e.message
            else:
                values["poll_count"] = Render.poll_count + 1
                target = self._target_from_job(render, current, job, values, metrics)

        if not target.is_terminal:
            waited = (datetime.utcnow() - render.created_at).total_seconds()
            if waited > self.settings.render_max_wait_seconds:
                logger.warning(
                    f"Render {render.id} still {target.value} after {int(waited)}s, marking failed"
                )
                target = RenderStatus.FAILED
                metrics.update(timeout_reason="max_wait_exceeded", waited_seconds=int(waited))
            elif poll_timed_out:
                raise RenderTimeout(
                    "Render status poll timed out", details={"render_id": render.id}
                )

        if target == current and not values and not metrics:
            return render
        return await self._write_status(render, current, target, values, metrics)

    def _target_from_job(
        self,
        render: Render,
        current: RenderStatus,
        job: ProviderJobStatus,
        values: Dict[str, Any],
        metrics: Dict[str, Any],
    ) -> RenderStatus:
        try:
            target = RenderStatus(job.state)
        except ValueError:
            logger.warning(f"Render {render.id}: unknown provider state {job.state!r} ignored")
            return current

        if target == current:
            return current
        if not current.can_transition_to(target):
            logger.warning(
                f"Render {render.id}: stale provider state {target.value} ignored "
                f"(currently {current.value})"
            )
            return current

        if target == RenderStatus.COMPLETED:
            values["asset_id"] = job.asset_ref
        elif target == RenderStatus.FAILED:
            metrics["error"] = job.error or "Render failed"
            logger.error(f"Render {render.id} failed at provider: {job.error} {job.raw}")
        return target

    async def _write_status(
        self,
        render: Render,
        current: RenderStatus,
        target: RenderStatus,
        values: Dict[str, Any],
        metrics: Dict[str, Any],
    ) -> Render:
        """Compare-and-set the polled state against the status read earlier."""
        if target != current:
            values["status"] = target.value
            if target.is_terminal:
                completed_at = datetime.utcnow()
                values["completed_at"] = completed_at
                metrics["render_seconds"] = round(
                    (completed_at - render.created_at).total_seconds(), 3
                )
        if metrics:
            values["metrics"] = {**render.metrics, **metrics}

        result = await self.db.execute(
            update(Render)
            .where(Render.id == render.id, Render.status == current.value)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await self.db.refresh(render)

        if result.rowcount == 0:
            logger.info(
                f"Render {render.id} was moved to {render.status} by another poll; "
                f"discarding {target.value}"
            )
        elif target != current:
            logger.info(f"Render {render.id}: {current.value} -> {target.value}")
        return render

    async def list_renders(
        self,
        deliverable_id: Optional[str] = None,
        kind: Optional[str] = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> List[Render]:
        """Renders filtered by deliverable and/or kind, newest first."""
        query = select(Render)
        if deliverable_id:
            query = query.where(Render.deliverable_id == deliverable_id)
        if kind:
            query = query.where(Render.kind == kind)
        query = query.order_by(Render.created_at.desc()).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())
