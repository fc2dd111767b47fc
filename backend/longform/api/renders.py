"""
Render API endpoints for the longform editor.

Provides endpoints for rendering scripts and executed recipes, polling
render status, and listing renders. Submissions return 202 with a render
to poll.
"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from longform.api.deps import CallerContext, get_caller_context, get_db, get_renderer
from longform.providers import RenderProvider
from longform.schemas.render import (
    ExecuteAndRenderRequest,
    RenderListResponse,
    RenderResponse,
    RenderScriptRequest,
)
from longform.services.render_orchestrator import DEFAULT_LIST_LIMIT, RenderOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter()


async def _render_script(
    quality: str,
    request: RenderScriptRequest,
    db: AsyncSession,
    provider: RenderProvider,
    caller: CallerContext,
) -> RenderResponse:
    logger.info(
        f"{quality.capitalize()} script render requested by {caller.user_id} "
        f"(task {request.task_id})"
    )
    render = await RenderOrchestrator(db, provider).render_script(
        request.script_text,
        quality=quality,
        recipe_id=request.recipe_id,
        deliverable_id=request.deliverable_id,
        task_id=request.task_id,
        aspect_ratio=request.aspect_ratio,
    )
    return RenderResponse.model_validate(render)


@router.post(
    "/preview",
    response_model=RenderResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Render preview",
    description="Start a proxy-quality render of a script. Poll GET /renders/{id} for progress.",
)
async def render_preview(
    request: RenderScriptRequest,
    db: AsyncSession = Depends(get_db),
    provider: RenderProvider = Depends(get_renderer),
    caller: CallerContext = Depends(get_caller_context),
) -> RenderResponse:
    return await _render_script("preview", request, db, provider, caller)


@router.post(
    "/render",
    response_model=RenderResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Render final",
    description="Start a full-quality render of a script. Poll GET /renders/{id} for progress.",
)
async def render_final(
    request: RenderScriptRequest,
    db: AsyncSession = Depends(get_db),
    provider: RenderProvider = Depends(get_renderer),
    caller: CallerContext = Depends(get_caller_context),
) -> RenderResponse:
    return await _render_script("final", request, db, provider, caller)


@router.post(
    "/render-timeline",
    response_model=RenderResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Execute and render",
    description="Execute a recipe against its transcript and render the resulting timeline.",
)
async def execute_and_render(
    request: ExecuteAndRenderRequest,
    db: AsyncSession = Depends(get_db),
    provider: RenderProvider = Depends(get_renderer),
    caller: CallerContext = Depends(get_caller_context),
) -> RenderResponse:
    render = await RenderOrchestrator(db, provider).execute_and_render(
        request.recipe_id,
        request.transcript_id,
        task_id=request.task_id,
        quality=request.quality,
        deliverable_id=request.deliverable_id,
        aspect_ratio=request.aspect_ratio,
    )
    return RenderResponse.model_validate(render)


@router.get(
    "/renders",
    response_model=RenderListResponse,
    summary="List renders",
    description="List renders by deliverable and/or kind, newest first.",
)
async def list_renders(
    deliverable_id: Optional[str] = Query(None, max_length=36),
    kind: Optional[Literal["preview", "final"]] = Query(None),
    db: AsyncSession = Depends(get_db),
    provider: RenderProvider = Depends(get_renderer),
    caller: CallerContext = Depends(get_caller_context),
) -> RenderListResponse:
    renders = await RenderOrchestrator(db, provider).list_renders(
        deliverable_id=deliverable_id, kind=kind, limit=DEFAULT_LIST_LIMIT
    )
    return RenderListResponse(renders=[RenderResponse.model_validate(r) for r in renders])


@router.get(
    "/renders/{render_id}",
    response_model=RenderResponse,
    summary="Get render status",
    description=(
        "Get the current state of a render. In-flight renders are refreshed from "
        "the render provider; finished ones are returned as stored."
    ),
)
async def get_render(
    render_id: str,
    db: AsyncSession = Depends(get_db),
    provider: RenderProvider = Depends(get_renderer),
    caller: CallerContext = Depends(get_caller_context),
) -> RenderResponse:
    render = await RenderOrchestrator(db, provider).get_status(render_id)
    return RenderResponse.model_validate(render)
