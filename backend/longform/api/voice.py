"""
Voice command API endpoint for the longform editor.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from longform.api.deps import CallerContext, get_caller_context, get_db, get_renderer
from longform.providers import RenderProvider
from longform.schemas.recipe import RecipeResponse
from longform.schemas.render import RenderResponse
from longform.schemas.voice import VoiceCommandRequest, VoiceCommandResponse
from longform.services.voice_bridge import VoiceCommandBridge

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/voice-command",
    response_model=VoiceCommandResponse,
    summary="Process voice command",
    description=(
        "Compile a spoken or typed command against a transcript. With auto_render "
        "and a task_id, also start a render; a render failure is reported in "
        "render_error while the recipe is still returned."
    ),
)
async def voice_command(
    request: VoiceCommandRequest,
    db: AsyncSession = Depends(get_db),
    provider: RenderProvider = Depends(get_renderer),
    caller: CallerContext = Depends(get_caller_context),
) -> VoiceCommandResponse:
    bridge = VoiceCommandBridge(db, provider)
    result = await bridge.process_command(
        request.command,
        request.transcript_id,
        deliverable_id=request.deliverable_id,
        auto_render=request.auto_render,
        task_id=request.task_id,
        quality=request.quality,
    )
    return VoiceCommandResponse(
        recipe=RecipeResponse.model_validate(result.recipe),
        render=RenderResponse.model_validate(result.render) if result.render else None,
        render_error=result.render_error,
        message=result.message,
    )
