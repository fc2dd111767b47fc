"""
Voice Command Bridge.

Turns a single spoken or typed command into a recipe compiled against an
existing transcript, and optionally starts a render of it.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from longform.core.errors import InvalidInput, PipelineError
from longform.models.recipe import EditRecipe
from longform.models.render import Render
from longform.providers import RenderProvider

from .recipe_compiler import RecipeCompiler
from .render_orchestrator import RenderOrchestrator
from .transcript_store import TranscriptStore

logger = logging.getLogger(__name__)


@dataclass
class VoiceCommandResult:
    recipe: EditRecipe
    render: Optional[Render] = None
    render_error: Optional[Dict[str, Any]] = None

    @property
    def message(self) -> str:
        if self.render is not None:
            return f"Recipe v{self.recipe.version} compiled and render started"
        if self.render_error is not None:
            return f"Recipe v{self.recipe.version} compiled; render could not be started"
        return f"Recipe v{self.recipe.version} compiled"


class VoiceCommandBridge:
    """Compiles a voice command and, when asked, renders the result."""

    def __init__(self, db: AsyncSession, render_provider: Optional[RenderProvider] = None):
        self.db = db
        self.render_provider = render_provider

    async def process_command(
        self,
        command: Optional[str],
        transcript_id: Optional[str],
        deliverable_id: Optional[str] = None,
        auto_render: bool = False,
        task_id: Optional[str] = None,
        quality: str = "final",
    ) -> VoiceCommandResult:
        """
        Compile a command against a transcript's text.

        A render is started only when auto_render is set and a task_id is
        given. The recipe is kept even if the render cannot be started; the
        failure is reported in render_error instead.

        Args:
            command: The edit command
            transcript_id: Transcript the command refers to
            deliverable_id: Owning deliverable (defaults to the transcript's)
            auto_render: Start a render of the new recipe
            task_id: Caller task reference, required for rendering
            quality: preview or final

        Raises:
            InvalidInput: If command or transcript_id is blank
            TranscriptNotFound: If the transcript does not exist
        """
        if not command or not command.strip():
            raise InvalidInput("command is required")
        if not transcript_id:
            raise InvalidInput("transcript_id is required")

        transcript = await TranscriptStore(self.db).get(transcript_id)
        deliverable_id = deliverable_id or transcript.deliverable_id

        recipe = await RecipeCompiler(self.db).compile(
            command,
            transcript.full_text,
            deliverable_id=deliverable_id,
            transcript_id=transcript.id,
        )
        result = VoiceCommandResult(recipe=recipe)

        if not (auto_render and task_id):
            return result

        if self.render_provider is None:
            result.render_error = {"error": "render_unavailable", "message": "No render provider configured"}
            return result

        orchestrator = RenderOrchestrator(self.db, self.render_provider)
        try:
            result.render = await orchestrator.execute_and_render(
                recipe.id,
                transcript.id,
                task_id=task_id,
                quality=quality,
                deliverable_id=deliverable_id,
            )
        except PipelineError as e:
            logger.warning(f"Voice command render for recipe {recipe.id} failed: {e.code} {e.message}")
            result.render_error = e.to_dict()

        return result
