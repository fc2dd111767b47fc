"""
Recipe Compiler.

Compiles natural-language edit instructions into a versioned Edit Recipe.
Parsing is rule-based (see longform.rules); this module owns validation,
version assignment and persistence.

Usage:
    compiler = RecipeCompiler(db)
    recipe = await compiler.compile(
        "remove filler words, then cut 1:30 to 1:45",
        transcript.full_text,
        deliverable_id=deliverable_id,
        transcript_id=transcript.id,
    )
"""

import logging
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from longform.core.errors import (
    InvalidInput,
    RecipeNotFound,
    RecipeVersionConflict,
    TranscriptNotFound,
)
from longform.models.recipe import EditRecipe
from longform.models.transcript import Transcript
from longform.rules import COMPILER_REVISION, parse_instructions
from longform.schemas.recipe import dump_operations

logger = logging.getLogger(__name__)

# Attempts at inserting the next version before giving up
MAX_VERSION_ATTEMPTS = 5


class RecipeCompiler:
    """
    Compiles and reads Edit Recipes.

    Versions per deliverable start at 1 and increase by one per compile.
    The next version is inserted inside a SAVEPOINT; when a concurrent
    compile wins the same number, the unique constraint rejects the insert
    and the compiler retries with a freshly read maximum.
    """

    def __init__(self, db: AsyncSession, max_attempts: int = MAX_VERSION_ATTEMPTS):
        """
        Initialize the compiler.

        Args:
            db: AsyncSession for database access
            max_attempts: Version insert attempts before RecipeVersionConflict
        """
        self.db = db
        self.max_attempts = max_attempts

    async def compile(
        self,
        instructions: Optional[str],
        transcript_text: Optional[str],
        deliverable_id: Optional[str] = None,
        transcript_id: Optional[str] = None,
    ) -> EditRecipe:
        """
        Compile instructions into a new recipe version.

        Fragments that cannot be resolved against the transcript are left
        out of the operations and listed in the recipe's warnings; the
        compile itself still succeeds.

        Args:
            instructions: Natural-language edit instructions
            transcript_text: Text the instructions refer to; quoted phrases are
                located in it only when no transcript_id is given
            deliverable_id: Owning deliverable; versions are counted per deliverable
            transcript_id: Transcript the recipe targets; its duration bounds time ranges

        Returns:
            The persisted EditRecipe

        Raises:
            InvalidInput: If instructions or transcript_text is blank
            TranscriptNotFound: If transcript_id is given but unknown
            RecipeVersionConflict: If every version insert attempt collided
        """
        if not instructions or not instructions.strip():
            raise InvalidInput("instructions is required")
        if not transcript_text or not transcript_text.strip():
            raise InvalidInput("transcript_text is required")

        duration = None
        stored_words = None
        if transcript_id:
            transcript = await self.db.get(Transcript, transcript_id)
            if transcript is None:
                raise TranscriptNotFound(transcript_id)
            duration = transcript.duration_seconds
            # Word ranges index into the stored words, not the caller's text
            stored_words = [word["text"] for word in transcript.words or []]

        parsed = parse_instructions(
            instructions, transcript_text, duration, transcript_words=stored_words
        )
        for warning in parsed.warnings:
            logger.warning(f"Compile for deliverable {deliverable_id}: {warning}")

        recipe = await self._insert_next_version(
            deliverable_id=deliverable_id,
            transcript_id=transcript_id,
            instructions=instructions.strip(),
            operations=dump_operations(parsed.operations),
            warnings=parsed.warnings,
        )
        logger.info(
            f"Compiled recipe {recipe.id} v{recipe.version} for deliverable "
            f"{deliverable_id} ({len(recipe.operations)} operations, "
            f"{len(recipe.warnings)} warnings)"
        )
        return recipe

    async def _next_version(self, deliverable_id: Optional[str]) -> int:
        # Recipes without a deliverable are standalone
        if deliverable_id is None:
            return 1
        result = await self.db.execute(
            select(func.max(EditRecipe.version)).where(
                EditRecipe.deliverable_id == deliverable_id
            )
        )
        current = result.scalar_one_or_none()
        return (current or 0) + 1

    async def _insert_next_version(
        self,
        deliverable_id: Optional[str],
        transcript_id: Optional[str],
        instructions: str,
        operations: list,
        warnings: List[str],
    ) -> EditRecipe:
        for attempt in range(1, self.max_attempts + 1):
            version = await self._next_version(deliverable_id)
            recipe = EditRecipe(
                deliverable_id=deliverable_id,
                transcript_id=transcript_id,
                instructions=instructions,
                version=version,
                operations=operations,
                compiler_revision=COMPILER_REVISION,
                warnings=list(warnings),
            )
            try:
                async with self.db.begin_nested():
                    self.db.add(recipe)
                    await self.db.flush()
            except IntegrityError:
                logger.warning(
                    f"Version {version} for deliverable {deliverable_id} was taken "
                    f"(attempt {attempt}/{self.max_attempts}), retrying"
                )
                continue

            await self.db.refresh(recipe)
            return recipe

        raise RecipeVersionConflict(
            "Could not assign a recipe version; too many concurrent compiles",
            details={"deliverable_id": deliverable_id, "attempts": self.max_attempts},
        )

    async def get(self, recipe_id: str) -> EditRecipe:
        """
        Fetch a recipe by id.

        Raises:
            RecipeNotFound: If no recipe has this id
        """
        recipe = await self.db.get(EditRecipe, recipe_id)
        if recipe is None:
            raise RecipeNotFound(recipe_id)
        return recipe

    async def list_for_deliverable(self, deliverable_id: str) -> List[EditRecipe]:
        """All recipes of a deliverable, newest version first."""
        result = await self.db.execute(
            select(EditRecipe)
            .where(EditRecipe.deliverable_id == deliverable_id)
            .order_by(EditRecipe.version.desc())
        )
        return list(result.scalars().all())

    async def latest(self, deliverable_id: str) -> Optional[EditRecipe]:
        """The highest version of a deliverable's recipes, or None."""
        result = await self.db.execute(
            select(EditRecipe)
            .where(EditRecipe.deliverable_id == deliverable_id)
            .order_by(EditRecipe.version.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()
