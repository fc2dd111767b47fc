"""
Recipe API endpoints for the longform editor.

Provides endpoints for compiling instructions into versioned recipes,
reading them, and executing a recipe into a timeline.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from longform.api.deps import CallerContext, get_caller_context, get_db
from longform.core.errors import InvalidInput
from longform.schemas.recipe import (
    RecipeCompileRequest,
    RecipeListResponse,
    RecipeResponse,
    RecipeSummary,
)
from longform.schemas.timeline import EditTimeline, ExecuteRecipeRequest
from longform.services.recipe_compiler import RecipeCompiler
from longform.services.recipe_executor import RecipeExecutor

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/recipes",
    response_model=RecipeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Compile recipe",
    description=(
        "Compile natural-language instructions into the next recipe version of a "
        "deliverable. Fragments that cannot be applied are listed in warnings."
    ),
)
async def compile_recipe(
    request: RecipeCompileRequest,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context),
) -> RecipeResponse:
    compiler = RecipeCompiler(db)
    recipe = await compiler.compile(
        request.instructions,
        request.transcript_text,
        deliverable_id=request.deliverable_id,
        transcript_id=request.transcript_id,
    )
    return RecipeResponse.model_validate(recipe)


@router.get(
    "/recipes",
    response_model=RecipeListResponse,
    summary="List recipes",
    description="List a deliverable's recipes, newest version first.",
)
async def list_recipes(
    deliverable_id: Optional[str] = Query(None, max_length=36),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context),
) -> RecipeListResponse:
    if not deliverable_id:
        raise InvalidInput("deliverable_id is required")
    recipes = await RecipeCompiler(db).list_for_deliverable(deliverable_id)
    return RecipeListResponse(recipes=[RecipeSummary.model_validate(r) for r in recipes])


@router.get(
    "/recipes/{recipe_id}",
    response_model=RecipeResponse,
    summary="Get recipe",
)
async def get_recipe(
    recipe_id: str,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context),
) -> RecipeResponse:
    recipe = await RecipeCompiler(db).get(recipe_id)
    return RecipeResponse.model_validate(recipe)


@router.post(
    "/execute-recipe",
    response_model=EditTimeline,
    summary="Execute recipe",
    description=(
        "Apply a recipe to a transcript and return the resulting timeline. "
        "transcript_id defaults to the transcript the recipe was compiled against."
    ),
)
async def execute_recipe(
    request: ExecuteRecipeRequest,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context),
) -> EditTimeline:
    return await RecipeExecutor(db).execute(request.recipe_id, request.transcript_id)
