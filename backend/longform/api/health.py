"""
Pipeline health endpoint for the longform editor.
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from longform.api.deps import CallerContext, get_caller_context, get_db, get_renderer
from longform.core.database import ping_database
from longform.providers import RenderProvider

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/health",
    summary="Pipeline health",
    description="Report editor (database) and generator (render provider) health. Never fails.",
)
async def pipeline_health(
    db: AsyncSession = Depends(get_db),
    provider: RenderProvider = Depends(get_renderer),
    caller: CallerContext = Depends(get_caller_context),
) -> dict:
    """
    Check the editor and generator.

    Returns:
        {"editor_healthy": bool, "generator_healthy": bool,
         "checks": {...}, "timestamp": str}
    """
    checks = {}

    try:
        await ping_database(db)
        editor_healthy = True
        checks["database"] = {"status": "healthy"}
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        editor_healthy = False
        checks["database"] = {"status": "unhealthy"}

    try:
        generator_healthy = bool(await provider.health_check())
        checks["render_provider"] = {
            "status": "healthy" if generator_healthy else "unhealthy",
            "provider": provider.name,
        }
    except Exception as e:
        logger.error(f"Render provider health check failed: {e}")
        generator_healthy = False
        checks["render_provider"] = {"status": "unhealthy", "provider": provider.name}

    return {
        "editor_healthy": editor_healthy,
        "generator_healthy": generator_healthy,
        "checks": checks,
        "timestamp": datetime.utcnow().isoformat() + "Z",
    }
