"""
Longform Editor API

FastAPI entry point: the pipeline routes under /api/longform plus
unauthenticated liveness endpoints for the container orchestrator.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from longform.api import api_router
from longform.core.config import get_settings
from longform.core.database import AsyncSessionLocal, ping_database
from longform.core.errors import PipelineError, pipeline_error_handler
from longform.core.redis import check_redis_health

settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    description="Transcript-driven long-form video editing pipeline",
    version=settings.version,
)

app.add_exception_handler(PipelineError, pipeline_error_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api")


@app.get("/")
async def root():
    """Service name and version."""
    return {
        "name": settings.app_name,
        "version": settings.version,
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """
    Liveness for Docker/orchestration.

    The database must answer. Redis counts only when renders go through
    the render farm queue; otherwise it is reported but not required.
    """
    checks = {}
    required = {"database": True, "redis": settings.render_provider == "queue"}

    try:
        async with AsyncSessionLocal() as session:
            await ping_database(session)
        checks["database"] = {"status": "healthy"}
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        checks["database"] = {"status": "unhealthy"}

    redis_status = check_redis_health(timeout=2.0)
    if redis_status.healthy:
        checks["redis"] = {"status": "healthy", "latency_ms": redis_status.latency_ms}
    else:
        logger.warning(f"Redis health check failed: {redis_status.error}")
        checks["redis"] = {"status": "unhealthy"}

    healthy = all(
        checks[name]["status"] == "healthy" for name, needed in required.items() if needed
    )
    return {
        "status": "healthy" if healthy else "unhealthy",
        "checks": checks,
        "version": settings.version,
    }
