"""
Longform editor API routes package.

Contains all API endpoint routers for the application.
"""

from fastapi import APIRouter

from .health import router as health_router
from .recipes import router as recipes_router
from .renders import router as renders_router
from .transcripts import router as transcripts_router
from .voice import router as voice_router

# Main API router that includes all sub-routers
api_router = APIRouter()

# Include transcript routes
api_router.include_router(transcripts_router, prefix="/longform", tags=["transcripts"])

# Include recipe and execution routes
api_router.include_router(recipes_router, prefix="/longform", tags=["recipes"])

# Include render routes
api_router.include_router(renders_router, prefix="/longform", tags=["renders"])

# Include voice command routes
api_router.include_router(voice_router, prefix="/longform", tags=["voice"])

# Include pipeline health
api_router.include_router(health_router, prefix="/longform", tags=["health"])

__all__ = [
    "api_router",
    "health_router",
    "recipes_router",
    "renders_router",
    "transcripts_router",
    "voice_router",
]
