"""
Common dependencies for longform editor API endpoints.

Provides reusable FastAPI dependencies for database sessions, caller
context and the external collaborators.
"""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from longform.core.database import get_async_session
from longform.core.security import CallerContext, get_caller_context
from longform.providers import (
    RenderProvider,
    TranscriptionProvider,
    get_render_provider,
    get_transcription_provider,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Database session dependency.

    Provides an async database session for route handlers.
    The session is automatically committed on success or
    rolled back on exception.

    Usage:
        @router.get("/items")
        async def get_items(db: AsyncSession = Depends(get_db)):
            ...
    """
    async for session in get_async_session():
        yield session


def get_transcriber() -> TranscriptionProvider:
    """Transcription collaborator dependency (overridden in tests)."""
    return get_transcription_provider()


def get_renderer() -> RenderProvider:
    """Render collaborator dependency (overridden in tests)."""
    return get_render_provider()


__all__ = [
    "CallerContext",
    "get_caller_context",
    "get_db",
    "get_renderer",
    "get_transcriber",
]
