"""
External collaborators: transcription and rendering.

Example usage:
    from longform.providers import get_render_provider

    provider = get_render_provider()
    job_id = await provider.submit(request)
"""

from typing import Optional

from longform.core.config import Settings, get_settings

from .errors import ProviderError
from .render import (
    ProviderJobStatus,
    QueueRenderProvider,
    RenderJobRequest,
    RenderProvider,
    VideoGenerationRenderProvider,
)
from .transcription import (
    TranscriptionProvider,
    TranscriptionResult,
    WhisperTranscriptionProvider,
)


def get_transcription_provider(settings: Optional[Settings] = None) -> TranscriptionProvider:
    """Build the transcription provider from settings."""
    settings = settings or get_settings()
    return WhisperTranscriptionProvider(
        api_key=settings.openai_api_key or "",
        model=settings.transcription_model,
        max_asset_size=settings.max_asset_size,
    )


def get_render_provider(settings: Optional[Settings] = None) -> RenderProvider:
    """Build the render provider selected by RENDER_PROVIDER."""
    settings = settings or get_settings()
    if settings.render_provider == "queue":
        return QueueRenderProvider(task_path=settings.render_queue_task)
    return VideoGenerationRenderProvider(
        base_url=settings.video_api_base_url,
        api_key=settings.video_api_key,
        timeout=settings.render_submit_timeout_seconds,
    )


__all__ = [
    "ProviderError",
    "ProviderJobStatus",
    "QueueRenderProvider",
    "RenderJobRequest",
    "RenderProvider",
    "TranscriptionProvider",
    "TranscriptionResult",
    "VideoGenerationRenderProvider",
    "WhisperTranscriptionProvider",
    "get_render_provider",
    "get_transcription_provider",
]
