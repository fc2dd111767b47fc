"""
Transcript API endpoints for the longform editor.

Provides endpoints for transcribing media and reading transcripts.
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from longform.api.deps import CallerContext, get_caller_context, get_db, get_transcriber
from longform.providers import TranscriptionProvider
from longform.schemas.transcript import TranscribeRequest, TranscriptResponse
from longform.services.transcript_store import TranscriptStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/transcribe",
    response_model=TranscriptResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Transcribe media",
    description="Transcribe audio/video from a URL and persist it with word-level timestamps.",
)
async def transcribe(
    request: TranscribeRequest,
    db: AsyncSession = Depends(get_db),
    provider: TranscriptionProvider = Depends(get_transcriber),
    caller: CallerContext = Depends(get_caller_context),
) -> TranscriptResponse:
    """
    Transcribe media and store the transcript.

    Every call creates a new transcript, even for a URL transcribed before.
    """
    logger.info(f"Transcription requested by {caller.user_id} (org {caller.organization_id})")
    store = TranscriptStore(db, provider)
    transcript = await store.transcribe(request.asset_url, request.deliverable_id)
    return TranscriptResponse.model_validate(transcript)


@router.get(
    "/transcripts/{transcript_id}",
    response_model=TranscriptResponse,
    summary="Get transcript",
)
async def get_transcript(
    transcript_id: str,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller_context),
) -> TranscriptResponse:
    transcript = await TranscriptStore(db).get(transcript_id)
    return TranscriptResponse.model_validate(transcript)
