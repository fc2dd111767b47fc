"""
Transcript Store.

Turns a media URL into a persisted, word-timed transcript. Every successful
call creates a new row; transcripts are immutable once written.

Usage:
    store = TranscriptStore(db, provider)
    transcript = await store.transcribe("https://cdn.example.com/talk.mp4")
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from longform.core.config import get_settings
from longform.core.errors import InvalidInput, TranscriptionFailed, TranscriptNotFound
from longform.models.transcript import Transcript
from longform.providers import ProviderError, TranscriptionProvider

logger = logging.getLogger(__name__)


def _to_float(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def normalize_words(raw_words: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Normalize provider word timings.

    - strips text and drops words that end up empty
    - coerces start/end to floats, dropping words with no usable start
    - sorts by start time (stable, so equal starts keep provider order)
    - clamps end so it never precedes start
    """
    words = []
    for raw in raw_words or []:
        text = str(raw.get("text") or raw.get("word") or "").strip()
        if not text:
            continue
        start = _to_float(raw.get("start"))
        if start is None:
            continue
        end = _to_float(raw.get("end"))
        if end is None or end < start:
            end = start
        word = {"text": text, "start": round(max(start, 0.0), 3), "end": round(max(end, 0.0), 3)}
        if raw.get("speaker"):
            word["speaker"] = str(raw["speaker"])
        words.append(word)

    words.sort(key=lambda w: w["start"])
    return words


class TranscriptStore:
    """
    Creates and reads transcripts.

    The provider call is bounded by ``timeout`` seconds; a provider error or
    timeout surfaces as TranscriptionFailed and nothing is persisted.
    """

    def __init__(
        self,
        db: AsyncSession,
        provider: Optional[TranscriptionProvider] = None,
        timeout: Optional[float] = None,
    ):
        """
        Initialize the store.

        Args:
            db: AsyncSession for database access
            provider: Transcription collaborator (required for transcribe)
            timeout: Upper bound for one provider call in seconds
        """
        self.db = db
        self.provider = provider
        self.timeout = timeout if timeout is not None else get_settings().transcription_timeout_seconds

    async def transcribe(
        self,
        asset_url: Optional[str],
        deliverable_id: Optional[str] = None,
    ) -> Transcript:
        """
        Transcribe media and persist the result.

        Args:
            asset_url: Location of the audio/video to transcribe
            deliverable_id: Optional owning deliverable

        Returns:
            The new Transcript

        Raises:
            InvalidInput: If asset_url is blank
            TranscriptionFailed: If the provider fails or times out
        """
        if not asset_url or not asset_url.strip():
            raise InvalidInput("asset_url is required")
        asset_url = asset_url.strip()
        if self.provider is None:
            raise TranscriptionFailed("No transcription provider configured")

        try:
            result = await asyncio.wait_for(
                self.provider.transcribe(asset_url), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            logger.error(f"Transcription of {asset_url} timed out (limit {self.timeout}s)")
            raise TranscriptionFailed(
                "Transcription timed out", details={"reason": "timeout"}
            )
        except ProviderError as e:
            logger.error(f"Transcription of {asset_url} failed: {e.message} {e.payload}")
            raise TranscriptionFailed("Transcription provider failed")

        words = normalize_words(result.words)
        full_text = " ".join(w["text"] for w in words) if words else (result.full_text or "").strip()

        duration = result.duration_seconds
        if duration is None or duration <= 0:
            duration = words[-1]["end"] if words else 0.0
        if words:
            duration = max(duration, max(w["end"] for w in words))

        transcript = Transcript(
            deliverable_id=deliverable_id,
            asset_url=asset_url,
            words=words,
            full_text=full_text,
            duration_seconds=round(duration, 3),
            meta=dict(result.meta or {}),
        )
        self.db.add(transcript)
        await self.db.flush()
        await self.db.refresh(transcript)

        logger.info(
            f"Created transcript {transcript.id} ({len(words)} words, "
            f"{transcript.duration_seconds}s) for deliverable {deliverable_id}"
        )
        return transcript

    async def get(self, transcript_id: str) -> Transcript:
        """
        Fetch a transcript by id.

        Raises:
            TranscriptNotFound: If no transcript has this id
        """
        transcript = await self.db.get(Transcript, transcript_id)
        if transcript is None:
            raise TranscriptNotFound(transcript_id)
        return transcript
