"""
Transcription providers.

A transcription provider turns a media URL into word-level timings. The
Whisper provider downloads the media with httpx and submits it to the
OpenAI transcription API with word timestamp granularity.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol
from urllib.parse import urlparse

import httpx
from openai import APITimeoutError, AsyncOpenAI

from .errors import ProviderError

logger = logging.getLogger(__name__)


@dataclass
class TranscriptionResult:
    """Raw provider output, before normalization by the transcript store."""

    words: List[Dict[str, Any]]
    full_text: str
    duration_seconds: Optional[float] = None
    meta: Dict[str, Any] = field(default_factory=dict)


class TranscriptionProvider(Protocol):
    async def transcribe(self, asset_url: str) -> TranscriptionResult:
        """Return words with start/end timings for the media at asset_url."""

    async def health_check(self) -> bool:
        """Return True when the provider is reachable and configured."""


def _maybe_float(value: Any) -> Optional[float]:
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _get(item: Any, key: str) -> Any:
    """Read a key from a dict or an attribute from an SDK model."""
    if isinstance(item, dict):
        return item.get(key)
    return getattr(item, key, None)


class WhisperTranscriptionProvider:
    """OpenAI Whisper transcription with word timestamps."""

    def __init__(
        self,
        api_key: str,
        model: str = "whisper-1",
        max_asset_size: int = 25 * 1024 * 1024,
        download_timeout: float = 120.0,
        client: Optional[Any] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.max_asset_size = max_asset_size
        self.download_timeout = download_timeout
        self._client = client
        self._transport = transport

    def _get_client(self):
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def _download(self, asset_url: str) -> bytes:
        try:
            async with httpx.AsyncClient(
                timeout=self.download_timeout,
                follow_redirects=True,
                transport=self._transport,
            ) as http:
                response = await http.get(asset_url)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ProviderError(
                f"Media download failed with status {e.response.status_code}",
                payload={"asset_url": asset_url, "status_code": e.response.status_code},
            ) from e
        except httpx.TimeoutException as e:
            # Surfaces as a timeout so the store reports it as one
            raise asyncio.TimeoutError(f"Media download timed out: {e}") from e
        except httpx.HTTPError as e:
            raise ProviderError(
                f"Media download failed: {e}", payload={"asset_url": asset_url}
            ) from e

        content = response.content
        if len(content) > self.max_asset_size:
            raise ProviderError(
                f"Media is {len(content)} bytes, over the {self.max_asset_size} byte limit",
                payload={"asset_url": asset_url, "size": len(content)},
            )
        return content

    async def transcribe(self, asset_url: str) -> TranscriptionResult:
        if not self.api_key:
            raise ProviderError("OPENAI_API_KEY is not configured")

        content = await self._download(asset_url)
        filename = urlparse(asset_url).path.rsplit("/", 1)[-1] or "media.mp4"

        client = self._get_client()
        try:
            response = await client.audio.transcriptions.create(
                model=self.model,
                file=(filename, content),
                response_format="verbose_json",
                timestamp_granularities=["word"],
            )
        except APITimeoutError as e:
            raise asyncio.TimeoutError(f"Transcription API timed out: {e}") from e
        except Exception as e:
            # Any SDK failure (auth, rate limit, bad media) is a provider rejection
            raise ProviderError(f"Transcription API error: {e}") from e

        words = []
        for raw in _get(response, "words") or []:
            words.append(
                {
                    "text": _get(raw, "word") or _get(raw, "text") or "",
                    "start": _maybe_float(_get(raw, "start")) or 0.0,
                    "end": _maybe_float(_get(raw, "end")) or 0.0,
                }
            )

        logger.debug(f"Whisper returned {len(words)} words for {asset_url}")
        return TranscriptionResult(
            words=words,
            full_text=_get(response, "text") or "",
            duration_seconds=_maybe_float(_get(response, "duration")),
            meta={
                "provider": "whisper",
                "model": self.model,
                "language": _get(response, "language"),
            },
        )

    async def health_check(self) -> bool:
        return bool(self.api_key)
