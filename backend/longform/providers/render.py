"""
Render providers.

A render provider accepts a render job and reports its progress. Two
implementations are available:
- VideoGenerationRenderProvider: a hosted script-to-video generation API
- QueueRenderProvider: the render farm, reached through Redis Queue
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol

import httpx

from longform.core.queue import enqueue_render, get_job_status
from longform.core.redis import check_redis_health

from .errors import ProviderError

logger = logging.getLogger(__name__)


@dataclass
class RenderJobRequest:
    """Everything a provider needs to start one render."""

    render_id: str
    quality: str
    aspect_ratio: str = "16:9"
    script_text: str = ""
    timeline: Optional[Dict[str, Any]] = None
    source_url: Optional[str] = None
    task_id: Optional[str] = None


@dataclass
class ProviderJobStatus:
    """
    Provider-reported state of a job.

    ``state`` uses the render lifecycle vocabulary:
    queued, rendering, completed or failed.
    """

    state: str
    asset_ref: Optional[str] = None
    error: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)


class RenderProvider(Protocol):
    name: str

    async def submit(self, request: RenderJobRequest) -> str:
        """Start a render and return the provider's job id."""

    async def poll_status(self, provider_job_id: str) -> ProviderJobStatus:
        """Return the current state of a previously submitted job."""

    async def health_check(self) -> bool:
        """Return True when the provider is reachable and configured."""


# =============================================================================
# Hosted video generation API
# =============================================================================

# Quality tier -> generation model
GENERATION_MODELS: Dict[str, str] = {
    "preview": "veo3_fast",
    "final": "veo3",
}

# successFlag values reported by record-info
_GENERATION_STATES: Dict[int, str] = {
    0: "rendering",
    1: "completed",
    2: "failed",
    3: "failed",
}


class VideoGenerationRenderProvider:
    """
    Script-to-video generation over HTTP.

    Jobs are started with ``POST /api/v1/veo/generate`` and polled with
    ``GET /api/v1/veo/record-info?taskId=...``. Timelines are rendered from
    their retained script text.
    """

    name = "video_api"

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str],
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
            headers={"Authorization": f"Bearer {self.api_key}"},
        )

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        if not self.api_key:
            raise ProviderError("VIDEO_API_KEY is not configured")
        try:
            async with self._client() as client:
                response = await client.request(method, path, **kwargs)
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPStatusError as e:
            raise ProviderError(
                f"Video API responded with status {e.response.status_code}",
                payload={"status_code": e.response.status_code, "body": e.response.text[:2000]},
            ) from e
        except httpx.TimeoutException as e:
            # Surfaces as a timeout so callers apply their retry policy
            raise asyncio.TimeoutError(str(e)) from e
        except (httpx.HTTPError, ValueError) as e:
            raise ProviderError(f"Video API request failed: {e}") from e

        if not isinstance(body, dict) or body.get("code") != 200:
            raise ProviderError(
                f"Video API rejected the request: {body.get('msg') if isinstance(body, dict) else body}",
                payload={"body": body},
            )
        return body.get("data") or {}

    async def submit(self, request: RenderJobRequest) -> str:
        prompt = request.script_text.strip()
        if not prompt:
            raise ProviderError("Nothing to render: script text is empty")

        payload = {
            "prompt": prompt,
            "model": GENERATION_MODELS.get(request.quality, GENERATION_MODELS["final"]),
            "aspectRatio": request.aspect_ratio,
        }
        data = await self._request("POST", "/api/v1/veo/generate", json=payload)
        task_id = data.get("taskId")
        if not task_id:
            raise ProviderError("Video API returned no taskId", payload={"data": data})

        logger.debug(f"Video API accepted render {request.render_id} as task {task_id}")
        return str(task_id)

    async def poll_status(self, provider_job_id: str) -> ProviderJobStatus:
        data = await self._request(
            "GET", "/api/v1/veo/record-info", params={"taskId": provider_job_id}
        )
        flag = data.get("successFlag")
        state = _GENERATION_STATES.get(flag, "queued") if flag is not None else "queued"

        asset_ref = None
        urls = (data.get("response") or {}).get("resultUrls") or []
        if state == "completed":
            if urls:
                asset_ref = urls[0]
            else:
                state = "failed"

        error = data.get("errorMessage") if state == "failed" else None
        if state == "failed" and not error:
            error = "Video generation failed"
        return ProviderJobStatus(state=state, asset_ref=asset_ref, error=error, raw=data)

    async def health_check(self) -> bool:
        if not self.api_key:
            return False
        try:
            async with self._client() as client:
                response = await client.get("/")
            return response.status_code < 500
        except httpx.HTTPError as e:
            logger.warning(f"Video API health check failed: {e}")
            return False


# =============================================================================
# Render farm via Redis Queue
# =============================================================================

# RQ job status -> render lifecycle state
_RQ_STATES: Dict[str, str] = {
    "queued": "queued",
    "deferred": "queued",
    "scheduled": "queued",
    "started": "rendering",
    "finished": "completed",
    "failed": "failed",
    "stopped": "failed",
    "canceled": "failed",
}


class QueueRenderProvider:
    """
    Hands timelines to the render farm through RQ.

    The farm's task receives the job payload as ``payload=`` and returns a
    dict with an ``asset_id`` (or ``output_url``) when it finishes.
    """

    name = "queue"

    def __init__(self, task_path: str):
        self.task_path = task_path

    async def submit(self, request: RenderJobRequest) -> str:
        if request.timeline is None and not request.script_text.strip():
            raise ProviderError("Nothing to render: no timeline or script text")

        payload = {
            "render_id": request.render_id,
            "quality": request.quality,
            "aspect_ratio": request.aspect_ratio,
            "source_url": request.source_url,
            "timeline": request.timeline,
            "script_text": request.script_text,
            "task_id": request.task_id,
        }
        try:
            job = await asyncio.to_thread(
                enqueue_render,
                request.quality,
                self.task_path,
                payload,
                f"render_{request.render_id}",
            )
        except Exception as e:
            # Redis unreachable or the queue refused the job
            raise ProviderError(f"Failed to enqueue render job: {e}") from e
        return job.id

    async def poll_status(self, provider_job_id: str) -> ProviderJobStatus:
        try:
            status = await asyncio.to_thread(get_job_status, provider_job_id)
        except Exception as e:
            raise ProviderError(f"Failed to read render job state: {e}") from e

        if status is None:
            return ProviderJobStatus(state="failed", error="Render job no longer exists")

        state = _RQ_STATES.get(status["status"] or "", "queued")
        asset_ref = None
        result = status.get("result")
        if state == "completed":
            if isinstance(result, dict):
                asset_ref = result.get("asset_id") or result.get("output_url")
            elif isinstance(result, str):
                asset_ref = result
            if not asset_ref:
                return ProviderJobStatus(
                    state="failed", error="Render finished without an asset", raw=status
                )

        error = None
        if state == "failed":
            error = status.get("error") or "Render job failed"
        return ProviderJobStatus(state=state, asset_ref=asset_ref, error=error, raw=status)

    async def health_check(self) -> bool:
        health = await asyncio.to_thread(check_redis_health)
        return health.healthy
