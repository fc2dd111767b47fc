"""
Shared test fixtures for Longform Editor tests.

Provides:
- Test database (SQLite in-memory)
- Test client (httpx AsyncClient over the ASGI app)
- Authentication headers (JWT carrying caller and organization)
- Fake transcription and render providers
- Transcript / recipe factories
"""

import asyncio
import os
import uuid
from typing import Any, AsyncGenerator, Dict, List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Set test environment variables before importing app modules
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-purposes-only-32chars"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["REDIS_URL"] = "redis://localhost:6379/0"
os.environ["RENDER_PROVIDER"] = "video_api"

from longform.core.database import Base
from longform.core.security import create_access_token
from longform.main import app
from longform.models.recipe import EditRecipe
from longform.models.transcript import Transcript
from longform.providers import (
    ProviderError,
    ProviderJobStatus,
    RenderJobRequest,
    TranscriptionResult,
)
from longform.rules import COMPILER_REVISION


# =============================================================================
# Test Database Configuration
# =============================================================================

# Create test engine with in-memory SQLite
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

test_engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
    echo=False,
)

TestAsyncSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def test_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Provide an async database session for testing.

    Creates all tables before the test and drops them after.
    Each test gets a fresh database.
    """
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestAsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
    """Override database dependency for testing."""
    async with TestAsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# =============================================================================
# Fake Providers
# =============================================================================


class FakeTranscriptionProvider:
    """Transcription provider returning canned words."""

    def __init__(
        self,
        words: Optional[List[Dict[str, Any]]] = None,
        full_text: str = "",
        duration_seconds: Optional[float] = None,
    ):
        self.words = words if words is not None else list(SAMPLE_WORDS)
        self.full_text = full_text
        self.duration_seconds = duration_seconds
        self.error: Optional[Exception] = None
        self.delay = 0.0
        self.calls: List[str] = []

    async def transcribe(self, asset_url: str) -> TranscriptionResult:
        self.calls.append(asset_url)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return TranscriptionResult(
            words=[dict(w) for w in self.words],
            full_text=self.full_text,
            duration_seconds=self.duration_seconds,
            meta={"provider": "fake"},
        )

    async def health_check(self) -> bool:
        return True


class FakeRenderProvider:
    """
    Render provider with scriptable behaviour.

    ``states`` is consumed one per poll; the last state repeats once the
    list is down to one entry.
    """

    name = "fake"

    def __init__(self):
        self.submitted: List[RenderJobRequest] = []
        self.submit_error: Optional[Exception] = None
        self.submit_delay = 0.0
        self.states: List[ProviderJobStatus] = []
        self.poll_error: Optional[Exception] = None
        self.poll_delay = 0.0
        self.poll_calls = 0
        self.healthy = True

    async def submit(self, request: RenderJobRequest) -> str:
        self.submitted.append(request)
        if self.submit_delay:
            await asyncio.sleep(self.submit_delay)
        if self.submit_error is not None:
            raise self.submit_error
        return f"job-{len(self.submitted)}"

    async def poll_status(self, provider_job_id: str) -> ProviderJobStatus:
        self.poll_calls += 1
        if self.poll_delay:
            await asyncio.sleep(self.poll_delay)
        if self.poll_error is not None:
            raise self.poll_error
        if not self.states:
            return ProviderJobStatus(state="queued")
        if len(self.states) > 1:
            return self.states.pop(0)
        return self.states[0]

    async def health_check(self) -> bool:
        return self.healthy


@pytest.fixture
def fake_transcriber() -> FakeTranscriptionProvider:
    return FakeTranscriptionProvider()


@pytest.fixture
def fake_renderer() -> FakeRenderProvider:
    return FakeRenderProvider()


@pytest.fixture
def provider_rejection() -> ProviderError:
    return ProviderError("quota exceeded", payload={"code": 429, "internal": "do-not-leak"})


# =============================================================================
# Test Client Fixtures
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def async_client(
    test_db: AsyncSession,
    fake_transcriber: FakeTranscriptionProvider,
    fake_renderer: FakeRenderProvider,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Provide an async HTTP client for testing the FastAPI application.

    Overrides the database and collaborator dependencies.
    """
    from longform.api.deps import get_db, get_renderer, get_transcriber
    from longform.core.database import get_async_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_async_session] = override_get_db
    app.dependency_overrides[get_transcriber] = lambda: fake_transcriber
    app.dependency_overrides[get_renderer] = lambda: fake_renderer

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict:
    """Provide authentication headers for a caller in a test organization."""
    token = create_access_token(
        user_id=f"user_{uuid.uuid4().hex[:8]}",
        organization_id=f"org_{uuid.uuid4().hex[:8]}",
    )
    return {"Authorization": f"Bearer {token}"}


# =============================================================================
# Sample Data
# =============================================================================

SAMPLE_WORDS = [
    {"text": "the", "start": 0.0, "end": 0.3},
    {"text": "cat", "start": 0.3, "end": 0.6},
    {"text": "sat", "start": 0.6, "end": 1.0},
]

# Two sentences with a filler and a long pause
TALK_WORDS = [
    {"text": "um", "start": 0.0, "end": 0.4},
    {"text": "welcome", "start": 0.5, "end": 1.0},
    {"text": "to", "start": 1.0, "end": 1.2},
    {"text": "the", "start": 1.2, "end": 1.4},
    {"text": "show", "start": 1.4, "end": 2.0},
    {"text": "today", "start": 4.0, "end": 4.5},
    {"text": "uh", "start": 4.5, "end": 4.8},
    {"text": "we", "start": 4.8, "end": 5.0},
    {"text": "talk", "start": 5.0, "end": 5.5},
    {"text": "editing", "start": 5.5, "end": 6.0},
]


# =============================================================================
# Helper Functions
# =============================================================================


async def create_transcript_directly(
    db: AsyncSession,
    words: Optional[List[Dict[str, Any]]] = None,
    deliverable_id: Optional[str] = None,
    duration_seconds: Optional[float] = None,
    asset_url: str = "https://cdn.example.com/source.mp4",
) -> Transcript:
    """Create a transcript directly in the database."""
    if words is None:
        words = SAMPLE_WORDS
    if duration_seconds is None:
        duration_seconds = words[-1]["end"] if words else 0.0

    transcript = Transcript(
        deliverable_id=deliverable_id,
        asset_url=asset_url,
        words=[dict(w) for w in words],
        full_text=" ".join(w["text"] for w in words),
        duration_seconds=duration_seconds,
        meta={},
    )
    db.add(transcript)
    await db.flush()
    await db.refresh(transcript)
    return transcript


async def create_recipe_directly(
    db: AsyncSession,
    operations: List[Dict[str, Any]],
    transcript: Optional[Transcript] = None,
    deliverable_id: Optional[str] = None,
    version: int = 1,
    instructions: str = "test recipe",
) -> EditRecipe:
    """Create a recipe directly in the database, bypassing the compiler."""
    recipe = EditRecipe(
        deliverable_id=deliverable_id,
        transcript_id=transcript.id if transcript else None,
        instructions=instructions,
        version=version,
        operations=operations,
        compiler_revision=COMPILER_REVISION,
        warnings=[],
    )
    db.add(recipe)
    await db.flush()
    await db.refresh(recipe)
    return recipe
