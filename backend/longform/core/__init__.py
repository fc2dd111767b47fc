# Core modules for the longform editor backend
from .config import Settings, get_settings
from .database import Base, get_async_session, async_engine, AsyncSessionLocal, ping_database
from .errors import (
    PipelineError,
    InvalidInput,
    NotFound,
    TranscriptNotFound,
    RecipeNotFound,
    RenderNotFound,
    TranscriptionFailed,
    RenderSubmissionFailed,
    ExecutionError,
    RenderTimeout,
    RecipeVersionConflict,
)
from .redis import (
    get_redis_connection,
    check_redis_health,
    RedisHealthStatus,
)
from .queue import (
    enqueue_render,
    get_job_status,
    JOB_TIMEOUTS,
)
from .security import (
    CallerContext,
    create_access_token,
    decode_token,
    get_caller_context,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Database
    "Base",
    "get_async_session",
    "async_engine",
    "AsyncSessionLocal",
    "ping_database",
    # Errors
    "PipelineError",
    "InvalidInput",
    "NotFound",
    "TranscriptNotFound",
    "RecipeNotFound",
    "RenderNotFound",
    "TranscriptionFailed",
    "RenderSubmissionFailed",
    "ExecutionError",
    "RenderTimeout",
    "RecipeVersionConflict",
    # Redis
    "get_redis_connection",
    "check_redis_health",
    "RedisHealthStatus",
    # Queue
    "enqueue_render",
    "get_job_status",
    "JOB_TIMEOUTS",
    # Security
    "CallerContext",
    "create_access_token",
    "decode_token",
    "get_caller_context",
]
