"""
Application Configuration

Settings class using pydantic-settings for environment variable loading.
Defines collaborator endpoints, timeouts and render policy.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    For example, RENDER_SUBMIT_ATTEMPTS can be set via RENDER_SUBMIT_ATTEMPTS env var.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="Longform Editor API", description="Application name")
    debug: bool = Field(default=False, description="Debug mode")
    version: str = Field(default="0.1.0", description="API version")

    # Security
    secret_key: str = Field(
        default="change-me-in-production-min-32-chars",
        description="Secret key for JWT verification (min 32 characters)",
    )

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./longform.db",
        description="Database connection URL",
    )
    sql_echo: bool = Field(default=False, description="Echo SQL statements")

    # Redis
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
    )

    # Transcription collaborator
    openai_api_key: Optional[str] = Field(
        default=None,
        description="API key for the hosted transcription model",
    )
    transcription_model: str = Field(
        default="whisper-1",
        description="Transcription model name",
    )
    transcription_timeout_seconds: float = Field(
        default=300.0,
        gt=0,
        description="Upper bound for a single transcription call",
    )
    max_asset_size: int = Field(
        default=25 * 1024 * 1024,  # 25MB, hosted transcription upload limit
        description="Maximum media size accepted for transcription in bytes",
    )

    # Render collaborator
    render_provider: Literal["video_api", "queue"] = Field(
        default="video_api",
        description="Render collaborator: hosted video API or render farm queue",
    )
    video_api_base_url: str = Field(
        default="https://api.kie.ai",
        description="Base URL of the video generation API",
    )
    video_api_key: Optional[str] = Field(
        default=None,
        description="API key for the video generation API",
    )
    render_queue_task: str = Field(
        default="render_farm.tasks.render_timeline",
        description="Dotted path of the render farm task consumed by queue workers",
    )

    # Render policy
    render_submit_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Upper bound for a single render submission attempt",
    )
    render_submit_attempts: int = Field(
        default=2,
        ge=1,
        le=5,
        description="Submission attempts before a timed-out render is marked failed",
    )
    render_poll_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        description="Upper bound for a single status poll",
    )
    render_max_wait_seconds: int = Field(
        default=3600,
        gt=0,
        description="Renders still unfinished after this many seconds are marked failed",
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins",
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string to list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings instance.

    Uses lru_cache to ensure settings are only loaded once per process.

    Returns:
        Settings: Application settings instance

    Example:
        >>> settings = get_settings()
        >>> print(settings.render_submit_attempts)
        2
    """
    return Settings()
