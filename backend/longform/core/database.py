"""
Database setup for the longform editor.

Transcripts, recipes and renders live in one relational database:
SQLite (aiosqlite) in development and tests, PostgreSQL (asyncpg) in
production. The schema itself is owned by the Alembic migrations.
"""

from typing import Any, AsyncGenerator, Dict

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from .config import get_settings

settings = get_settings()


def _engine_options(database_url: str) -> Dict[str, Any]:
    options: Dict[str, Any] = {"echo": settings.sql_echo, "future": True}
    if not database_url.startswith("sqlite"):
        # Pooled server connections can go stale between requests
        options["pool_pre_ping"] = True
    return options


async_engine = create_async_engine(settings.database_url, **_engine_options(settings.database_url))

AsyncSessionLocal = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    """Declarative base for transcripts, edit recipes and renders."""
    pass


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Yield a session for one request.

    Committed when the request succeeds, rolled back when it raises.
    Services that must persist a row before raising (a failed render
    submission) commit it themselves.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def ping_database(session: AsyncSession) -> None:
    """Run a trivial query; raises if the database is unreachable."""
    await session.execute(text("SELECT 1"))
