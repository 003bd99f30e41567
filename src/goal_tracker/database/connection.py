"""Engine and session lifecycle for the user database.

One async engine per process, opened by `init_db` (app lifespan or a CLI
command) and disposed by `close_db`. Request handlers get a session through
the `get_db_session` dependency; scripts use `get_db` directly:

```python
await init_db()
async with get_db() as session:
    users = await UserRepository(session).list()
await close_db()
```

Production runs on PostgreSQL through asyncpg. Tests and the CLI tests use
SQLite through aiosqlite, which has no pool to size.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from goal_tracker.config import Settings, get_settings
from goal_tracker.database.models import Base

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def create_engine(database_url: str, echo: bool = False, **pool: Any) -> AsyncEngine:
    """Create an async engine; pool sizing is ignored for SQLite."""
    if database_url.startswith("sqlite"):
        return create_async_engine(database_url, echo=echo)
    return create_async_engine(database_url, echo=echo, pool_pre_ping=True, **pool)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Loaded users stay readable after commit and after the session closes
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


def _require_engine() -> AsyncEngine:
    if _engine is None:
        raise RuntimeError("Database is not open; call init_db() first")
    return _engine


async def init_db(settings: Settings | None = None) -> None:
    """Open the process-wide engine from settings (default: from environment)."""
    global _engine, _session_factory

    settings = settings or get_settings()
    _engine = create_engine(
        settings.database_url,
        echo=settings.database_echo,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    _session_factory = create_session_factory(_engine)
    logger.info(f"Database opened ({_engine.url.get_backend_name()})")


async def close_db() -> None:
    global _engine, _session_factory

    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _session_factory = None
    logger.info("Database closed")


async def create_tables() -> None:
    """Create missing tables. Existing tables are left as they are."""
    async with _require_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created")


@asynccontextmanager
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """A session that rolls back on error. Commits are explicit."""
    if _session_factory is None:
        raise RuntimeError("Database is not open; call init_db() first")

    async with _session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions."""
    async with get_db() as session:
        yield session
