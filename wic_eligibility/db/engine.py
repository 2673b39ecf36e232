"""Shared clients: async engine over the APL registry and the Redis lookup cache.

Both are created at import time and are lazy: no connection is opened until
the first query. ``db_lifespan`` verifies connectivity on startup and disposes
pools on shutdown.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import AsyncGenerator

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from wic_eligibility.config import settings

logger = logging.getLogger(__name__)

# ── Registry (PostgreSQL) ────────────────────────────────────────────

engine: AsyncEngine = create_async_engine(
    settings.db.database_url,
    echo=settings.log_level == "DEBUG",
    pool_size=settings.db.pool_size,
    max_overflow=settings.db.max_overflow,
    pool_pre_ping=True,
    pool_recycle=settings.db.pool_recycle,
    # asyncpg statement timeout; expiry surfaces as RegistryUnavailableError
    connect_args={"command_timeout": settings.db.query_timeout},
)

# The registry opens one short-lived session per query.
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

# ── Lookup cache (Redis) ─────────────────────────────────────────────

redis_client: aioredis.Redis = aioredis.from_url(
    settings.db.redis_url,
    decode_responses=True,
)


# ── Lifecycle ────────────────────────────────────────────────────────


async def init_db() -> None:
    """Check that the registry answers; create tables outside production.

    Production schemas come from Alembic. An unreachable cache is only
    logged: lookups fall through to the registry.
    """
    from wic_eligibility.models import Base

    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))
        if not settings.is_production:
            await conn.run_sync(Base.metadata.create_all)
    logger.info("APL registry reachable")

    try:
        await redis_client.ping()
    except (RedisError, OSError) as exc:
        logger.warning("Lookup cache unreachable, continuing without it: %s", exc)


async def close_db() -> None:
    """Dispose the engine pool and the Redis connection pool."""
    await engine.dispose()
    await redis_client.aclose()
    logger.debug("Registry and cache connections closed")


@contextlib.asynccontextmanager
async def db_lifespan() -> AsyncGenerator[None, None]:
    """``async with db_lifespan():`` wraps the FastAPI app lifetime."""
    await init_db()
    try:
        yield
    finally:
        await close_db()
