"""Redis-backed cache of registry lookups, keyed by (state, upc12).

Each value is one JSON document written with a single SETEX, so readers see
either a whole record or nothing. Negative results ("not on the list") are
cached too. Expiry is purely by TTL. Redis failures are treated as misses.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import redis.asyncio as aioredis
from pydantic import BaseModel, ValidationError
from redis.exceptions import RedisError

from wic_eligibility.schemas.apl import ApprovedProductEntry

logger = logging.getLogger(__name__)

DEFAULT_TTL = 300
DEFAULT_PREFIX = "apl:"


class CachedLookup(BaseModel):
    """Cached registry answer. ``entry=None`` is a cached "not found"."""

    entry: ApprovedProductEntry | None = None


class EntryCache:
    """Lookup cache over an async Redis client."""

    def __init__(self, redis: aioredis.Redis, ttl: int = DEFAULT_TTL, prefix: str = DEFAULT_PREFIX) -> None:
        self._redis = redis
        self._ttl = ttl
        self._prefix = prefix

    @property
    def ttl(self) -> int:
        return self._ttl

    def key(self, state: str, upc12: str) -> str:
        return f"{self._prefix}{state.strip().upper()}:{upc12}"

    @staticmethod
    def _decode(key: str, raw: str | bytes | None) -> CachedLookup | None:
        if not raw:
            return None
        try:
            return CachedLookup.model_validate_json(raw)
        except ValidationError:
            logger.warning("Failed to deserialize cached lookup %s, re-fetching", key)
            return None

    async def get(self, state: str, upc12: str) -> CachedLookup | None:
        """Cached answer, or None on miss (or when Redis is unreachable)."""
        key = self.key(state, upc12)
        try:
            raw = await self._redis.get(key)
        except (RedisError, OSError):
            logger.warning("Cache read failed for %s, treating as miss", key)
            return None
        return self._decode(key, raw)

    async def get_many(self, state: str, upc12s: Sequence[str]) -> dict[str, CachedLookup]:
        """Cached answers for the codes that hit; misses are absent from the result."""
        if not upc12s:
            return {}
        keys = [self.key(state, code) for code in upc12s]
        try:
            raws = await self._redis.mget(keys)
        except (RedisError, OSError):
            logger.warning("Cache batch read failed for %d keys, treating as misses", len(keys))
            return {}

        hits: dict[str, CachedLookup] = {}
        for code, key, raw in zip(upc12s, keys, raws, strict=True):
            cached = self._decode(key, raw)
            if cached is not None:
                hits[code] = cached
        return hits

    async def set(self, state: str, upc12: str, entry: ApprovedProductEntry | None) -> None:
        """Store an answer (atomic insert-or-replace with TTL)."""
        key = self.key(state, upc12)
        try:
            await self._redis.setex(key, self._ttl, CachedLookup(entry=entry).model_dump_json())
        except (RedisError, OSError):
            logger.warning("Failed to cache lookup %s", key)

    async def clear(self) -> int:
        """Drop every cached lookup under this cache's prefix. Returns keys removed."""
        removed = 0
        try:
            async for key in self._redis.scan_iter(match=f"{self._prefix}*"):
                removed += await self._redis.delete(key)
        except (RedisError, OSError):
            logger.warning("Cache clear interrupted after %d keys", removed)
        logger.info("Cleared %d cached lookups", removed)
        return removed
