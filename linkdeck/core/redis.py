"""Redis client for the stats cache and session revocation."""

import json
from typing import Any

import redis.asyncio as redis
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from linkdeck.core.config import get_settings
from linkdeck.core.errors import Unavailable

settings = get_settings()
logger = structlog.get_logger()

# Global Redis client instance
_redis_client: redis.Redis | None = None

# Cache key prefixes
STATS_CACHE_PREFIX = "stats:"
STATS_GENERATION_KEY = "stats:generation"
REVOKED_SESSION_PREFIX = "session:revoked:"

# Session.info key marking uncommitted writes that affect stats
STATS_DIRTY_FLAG = "stats_dirty"


async def get_redis() -> redis.Redis:
    """Get the Redis client instance, creating it if necessary."""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=settings.redis_socket_timeout,
            socket_connect_timeout=settings.redis_socket_timeout,
        )
        logger.info("Redis client initialized", url=settings.redis_url)
    return _redis_client


async def close_redis() -> None:
    """Close the Redis connection."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
        logger.info("Redis connection closed")


def _stats_cache_key(generation: str, scope: str) -> str:
    return f"{STATS_CACHE_PREFIX}{generation}:{scope}"


async def get_stats_generation() -> str | None:
    """Read the current stats cache generation.

    Callers read it before computing a snapshot and store under it, so a
    write that lands mid-computation leaves the result unreachable.
    Bumping the generation orphans every cached entry at once, and the
    orphans age out through their TTL.

    Returns None when Redis is unreachable.
    """
    try:
        client = await get_redis()
        return await client.get(STATS_GENERATION_KEY) or "0"
    except redis.RedisError as e:
        logger.warning("Redis generation read error", error=str(e))
        return None


async def get_cached_stats(generation: str, scope: str) -> dict[str, Any] | None:
    """Get a stats snapshot from cache.

    Returns None on a miss or when Redis is unreachable.
    """
    try:
        client = await get_redis()
        data = await client.get(_stats_cache_key(generation, scope))
        if data:
            logger.debug("Stats cache hit", scope=scope)
            return json.loads(data)
        logger.debug("Stats cache miss", scope=scope)
        return None
    except redis.RedisError as e:
        logger.warning("Redis get error", scope=scope, error=str(e))
        return None


async def cache_stats(generation: str, scope: str, payload: dict[str, Any], ttl: int) -> None:
    """Cache a stats snapshot.

    Args:
        generation: Generation read before the snapshot was computed
        scope: Cache scope, e.g. "public:5" or "dashboard:5"
        payload: JSON-serializable snapshot
        ttl: Time to live in seconds
    """
    try:
        client = await get_redis()
        await client.setex(
            _stats_cache_key(generation, scope),
            ttl,
            json.dumps(payload, default=str),
        )
        logger.debug("Stats cached", scope=scope, ttl=ttl)
    except redis.RedisError as e:
        logger.warning("Redis set error", scope=scope, error=str(e))


async def invalidate_stats_cache(session: AsyncSession | None = None) -> None:
    """Invalidate every cached stats snapshot.

    Pass the session when the write is not committed yet. The request
    session dependency bumps the generation again after its commit, so a
    snapshot computed from pre-commit data in between is never read.
    """
    if session is not None:
        session.info[STATS_DIRTY_FLAG] = True
    try:
        client = await get_redis()
        await client.incr(STATS_GENERATION_KEY)
        logger.debug("Stats cache invalidated")
    except redis.RedisError as e:
        logger.warning("Redis invalidate error", error=str(e))


async def revoke_session(jti: str, ttl: int) -> None:
    """Add a session id to the denylist until it would have expired anyway.

    Raises Unavailable when the denylist cannot be written, so callers know
    the credential is still live.
    """
    try:
        client = await get_redis()
        await client.setex(f"{REVOKED_SESSION_PREFIX}{jti}", max(ttl, 1), "1")
    except redis.RedisError as e:
        logger.error("Session revocation failed", jti=jti, error=str(e))
        raise Unavailable("Logout could not be completed, try again") from e


async def is_session_revoked(jti: str) -> bool:
    """Check the denylist; an unreachable Redis counts as not revoked."""
    try:
        client = await get_redis()
        return bool(await client.exists(f"{REVOKED_SESSION_PREFIX}{jti}"))
    except redis.RedisError as e:
        logger.warning("Revocation check failed", jti=jti, error=str(e))
        return False
