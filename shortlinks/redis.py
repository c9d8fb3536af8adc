"""Redis client management for the redirect service.

Redis is the key-value store behind all three namespaces (records, counters,
indexes). This module owns the process-wide clients.

Flow Diagram: Redis Operations
=============================
::
    ┌─────────────┐
    │  Application│
    │  Request    │
    └──────┬──────┘
           ▼
    ┌──────────────┐
    │ get_redis()  │
    │ dependency   │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ Check global │
    │ client var   │
    └──────┬───────┘
   EXISTS? │
     ┌─────┴──────┐
     │ NO         │ YES
     ▼            ▼
┌─────────┐  ┌──────────┐
│ Create  │  │ Return   │
│ Redis   │  │ existing │
│ client  │  │ client   │
└─────────┘  └──────────┘

How to Use
===========
**Step 1: Use in FastAPI endpoints**::
    @router.get("/things")
    async def get_things(cache: redis.Redis = Depends(get_redis)):
        return await cache.get("some_key")

**Step 2: Cleanup on shutdown**::
    await close_redis()

Key Behaviours
===============
- Redis clients are created lazily on first access.
- Global clients are reused across all requests.
- UTF-8 encoding with decode_responses for string operations.
- The read client targets REDIS_REPLICA_URL when configured, else the primary.

Functions:
    get_redis():  FastAPI dependency for the primary (read/write) client.
    get_redis_read():  FastAPI dependency for the redirect hot-path reader.
    close_redis():  Cleanup function for shutdown.
"""

import redis.asyncio as redis

from shortlinks.config import get_settings

__all__ = ["close_redis", "get_redis", "get_redis_read"]

settings = get_settings()

# Write client: always points to the Redis primary.
# Used for: every admin mutation and every click counter write.
redis_client: redis.Redis | None = None

# Read-only client: used only by the public redirect lookup.
redis_read_client: redis.Redis | None = None


async def get_redis() -> redis.Redis:
    global redis_client
    if redis_client is None:
        redis_client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
        )
    return redis_client


async def get_redis_read() -> redis.Redis:
    """Return the client used for redirect lookups.

    Admin reads always go through the primary.
    """
    global redis_read_client
    if redis_read_client is None:
        replica_url = settings.REDIS_REPLICA_URL or settings.REDIS_URL
        redis_read_client = redis.from_url(
            replica_url,
            encoding="utf-8",
            decode_responses=True,
        )
    return redis_read_client


async def close_redis() -> None:
    global redis_client, redis_read_client
    if redis_client is not None:
        await redis_client.aclose()
        redis_client = None
    if redis_read_client is not None:
        await redis_read_client.aclose()
        redis_read_client = None
