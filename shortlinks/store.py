"""Key-value namespaces over Redis.

The core only needs single-key ``get`` / ``put`` / ``delete``. Each logical
namespace is a key prefix on one Redis database, so the three namespaces
share a connection pool but never collide.

``scan_keys`` exists for the offline reconciliation command and is never
used on the request path.
"""

from collections.abc import AsyncIterator

import redis.asyncio as redis

from shortlinks.config import get_settings
from shortlinks.enums import Namespace

__all__ = ["KeyValueNamespace", "namespaces_for"]


class KeyValueNamespace:
    """One logical namespace (records, counters or indexes) of the store."""

    def __init__(self, cache: redis.Redis, namespace: Namespace, key_prefix: str):
        self._cache = cache
        self.namespace = namespace
        self._prefix = f"{key_prefix}:{namespace.value}:"

    def redis_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def get(self, key: str) -> str | None:
        return await self._cache.get(self.redis_key(key))

    async def put(self, key: str, value: str) -> None:
        await self._cache.set(self.redis_key(key), value)

    async def delete(self, key: str) -> None:
        await self._cache.delete(self.redis_key(key))

    async def scan_keys(self, count: int = 500) -> AsyncIterator[str]:
        """Yield every key in this namespace, without the prefix."""
        async for raw_key in self._cache.scan_iter(match=f"{self._prefix}*", count=count):
            yield raw_key[len(self._prefix):]


def namespaces_for(cache: redis.Redis) -> dict[Namespace, KeyValueNamespace]:
    key_prefix = get_settings().KEY_PREFIX
    return {namespace: KeyValueNamespace(cache, namespace, key_prefix) for namespace in Namespace}
