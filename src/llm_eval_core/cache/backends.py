"""
Cache backends

MemoryBackend is a bounded, insertion-ordered map local to the process.
RedisBackend stores entries as JSON in a shared Redis instance. Backends
raise InfrastructureError on connectivity problems; CacheStore turns those
into misses and no-ops.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import asdict

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from llm_eval_core.domain.constants import CACHE_KEY_PREFIX, DEFAULT_MAX_MEMORY_ITEMS
from llm_eval_core.domain.entities import CacheEntry
from llm_eval_core.domain.errors import InfrastructureError

logger = logging.getLogger(__name__)


class CacheBackend(ABC):
    """Storage used by CacheStore"""

    kind: str = ""

    @abstractmethod
    async def get(self, key: str) -> CacheEntry | None:
        pass

    @abstractmethod
    async def set(self, key: str, entry: CacheEntry, ttl_seconds: int) -> None:
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        pass

    @abstractmethod
    async def delete_by_model_hash(self, model_hash: str) -> int:
        pass

    @abstractmethod
    async def delete_by_strategy_hash(self, strategy_hash: str) -> int:
        pass

    @abstractmethod
    async def clear(self) -> None:
        pass

    @abstractmethod
    async def size(self) -> int:
        pass

    async def memory_usage(self) -> int | None:
        return None

    async def ping(self) -> None:
        return None

    async def close(self) -> None:
        return None


class MemoryBackend(CacheBackend):
    """
    In-process bounded map

    When the bound is exceeded the oldest-inserted entry is evicted (FIFO).
    Reads do not change an entry's position.
    """

    kind = "memory"

    # Rough per-entry size used for memory usage reporting
    _ENTRY_SIZE_ESTIMATE = 1024

    def __init__(self, max_items: int = DEFAULT_MAX_MEMORY_ITEMS):
        if max_items < 1:
            raise ValueError("max_items must be at least 1.")
        self.max_items = max_items
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()

    async def get(self, key: str) -> CacheEntry | None:
        return self._entries.get(key)

    async def set(self, key: str, entry: CacheEntry, ttl_seconds: int) -> None:
        self._entries[key] = entry
        while len(self._entries) > self.max_items:
            oldest_key, _ = self._entries.popitem(last=False)
            logger.debug("Cache EVICT: %s", oldest_key)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def delete_by_model_hash(self, model_hash: str) -> int:
        return self._delete_where(lambda entry: entry.model_hash == model_hash)

    async def delete_by_strategy_hash(self, strategy_hash: str) -> int:
        return self._delete_where(lambda entry: entry.strategy_hash == strategy_hash)

    def _delete_where(self, predicate) -> int:
        doomed = [key for key, entry in self._entries.items() if predicate(entry)]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    async def clear(self) -> None:
        self._entries.clear()

    async def size(self) -> int:
        return len(self._entries)

    async def memory_usage(self) -> int | None:
        return len(self._entries) * self._ENTRY_SIZE_ESTIMATE

    def keys(self) -> list[str]:
        """Keys in insertion order"""
        return list(self._entries.keys())


class RedisBackend(CacheBackend):
    """Shared Redis store (entries serialized as JSON, expired by SETEX)"""

    kind = "redis"

    def __init__(self, redis_url: str = "redis://localhost:6379/0", client=None):
        self.redis_url = redis_url
        self._client = client or aioredis.Redis.from_url(redis_url, decode_responses=True)

    async def _scan(self, pattern: str) -> list[str]:
        return [key async for key in self._client.scan_iter(match=pattern)]

    async def ping(self) -> None:
        try:
            await self._client.ping()
        except (RedisError, OSError) as e:
            raise InfrastructureError(f"Redis ping failed: {e}") from e

    async def get(self, key: str) -> CacheEntry | None:
        try:
            raw = await self._client.get(key)
        except (RedisError, OSError) as e:
            raise InfrastructureError(f"Redis get failed: {e}") from e
        if not raw:
            return None
        try:
            return CacheEntry(**json.loads(raw))
        except (json.JSONDecodeError, TypeError) as e:
            raise InfrastructureError(f"Corrupt cache entry for {key}: {e}") from e

    async def set(self, key: str, entry: CacheEntry, ttl_seconds: int) -> None:
        try:
            await self._client.setex(key, max(1, int(ttl_seconds)), json.dumps(asdict(entry)))
        except (RedisError, OSError) as e:
            raise InfrastructureError(f"Redis set failed: {e}") from e

    async def delete(self, key: str) -> None:
        try:
            await self._client.delete(key)
        except (RedisError, OSError) as e:
            raise InfrastructureError(f"Redis delete failed: {e}") from e

    async def delete_by_model_hash(self, model_hash: str) -> int:
        try:
            keys = await self._scan(f"{CACHE_KEY_PREFIX}:{model_hash}:*")
            if not keys:
                return 0
            return int(await self._client.delete(*keys))
        except (RedisError, OSError) as e:
            raise InfrastructureError(f"Redis invalidation failed: {e}") from e

    async def delete_by_strategy_hash(self, strategy_hash: str) -> int:
        deleted = 0
        try:
            for key in await self._scan(f"{CACHE_KEY_PREFIX}:*"):
                raw = await self._client.get(key)
                if not raw:
                    continue
                if json.loads(raw).get("strategy_hash") == strategy_hash:
                    deleted += int(await self._client.delete(key))
        except (RedisError, OSError) as e:
            raise InfrastructureError(f"Redis invalidation failed: {e}") from e
        return deleted

    async def clear(self) -> None:
        try:
            keys = await self._scan(f"{CACHE_KEY_PREFIX}:*")
            if keys:
                await self._client.delete(*keys)
        except (RedisError, OSError) as e:
            raise InfrastructureError(f"Redis clear failed: {e}") from e

    async def size(self) -> int:
        try:
            return len(await self._scan(f"{CACHE_KEY_PREFIX}:*"))
        except (RedisError, OSError) as e:
            raise InfrastructureError(f"Redis scan failed: {e}") from e

    async def memory_usage(self) -> int | None:
        try:
            info = await self._client.info("memory")
        except (RedisError, OSError) as e:
            raise InfrastructureError(f"Redis info failed: {e}") from e
        used = info.get("used_memory")
        return int(used) if used is not None else None

    async def close(self) -> None:
        try:
            await self._client.aclose()
        except (RedisError, OSError) as e:
            logger.warning("Error closing Redis connection: %s", e)
