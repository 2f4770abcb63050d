"""Tests for CacheStore and its backends"""

import fnmatch
import json
from datetime import date
from unittest.mock import AsyncMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from llm_eval_core.cache.backends import MemoryBackend, RedisBackend
from llm_eval_core.cache.keys import build_cache_key
from llm_eval_core.cache.store import CacheStore
from llm_eval_core.domain.entities import CacheEntry
from llm_eval_core.domain.errors import ConfigurationError, InfrastructureError
from llm_eval_core.harness_config import CacheConfig

EXACT = {"strategy": {"type": "exact_match", "args": {}}, "options": {"temperature": 0.0}}
GRADED = {"strategy": {"type": "model_graded", "args": {}}, "options": {"temperature": 0.0}}


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class FakeRedis:
    """Minimal async Redis client holding values in a dict"""

    def __init__(self):
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.closed = False

    async def ping(self):
        return True

    async def get(self, key):
        return self.data.get(key)

    async def setex(self, key, ttl, value):
        self.data[key] = value
        self.ttls[key] = ttl

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
        return removed

    async def scan_iter(self, match="*"):
        for key in list(self.data):
            if fnmatch.fnmatchcase(key, match):
                yield key

    async def info(self, section):
        return {"used_memory": 2048}

    async def aclose(self):
        self.closed = True


class BrokenBackend(MemoryBackend):
    """Backend whose every operation fails"""

    async def get(self, key):
        raise InfrastructureError("down")

    async def set(self, key, entry, ttl_seconds):
        raise InfrastructureError("down")

    async def delete_by_model_hash(self, model_hash):
        raise InfrastructureError("down")


class TestMemoryBackend:
    def test_invalid_max_items(self):
        with pytest.raises(ValueError):
            MemoryBackend(0)

    @pytest.mark.asyncio
    async def test_fifo_eviction(self):
        backend = MemoryBackend(max_items=2)
        entry = CacheEntry(result={}, timestamp=0.0, model_hash="m", sample_hash="s", template_config_hash="t")
        await backend.set("a", entry, 60)
        await backend.set("b", entry, 60)
        # Reading does not refresh position
        await backend.get("a")
        await backend.set("c", entry, 60)
        assert backend.keys() == ["b", "c"]
        assert await backend.size() == 2
        assert await backend.memory_usage() == 2048


class TestCacheStore:
    @pytest.mark.asyncio
    async def test_miss_then_hit(self, make_sample, completion):
        cache = CacheStore(CacheConfig())
        sample = make_sample()

        assert await cache.get("m", sample, EXACT) is None
        await cache.set("m", sample, EXACT, completion())
        hit = await cache.get("m", sample, EXACT)

        assert hit.content == "4"
        assert hit.usage.total_tokens == 15
        stats = await cache.stats()
        assert stats.total_requests == 2
        assert stats.cache_hits == 1
        assert stats.cache_misses == 1
        assert stats.hit_rate == 0.5
        assert stats.entries == 1
        assert stats.degraded is False
        assert stats.redis_connected is False

    @pytest.mark.asyncio
    async def test_different_grading_config_misses(self, make_sample, completion):
        cache = CacheStore()
        await cache.set("m", make_sample(), EXACT, completion())
        assert await cache.get("m", make_sample(), GRADED) is None

    @pytest.mark.asyncio
    async def test_expired_entry_is_removed(self, make_sample, completion):
        clock = FakeClock()
        cache = CacheStore(CacheConfig(ttl_seconds=60), clock=clock)
        await cache.set("m", make_sample(), EXACT, completion())

        clock.now += 59
        assert await cache.get("m", make_sample(), EXACT) is not None
        clock.now += 1
        assert await cache.get("m", make_sample(), EXACT) is None
        assert (await cache.stats()).entries == 0

    @pytest.mark.asyncio
    async def test_memory_bound(self, make_sample, completion):
        cache = CacheStore(CacheConfig(max_memory_items=2))
        for question in ("q1", "q2", "q3"):
            await cache.set("m", make_sample(question=question), EXACT, completion())

        assert (await cache.stats()).entries == 2
        assert await cache.get("m", make_sample(question="q1"), EXACT) is None
        assert await cache.get("m", make_sample(question="q3"), EXACT) is not None

    @pytest.mark.asyncio
    async def test_invalidate_by_model(self, make_sample, completion):
        cache = CacheStore()
        await cache.set("a", make_sample(question="q1"), EXACT, completion())
        await cache.set("a", make_sample(question="q2"), EXACT, completion())
        await cache.set("b", make_sample(question="q1"), EXACT, completion())

        assert await cache.invalidate_by_model("a") == 2
        assert await cache.get("a", make_sample(question="q1"), EXACT) is None
        assert await cache.get("b", make_sample(question="q1"), EXACT) is not None

    @pytest.mark.asyncio
    async def test_invalidate_by_strategy_type(self, make_sample, completion):
        cache = CacheStore()
        await cache.set("m", make_sample(), EXACT, completion())
        await cache.set("m", make_sample(), GRADED, completion())

        assert await cache.invalidate_by_strategy_type("model_graded") == 1
        assert await cache.get("m", make_sample(), GRADED) is None
        assert await cache.get("m", make_sample(), EXACT) is not None

    @pytest.mark.asyncio
    async def test_clear(self, make_sample, completion):
        cache = CacheStore()
        await cache.set("m", make_sample(), EXACT, completion())
        await cache.clear()
        assert (await cache.stats()).entries == 0

    @pytest.mark.asyncio
    async def test_backend_failure_is_a_miss(self, make_sample, completion):
        cache = CacheStore(backend=BrokenBackend())

        await cache.set("m", make_sample(), EXACT, completion())
        assert await cache.get("m", make_sample(), EXACT) is None
        assert await cache.invalidate_by_model("m") == 0

        stats = await cache.stats()
        assert stats.degraded is True
        assert stats.backend_errors == 3
        assert stats.last_error == "down"
        assert stats.cache_misses == 1

    @pytest.mark.asyncio
    async def test_unreadable_entry_is_a_miss(self, make_sample):
        backend = MemoryBackend()
        cache = CacheStore(backend=backend)
        key = build_cache_key("m", make_sample(), EXACT)
        entry = CacheEntry(
            result={"usage": {"bogus": 1}}, timestamp=cache._clock(),
            model_hash=key.model_hash, sample_hash=key.sample_hash, template_config_hash=key.template_config_hash,
        )
        await backend.set(key.key, entry, 60)

        assert await cache.get("m", make_sample(), EXACT) is None
        assert (await cache.stats()).degraded is True

    @pytest.mark.asyncio
    async def test_unserializable_sample_is_a_miss(self, make_sample, completion):
        cache = CacheStore(CacheConfig())
        sample = make_sample(metadata={"collected": date(2024, 1, 1)})

        await cache.set("m", sample, EXACT, completion())
        assert await cache.get("m", sample, EXACT) is None

        stats = await cache.stats()
        assert stats.entries == 0
        assert stats.cache_misses == 1
        assert stats.backend_errors == 2
        assert stats.degraded is True
        assert "date" in stats.last_error

    def test_invalid_memory_bound_rejected(self):
        with pytest.raises(ConfigurationError, match="max_memory_items"):
            CacheStore(CacheConfig(max_memory_items=0))

    def test_memory_bound_ignored_when_disabled(self):
        assert CacheStore(CacheConfig(enabled=False, max_memory_items=0)).enabled is False

    @pytest.mark.asyncio
    async def test_disabled_cache(self, make_sample, completion):
        cache = CacheStore(CacheConfig(enabled=False))
        await cache.set("m", make_sample(), EXACT, completion())

        assert await cache.get("m", make_sample(), EXACT) is None
        assert await cache.invalidate_by_model("m") == 0
        assert (await cache.stats()).total_requests == 0
        assert await cache.health_check() == {"healthy": True, "backend": "disabled", "error": None}

    @pytest.mark.asyncio
    async def test_redis_unavailable_falls_back_to_memory(self, make_sample, completion):
        cache = CacheStore(CacheConfig(provider="redis", redis_url="redis://unreachable:6379/0"))
        with patch.object(RedisBackend, "ping", AsyncMock(side_effect=InfrastructureError("refused"))), \
                patch.object(RedisBackend, "close", AsyncMock()):
            await cache.set("m", make_sample(), EXACT, completion())

        assert cache.backend_kind == "memory"
        assert await cache.get("m", make_sample(), EXACT) is not None
        stats = await cache.stats()
        assert stats.degraded is True
        assert stats.redis_connected is False
        assert "refused" in stats.last_error

    @pytest.mark.asyncio
    async def test_health_check(self):
        cache = CacheStore()
        assert await cache.health_check() == {"healthy": True, "backend": "memory", "error": None}


class TestRedisBackend:
    def _entry(self, model_hash="mh", strategy_hash="sh"):
        return CacheEntry(
            result={"content": "4"}, timestamp=1.0, model_hash=model_hash,
            sample_hash="s", template_config_hash="t", strategy_hash=strategy_hash,
        )

    @pytest.mark.asyncio
    async def test_set_and_get(self):
        client = FakeRedis()
        backend = RedisBackend(client=client)

        await backend.set("eval:mh:s:t", self._entry(), 0)

        assert client.ttls["eval:mh:s:t"] == 1
        assert json.loads(client.data["eval:mh:s:t"])["strategy_hash"] == "sh"
        assert await backend.get("eval:mh:s:t") == self._entry()
        assert await backend.get("eval:missing") is None

    @pytest.mark.asyncio
    async def test_bulk_deletes(self):
        client = FakeRedis()
        backend = RedisBackend(client=client)
        await backend.set("eval:m1:s1:t", self._entry("m1", "exact"), 60)
        await backend.set("eval:m1:s2:t", self._entry("m1", "graded"), 60)
        await backend.set("eval:m2:s1:t", self._entry("m2", "graded"), 60)

        assert await backend.delete_by_model_hash("m1") == 2
        assert await backend.delete_by_strategy_hash("graded") == 1
        assert await backend.size() == 0

    @pytest.mark.asyncio
    async def test_memory_usage_and_close(self):
        client = FakeRedis()
        backend = RedisBackend(client=client)
        assert await backend.memory_usage() == 2048
        await backend.close()
        assert client.closed is True

    @pytest.mark.asyncio
    async def test_connection_error_wrapped(self):
        client = FakeRedis()
        client.get = AsyncMock(side_effect=RedisConnectionError("refused"))
        backend = RedisBackend(client=client)
        with pytest.raises(InfrastructureError, match="Redis get failed"):
            await backend.get("eval:x")

    @pytest.mark.asyncio
    async def test_store_reports_redis_connected(self, make_sample, completion):
        cache = CacheStore(CacheConfig(provider="redis"), backend=RedisBackend(client=FakeRedis()))
        await cache.set("m", make_sample(), EXACT, completion())
        assert await cache.get("m", make_sample(), EXACT) is not None
        stats = await cache.stats()
        assert stats.redis_connected is True
        assert stats.memory_usage == 2048
