"""
Completion cache

Content-addressed cache of model completions. Entries expire lazily: a stale
entry is deleted when it is read. No operation raises to the caller; backend
failures turn reads into misses and writes into no-ops, and are recorded in
the cache statistics.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from llm_eval_core.cache.backends import CacheBackend, MemoryBackend, RedisBackend
from llm_eval_core.cache.keys import build_cache_key, hash_string, model_hash_of
from llm_eval_core.domain.errors import ConfigurationError
from llm_eval_core.domain.entities import CacheEntry, CacheStats
from llm_eval_core.domain.value_objects import CacheProvider, CompletionResult, EvalSample
from llm_eval_core.harness_config import CacheConfig

logger = logging.getLogger(__name__)


class CacheStore:
    """
    Completion cache keyed by (model, sample, grading configuration)

    Usage:
        cache = CacheStore(CacheConfig(provider="redis"))
        hit = await cache.get(model, sample, grading_config)
        if hit is None:
            ...
            await cache.set(model, sample, grading_config, completion)
    """

    def __init__(
        self,
        config: CacheConfig | None = None,
        *,
        backend: CacheBackend | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            config: Cache configuration (defaults to an in-memory cache)
            backend: Backend to use instead of the one selected from config
            clock: Returns the current time in seconds

        Raises:
            ConfigurationError: When an enabled cache has max_memory_items below 1
        """
        self.config = config or CacheConfig()
        if backend is None and self.config.enabled and self.config.max_memory_items < 1:
            raise ConfigurationError(f"max_memory_items must be at least 1, got {self.config.max_memory_items}")
        self._clock = clock
        self._backend = backend
        self._total_requests = 0
        self._hits = 0
        self._misses = 0
        self._backend_errors = 0
        self._last_error: str | None = None
        self._fell_back = False

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    @property
    def backend_kind(self) -> str:
        if self._backend is not None:
            return self._backend.kind
        return self.config.provider

    async def connect(self) -> None:
        """
        Select the backend

        Redis is used when configured and reachable; otherwise the cache
        falls back to memory with a warning.
        """
        if self._backend is not None:
            return
        if self.config.provider == CacheProvider.REDIS.value:
            redis_backend = None
            try:
                redis_backend = RedisBackend(self.config.redis_url)
                await redis_backend.ping()
                self._backend = redis_backend
                logger.info("Cache connected to Redis at %s", self.config.redis_url)
                return
            except Exception as e:
                self._record_error(e)
                self._fell_back = True
                logger.warning("Redis unavailable (%s), falling back to memory cache", e)
                if redis_backend is not None:
                    await redis_backend.close()
        self._backend = MemoryBackend(self.config.max_memory_items)

    def _record_error(self, error: Exception) -> None:
        self._backend_errors += 1
        self._last_error = str(error)

    async def get(self, model: str, sample: EvalSample, grading_config: dict) -> CompletionResult | None:
        """
        Look up a cached completion

        Returns:
            The cached completion, or None on a miss (including expired
            entries and backend failures)
        """
        if not self.enabled:
            return None
        await self.connect()
        self._total_requests += 1

        try:
            cache_key = build_cache_key(model, sample, grading_config)
        except (TypeError, ValueError) as e:
            self._record_error(e)
            self._misses += 1
            logger.warning("Cannot derive cache key for model %s: %s", model, e)
            return None

        try:
            entry = await self._backend.get(cache_key.key)
        except Exception as e:
            self._record_error(e)
            logger.warning("Cache get failed for %s: %s", cache_key.key, e)
            self._misses += 1
            return None

        if entry is None:
            self._misses += 1
            logger.debug("Cache MISS: %s", cache_key.key)
            return None

        if not entry.is_valid(self._clock(), self.config.ttl_seconds):
            self._misses += 1
            logger.debug("Cache EXPIRED: %s", cache_key.key)
            try:
                await self._backend.delete(cache_key.key)
            except Exception as e:
                self._record_error(e)
                logger.warning("Cache delete failed for %s: %s", cache_key.key, e)
            return None

        try:
            completion = CompletionResult.from_dict(entry.result)
        except (KeyError, TypeError, ValueError) as e:
            self._record_error(e)
            self._misses += 1
            logger.warning("Discarding unreadable cache entry %s: %s", cache_key.key, e)
            return None

        self._hits += 1
        logger.debug("Cache HIT: %s", cache_key.key)
        return completion

    async def set(self, model: str, sample: EvalSample, grading_config: dict, result: CompletionResult) -> None:
        """Store a completion (best effort)"""
        if not self.enabled:
            return
        await self.connect()
        try:
            cache_key = build_cache_key(model, sample, grading_config)
        except (TypeError, ValueError) as e:
            self._record_error(e)
            logger.warning("Cannot derive cache key for model %s: %s", model, e)
            return
        entry = CacheEntry(
            result=result.to_dict(),
            timestamp=self._clock(),
            model_hash=cache_key.model_hash,
            sample_hash=cache_key.sample_hash,
            template_config_hash=cache_key.template_config_hash,
            strategy_hash=cache_key.strategy_hash,
        )
        try:
            await self._backend.set(cache_key.key, entry, self.config.ttl_seconds)
            logger.debug("Cache SET: %s", cache_key.key)
        except Exception as e:
            self._record_error(e)
            logger.warning("Cache set failed for %s: %s", cache_key.key, e)

    async def invalidate_by_model(self, model: str) -> int:
        """Remove every entry for a model, returning the number removed"""
        if not self.enabled:
            return 0
        await self.connect()
        try:
            removed = await self._backend.delete_by_model_hash(model_hash_of(model))
        except Exception as e:
            self._record_error(e)
            logger.warning("Cache invalidation by model failed: %s", e)
            return 0
        logger.info("Invalidated %d cache entries for model %s", removed, model)
        return removed

    async def invalidate_by_strategy_type(self, strategy_type: str) -> int:
        """Remove every entry produced under a grading strategy type"""
        if not self.enabled:
            return 0
        await self.connect()
        value = getattr(strategy_type, "value", strategy_type)
        try:
            removed = await self._backend.delete_by_strategy_hash(hash_string(str(value)))
        except Exception as e:
            self._record_error(e)
            logger.warning("Cache invalidation by strategy type failed: %s", e)
            return 0
        logger.info("Invalidated %d cache entries for strategy type %s", removed, value)
        return removed

    async def clear(self) -> None:
        """Remove every entry"""
        if not self.enabled:
            return
        await self.connect()
        try:
            await self._backend.clear()
        except Exception as e:
            self._record_error(e)
            logger.warning("Cache clear failed: %s", e)

    async def stats(self) -> CacheStats:
        """Counters plus backend information"""
        entries = None
        memory_usage = None
        if self.enabled and self._backend is not None:
            try:
                entries = await self._backend.size()
                memory_usage = await self._backend.memory_usage()
            except Exception as e:
                self._record_error(e)
                logger.warning("Cache stats unavailable: %s", e)

        hit_rate = self._hits / self._total_requests if self._total_requests else 0.0
        return CacheStats(
            total_requests=self._total_requests,
            cache_hits=self._hits,
            cache_misses=self._misses,
            hit_rate=hit_rate,
            backend_kind=self.backend_kind,
            backend_errors=self._backend_errors,
            degraded=self._fell_back or self._backend_errors > 0,
            last_error=self._last_error,
            entries=entries,
            memory_usage=memory_usage,
            redis_connected=self._backend is not None and self._backend.kind == CacheProvider.REDIS.value,
        )

    async def health_check(self) -> dict:
        """
        Check that the backend responds

        Returns:
            {"healthy": bool, "backend": str, "error": str | None}
        """
        if not self.enabled:
            return {"healthy": True, "backend": "disabled", "error": None}
        await self.connect()
        try:
            await self._backend.ping()
        except Exception as e:
            self._record_error(e)
            return {"healthy": False, "backend": self._backend.kind, "error": str(e)}
        return {"healthy": True, "backend": self._backend.kind, "error": None}

    async def close(self) -> None:
        """Release backend connections"""
        if self._backend is None:
            return
        try:
            await self._backend.close()
        except Exception as e:
            logger.warning("Error closing cache backend: %s", e)
