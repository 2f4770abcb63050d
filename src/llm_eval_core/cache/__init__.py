"""
Cache sub-package

Provides the content-addressed completion cache and its backends.
"""

from llm_eval_core.cache.backends import CacheBackend, MemoryBackend, RedisBackend
from llm_eval_core.cache.keys import CacheKey, build_cache_key, hash_string, model_hash_of
from llm_eval_core.cache.store import CacheStore

__all__ = [
    # keys
    "CacheKey",
    "build_cache_key",
    "hash_string",
    "model_hash_of",
    # backends
    "CacheBackend",
    "MemoryBackend",
    "RedisBackend",
    # store
    "CacheStore",
]
