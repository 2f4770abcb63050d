"""
Cache key derivation

A cache key is built from three hash fragments: the model identifier, the
sample content and the grading configuration (strategy type, strategy
arguments and completion options). Changing any of them changes the key.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from enum import Enum

from llm_eval_core.domain.constants import CACHE_KEY_PREFIX
from llm_eval_core.domain.value_objects import EvalSample


@dataclass(frozen=True)
class CacheKey:
    """Cache key plus the fragments stored for bulk invalidation"""
    key: str
    model_hash: str
    sample_hash: str
    template_config_hash: str
    strategy_hash: str


def hash_string(value: str) -> str:
    """Truncated SHA-256 hex digest"""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:16]


def _json_default(obj):
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (set, frozenset)):
        return sorted(obj)
    if isinstance(obj, tuple):
        return list(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not serializable for a cache key")


def canonical_json(obj) -> str:
    """Deterministic JSON serialization (sorted keys, no whitespace)"""
    return json.dumps(obj, sort_keys=True, ensure_ascii=False, separators=(",", ":"), default=_json_default)


def strategy_type_of(grading_config: dict) -> str:
    """Extract the strategy type from a grading configuration"""
    strategy = grading_config.get("strategy") or {}
    strategy_type = strategy.get("type", "") if isinstance(strategy, dict) else ""
    return strategy_type.value if isinstance(strategy_type, Enum) else str(strategy_type)


def model_hash_of(model: str) -> str:
    """Hash fragment identifying a model"""
    return hash_string(canonical_json(model))


def build_cache_key(model: str, sample: EvalSample, grading_config: dict) -> CacheKey:
    """
    Build the cache key for (model, sample, grading configuration)

    Args:
        model: Model identifier
        sample: Evaluation sample
        grading_config: {"strategy": {"type": ..., "args": ...}, "options": {...}}

    Returns:
        CacheKey
    """
    model_hash = model_hash_of(model)
    sample_hash = hash_string(canonical_json(sample.to_dict()))
    template_config_hash = hash_string(canonical_json(grading_config))
    strategy_hash = hash_string(strategy_type_of(grading_config))
    return CacheKey(
        key=f"{CACHE_KEY_PREFIX}:{model_hash}:{sample_hash}:{template_config_hash}",
        model_hash=model_hash,
        sample_hash=sample_hash,
        template_config_hash=template_config_hash,
        strategy_hash=strategy_hash,
    )
