"""
Harness Configuration

Manages loading from environment variables (and an optional .env file) and
default values.
"""

import os
from dataclasses import dataclass, field, asdict

from dotenv import load_dotenv

from llm_eval_core.domain.constants import DEFAULT_CACHE_TTL_SECONDS, DEFAULT_MAX_MEMORY_ITEMS
from llm_eval_core.domain.value_objects import CompletionOptions


def _env_bool(key: str, default: bool) -> bool:
    """Read a boolean flag (true/1/yes) from the environment"""
    val = os.environ.get(key)
    if val is None:
        return default
    return val.strip().lower() in ("true", "1", "yes")


def _env_int(key: str, default: int | None) -> int | None:
    """Read an integer from the environment"""
    val = os.environ.get(key)
    if val is None or val == "":
        return default
    try:
        return int(val)
    except ValueError:
        raise ValueError(f"The value '{val}' of environment variable '{key}' is not a valid integer.")


def _env_float(key: str, default: float) -> float:
    """Read a float from the environment"""
    val = os.environ.get(key)
    if val is None:
        return default
    try:
        return float(val)
    except ValueError:
        raise ValueError(f"The value '{val}' of environment variable '{key}' is not a valid number.")


def _env_str(key: str, default: str | None) -> str | None:
    """Read a string from the environment"""
    return os.environ.get(key, default)


def _env_list(key: str, default: list[str]) -> list[str]:
    """Convert an environment variable to a comma-separated list of strings"""
    val = os.environ.get(key)
    if val is None:
        return default
    return [x.strip() for x in val.split(",") if x.strip()]


@dataclass
class RunConfig:
    """Run-level configuration"""
    temperature: float = 0.0
    max_tokens: int | None = None
    timeout_seconds: int = 120
    dry_run: bool = False
    max_samples: int | None = None

    def completion_options(self) -> CompletionOptions:
        """Completion options sent to the evaluated model"""
        return CompletionOptions(temperature=self.temperature, max_tokens=self.max_tokens)


@dataclass
class CacheConfig:
    """Completion cache configuration"""
    enabled: bool = True
    provider: str = "memory"  # memory / redis
    redis_url: str = "redis://localhost:6379/0"
    ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS
    max_memory_items: int = DEFAULT_MAX_MEMORY_ITEMS


@dataclass
class GraderConfig:
    """Grading model configuration (model-graded / choice-based strategies)"""
    grader_model: str = "gpt-4o-mini"
    timeout_seconds: int = 30


@dataclass
class EmbeddingsConfig:
    """Embeddings configuration (semantic similarity strategy)"""
    provider: str = "openai"  # openai / local
    model: str | None = None


@dataclass
class MetricsConfig:
    """Custom metrics configuration"""
    custom_metrics: list[str] = field(default_factory=list)
    disable_default_metrics: bool = False


@dataclass
class LMStudioConfig:
    """Local OpenAI-compatible server (LMStudio) settings"""
    base_url: str = "http://localhost:1234/v1"
    api_key: str = "lm-studio"


@dataclass
class HarnessConfig:
    """Top-level configuration for an evaluation run"""
    run: RunConfig = field(default_factory=RunConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    grader: GraderConfig = field(default_factory=GraderConfig)
    embeddings: EmbeddingsConfig = field(default_factory=EmbeddingsConfig)
    metrics: MetricsConfig = field(default_factory=MetricsConfig)
    lmstudio: LMStudioConfig = field(default_factory=LMStudioConfig)

    def to_dict(self) -> dict:
        """Serialize under a harness_config key"""
        return {"harness_config": asdict(self)}

    @classmethod
    def from_dict(cls, data: dict) -> "HarnessConfig":
        """Build from a dict, with or without the harness_config wrapper key"""
        config_data = data.get("harness_config", data)
        return cls(
            run=RunConfig(**config_data.get("run", {})),
            cache=CacheConfig(**config_data.get("cache", {})),
            grader=GraderConfig(**config_data.get("grader", {})),
            embeddings=EmbeddingsConfig(**config_data.get("embeddings", {})),
            metrics=MetricsConfig(**config_data.get("metrics", {})),
            lmstudio=LMStudioConfig(**config_data.get("lmstudio", {})),
        )


def load_config(env_file: str | None = None) -> HarnessConfig:
    """
    Build a HarnessConfig from the environment

    Values from a .env file are loaded first (without overriding variables
    that are already set). Uses default values when environment variables
    are not set.

    Args:
        env_file: Path to a .env file (defaults to searching for ".env")

    Returns:
        HarnessConfig
    """
    load_dotenv(env_file, override=False)

    run = RunConfig(
        temperature=_env_float("EVAL_TEMPERATURE", 0.0),
        max_tokens=_env_int("EVAL_MAX_TOKENS", None),
        timeout_seconds=_env_int("EVAL_TIMEOUT_SECONDS", 120),
        dry_run=_env_bool("EVAL_DRY_RUN", False),
        max_samples=_env_int("EVAL_MAX_SAMPLES", None),
    )
    cache = CacheConfig(
        enabled=_env_bool("EVAL_CACHE_ENABLED", True),
        provider=_env_str("EVAL_CACHE_PROVIDER", "memory"),
        redis_url=_env_str("EVAL_CACHE_REDIS_URL", "redis://localhost:6379/0"),
        ttl_seconds=_env_int("EVAL_CACHE_TTL_SECONDS", DEFAULT_CACHE_TTL_SECONDS),
        max_memory_items=_env_int("EVAL_CACHE_MAX_MEMORY_ITEMS", DEFAULT_MAX_MEMORY_ITEMS),
    )
    grader = GraderConfig(
        grader_model=_env_str("EVAL_GRADER_MODEL", "gpt-4o-mini"),
        timeout_seconds=_env_int("EVAL_GRADER_TIMEOUT_SECONDS", 30),
    )
    embeddings = EmbeddingsConfig(
        provider=_env_str("EVAL_EMBEDDINGS_PROVIDER", "openai"),
        model=_env_str("EVAL_EMBEDDINGS_MODEL", None),
    )
    metrics = MetricsConfig(
        custom_metrics=_env_list("EVAL_CUSTOM_METRICS", []),
        disable_default_metrics=_env_bool("EVAL_DISABLE_DEFAULT_METRICS", False),
    )
    lmstudio = LMStudioConfig(
        base_url=_env_str("LMSTUDIO_BASE_URL", "http://localhost:1234/v1"),
        api_key=_env_str("LMSTUDIO_API_KEY", "lm-studio"),
    )
    return HarnessConfig(
        run=run,
        cache=cache,
        grader=grader,
        embeddings=embeddings,
        metrics=metrics,
        lmstudio=lmstudio,
    )
