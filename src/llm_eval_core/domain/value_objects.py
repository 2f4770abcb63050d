"""
Domain Value Objects

Defines immutable data structures representing chat messages, samples,
completions and their options, plus the enumerations shared across the engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class StrategyKind(str, Enum):
    """Grading strategy variants"""
    EXACT_MATCH = "exact_match"
    MODEL_GRADED = "model_graded"
    CHOICE_BASED = "choice_based"
    SEMANTIC_SIMILARITY = "semantic_similarity"


class MatchType(str, Enum):
    """Match rules for exact-match grading"""
    EXACT = "exact"
    INCLUDES = "includes"
    FUZZY = "fuzzy"
    REGEX = "regex"


class ModelGradedMode(str, Enum):
    """Model-graded reply formats"""
    CLASSIFY = "classify"
    COT_CLASSIFY = "cot_classify"


class SimilarityMatchMode(str, Enum):
    """How similarities against several ideal answers are combined"""
    BEST = "best"
    THRESHOLD = "threshold"
    ALL = "all"


class MetricCategory(str, Enum):
    """Metric categories"""
    ACCURACY = "accuracy"
    EFFICIENCY = "efficiency"
    COST = "cost"
    QUALITY = "quality"
    SAFETY = "safety"
    BUSINESS = "business"
    CUSTOM = "custom"


class CacheProvider(str, Enum):
    """Cache backends"""
    MEMORY = "memory"
    REDIS = "redis"


_ROLES = ("system", "user", "assistant")


@dataclass(frozen=True)
class ChatMessage:
    """A message in the chat format"""
    role: str
    content: str

    def __post_init__(self):
        if self.role not in _ROLES:
            raise ValueError(f"role must be one of {_ROLES}, got '{self.role}'")

    def to_dict(self) -> dict:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class EvalSample:
    """A single evaluation sample (question + expected answer)"""
    input: list[ChatMessage]
    ideal: str | list[str]
    metadata: dict = field(default_factory=dict)

    def ideal_answers(self) -> list[str]:
        """Return the ideal answers as a list"""
        if isinstance(self.ideal, str):
            return [self.ideal]
        return list(self.ideal)

    def user_text(self) -> str:
        """Join the content of all user messages"""
        return "\n".join(m.content for m in self.input if m.role == "user")

    def to_dict(self) -> dict:
        return {
            "input": [m.to_dict() for m in self.input],
            "ideal": self.ideal if isinstance(self.ideal, str) else list(self.ideal),
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "EvalSample":
        return cls(
            input=[ChatMessage(**m) for m in data["input"]],
            ideal=data["ideal"],
            metadata=data.get("metadata") or {},
        )


@dataclass(frozen=True)
class TokenCounts:
    """Token usage reported for one completion"""
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int

    def __post_init__(self):
        if self.prompt_tokens < 0 or self.completion_tokens < 0 or self.total_tokens < 0:
            raise ValueError("token counts must be non-negative")


@dataclass(frozen=True)
class CompletionResult:
    """Model completion (content + optional token usage)"""
    content: str
    model: str = ""
    usage: TokenCounts | None = None
    finish_reason: str | None = None
    latency_ms: int | None = None
    cached: bool = False

    def to_dict(self) -> dict:
        return {
            "content": self.content,
            "model": self.model,
            "usage": (
                {
                    "prompt_tokens": self.usage.prompt_tokens,
                    "completion_tokens": self.usage.completion_tokens,
                    "total_tokens": self.usage.total_tokens,
                }
                if self.usage is not None
                else None
            ),
            "finish_reason": self.finish_reason,
            "latency_ms": self.latency_ms,
            "cached": self.cached,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CompletionResult":
        usage = data.get("usage")
        return cls(
            content=data.get("content", ""),
            model=data.get("model", ""),
            usage=TokenCounts(**usage) if usage else None,
            finish_reason=data.get("finish_reason"),
            latency_ms=data.get("latency_ms"),
            cached=bool(data.get("cached", False)),
        )


@dataclass(frozen=True)
class CompletionOptions:
    """Completion options passed to the model client (part of the cache key)"""
    temperature: float | None = 0.0
    max_tokens: int | None = None
    top_p: float | None = None
    frequency_penalty: float | None = None
    presence_penalty: float | None = None
    stop: tuple[str, ...] | None = None

    def to_dict(self) -> dict:
        """Convert to a dictionary, dropping unset options"""
        data = {
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "top_p": self.top_p,
            "frequency_penalty": self.frequency_penalty,
            "presence_penalty": self.presence_penalty,
            "stop": list(self.stop) if self.stop is not None else None,
        }
        return {k: v for k, v in data.items() if v is not None}


@dataclass(frozen=True)
class CostRates:
    """Pricing for one model (USD per 1K tokens)"""
    input_rate_per_1k: float
    output_rate_per_1k: float


@dataclass
class CostBreakdown:
    """Cost split by token type (USD)"""
    prompt_cost: float = 0.0
    completion_cost: float = 0.0
    embedding_cost: float | None = None
