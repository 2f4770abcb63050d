"""
Domain Entities

Defines the primary data structures produced by an evaluation run.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field

from llm_eval_core.domain.value_objects import (
    ChatMessage,
    CompletionResult,
    CostBreakdown,
    MetricCategory,
)


@dataclass(frozen=True)
class EvalResult:
    """Result of grading a single sample"""
    sample_id: str
    input: list[ChatMessage]
    ideal: str | list[str]
    completion: CompletionResult
    score: float
    passed: bool
    reasoning: str | None = None
    metadata: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "sample_id": self.sample_id,
            "input": [m.to_dict() for m in self.input],
            "ideal": self.ideal,
            "completion": self.completion.to_dict(),
            "score": self.score,
            "passed": self.passed,
            "reasoning": self.reasoning,
            "metadata": dict(self.metadata),
        }


@dataclass
class TokenUsage:
    """Token and cost totals over the results that reported usage"""
    total_prompt_tokens: int
    total_completion_tokens: int
    total_tokens: int
    average_tokens_per_sample: float
    max_tokens_per_sample: int
    min_tokens_per_sample: int
    estimated_cost: float
    cost_breakdown: CostBreakdown | None = None
    samples_counted: int = 0


@dataclass
class MetricResult:
    """Value produced by one custom metric"""
    name: str
    value: float
    display_name: str
    description: str
    higher_is_better: bool
    category: MetricCategory
    metadata: dict = field(default_factory=dict)


@dataclass
class EvalReport:
    """Final report of one evaluation run"""
    eval_name: str
    model: str
    total_samples: int
    correct: int
    incorrect: int
    score: float
    results: list[EvalResult]
    run_id: str
    created_at: str
    duration_ms: int
    token_usage: TokenUsage | None = None
    custom_metrics: list[MetricResult] | None = None
    metadata: dict = field(default_factory=dict)

    def __post_init__(self):
        if self.correct + self.incorrect != self.total_samples:
            raise ValueError("correct + incorrect must equal total_samples")
        if self.total_samples != len(self.results):
            raise ValueError("total_samples must equal the number of results")

    def to_dict(self) -> dict:
        """Convert to dictionary format for report sinks"""
        return {
            "eval_name": self.eval_name,
            "model": self.model,
            "total_samples": self.total_samples,
            "correct": self.correct,
            "incorrect": self.incorrect,
            "score": self.score,
            "results": [r.to_dict() for r in self.results],
            "run_id": self.run_id,
            "created_at": self.created_at,
            "duration_ms": self.duration_ms,
            "token_usage": asdict(self.token_usage) if self.token_usage else None,
            "custom_metrics": (
                [{**asdict(m), "category": m.category.value} for m in self.custom_metrics]
                if self.custom_metrics is not None
                else None
            ),
            "metadata": dict(self.metadata),
        }


@dataclass
class CacheEntry:
    """Stored completion plus the hash fragments used for bulk invalidation"""
    result: dict
    timestamp: float
    model_hash: str
    sample_hash: str
    template_config_hash: str
    strategy_hash: str = ""

    def is_valid(self, now: float, ttl_seconds: float) -> bool:
        return now - self.timestamp < ttl_seconds


@dataclass
class CacheStats:
    """Cache counters and backend health"""
    total_requests: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    hit_rate: float = 0.0
    backend_kind: str = "memory"
    backend_errors: int = 0
    degraded: bool = False
    last_error: str | None = None
    entries: int | None = None
    memory_usage: int | None = None
    redis_connected: bool = False


@dataclass
class HealthCheckResult:
    """Health check result"""
    model_name: str
    success: bool
    latency_ms: int | None
    error: str | None
