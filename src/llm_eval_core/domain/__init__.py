"""
Domain Layer

Defines constants, entities, value objects and errors that form the core of
the evaluation engine. Has no dependencies on external libraries.
"""

from llm_eval_core.domain.constants import (
    DEFAULT_VERDICT_SCORES,
    DRY_RUN_COMPLETION,
    MODEL_PRICING,
    _LOCAL_MODEL_PRICING,
)
from llm_eval_core.domain.entities import (
    CacheEntry,
    CacheStats,
    EvalReport,
    EvalResult,
    HealthCheckResult,
    MetricResult,
    TokenUsage,
)
from llm_eval_core.domain.errors import (
    ConfigurationError,
    EvalCoreError,
    GradingError,
    InfrastructureError,
    MetricComputationError,
    ModelInvocationError,
    UnparseableVerdictError,
)
from llm_eval_core.domain.value_objects import (
    CacheProvider,
    ChatMessage,
    CompletionOptions,
    CompletionResult,
    CostBreakdown,
    CostRates,
    EvalSample,
    MatchType,
    MetricCategory,
    ModelGradedMode,
    SimilarityMatchMode,
    StrategyKind,
    TokenCounts,
)

__all__ = [
    # constants
    "DEFAULT_VERDICT_SCORES",
    "DRY_RUN_COMPLETION",
    "MODEL_PRICING",
    "_LOCAL_MODEL_PRICING",
    # entities
    "CacheEntry",
    "CacheStats",
    "EvalReport",
    "EvalResult",
    "HealthCheckResult",
    "MetricResult",
    "TokenUsage",
    # errors
    "ConfigurationError",
    "EvalCoreError",
    "GradingError",
    "InfrastructureError",
    "MetricComputationError",
    "ModelInvocationError",
    "UnparseableVerdictError",
    # value objects
    "CacheProvider",
    "ChatMessage",
    "CompletionOptions",
    "CompletionResult",
    "CostBreakdown",
    "CostRates",
    "EvalSample",
    "MatchType",
    "MetricCategory",
    "ModelGradedMode",
    "SimilarityMatchMode",
    "StrategyKind",
    "TokenCounts",
]
