"""
Use Cases Layer

Provides the evaluation run, usage and cost aggregation, and health checks.
"""

from llm_eval_core.use_cases.evaluation import EvalRunner, build_runner, build_strategy
from llm_eval_core.use_cases.health_check import (
    HEALTH_CHECK_PROMPT,
    health_check_all_models,
    health_check_embeddings,
    health_check_model,
    run_grader_health_check,
)
from llm_eval_core.use_cases.usage import (
    CostModel,
    StaticCostModel,
    aggregate_token_usage,
    estimate_evaluation_cost,
    results_to_dataframe,
)

__all__ = [
    # evaluation
    "EvalRunner",
    "build_runner",
    "build_strategy",
    # health check
    "HEALTH_CHECK_PROMPT",
    "health_check_all_models",
    "health_check_embeddings",
    "health_check_model",
    "run_grader_health_check",
    # usage
    "CostModel",
    "StaticCostModel",
    "aggregate_token_usage",
    "estimate_evaluation_cost",
    "results_to_dataframe",
]
