"""
Token usage and cost

Aggregates token usage over evaluation results, prices it with a cost model
and converts results to a DataFrame for report sinks.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod

import pandas as pd

from llm_eval_core.domain.constants import MODEL_PRICING, _LOCAL_MODEL_PRICING
from llm_eval_core.domain.entities import EvalResult, TokenUsage
from llm_eval_core.domain.value_objects import CostBreakdown, CostRates
from llm_eval_core.infrastructure.model_clients.factory import detect_provider


class CostModel(ABC):
    """Pricing lookup by (provider, model)"""

    @abstractmethod
    def lookup(self, provider: str | None, model: str) -> CostRates | None:
        """Rates for the model, or None when unknown"""
        pass


class StaticCostModel(CostModel):
    """
    Cost model backed by a pricing table (USD per 1K tokens)

    Lookup order: exact (provider, model), then the longest table model that
    prefixes the requested model (dated model versions). Local models are free.
    """

    def __init__(self, pricing: dict[tuple[str, str], dict[str, float]] | None = None):
        self.pricing = dict(MODEL_PRICING if pricing is None else pricing)

    def lookup(self, provider: str | None, model: str) -> CostRates | None:
        provider = provider or detect_provider(model)
        if provider == "lmstudio":
            return CostRates(_LOCAL_MODEL_PRICING["input"], _LOCAL_MODEL_PRICING["output"])

        rates = self.pricing.get((provider, model))
        if rates is None:
            prefixes = [
                name for (p, name) in self.pricing
                if p == provider and model.startswith(name)
            ]
            if not prefixes:
                return None
            rates = self.pricing[(provider, max(prefixes, key=len))]
        return CostRates(input_rate_per_1k=rates["input"], output_rate_per_1k=rates["output"])


def _usage_frame(results: list[EvalResult]) -> pd.DataFrame:
    rows = [
        {
            "prompt_tokens": r.completion.usage.prompt_tokens,
            "completion_tokens": r.completion.usage.completion_tokens,
            "total_tokens": r.completion.usage.total_tokens,
        }
        for r in results
        if r.completion.usage is not None
    ]
    return pd.DataFrame(rows, columns=["prompt_tokens", "completion_tokens", "total_tokens"])


def aggregate_token_usage(
    results: list[EvalResult],
    cost_model: CostModel | None = None,
    provider: str | None = None,
    model: str = "",
) -> TokenUsage | None:
    """
    Aggregate token usage and cost

    Only results whose completion reports usage are counted; cache hits,
    dry-run placeholders and failures are excluded rather than zero-filled.

    Args:
        results: Evaluation results
        cost_model: Pricing lookup (cost is 0 when omitted or the model is unknown)
        provider: Provider of the evaluated model (detected from the name if omitted)
        model: Evaluated model

    Returns:
        TokenUsage, or None when no result reports usage
    """
    df = _usage_frame(results)
    if df.empty:
        return None

    total_prompt = int(df["prompt_tokens"].sum())
    total_completion = int(df["completion_tokens"].sum())

    breakdown = CostBreakdown()
    rates = cost_model.lookup(provider, model) if cost_model is not None else None
    if rates is not None:
        breakdown = CostBreakdown(
            prompt_cost=(total_prompt / 1000) * rates.input_rate_per_1k,
            completion_cost=(total_completion / 1000) * rates.output_rate_per_1k,
        )

    return TokenUsage(
        total_prompt_tokens=total_prompt,
        total_completion_tokens=total_completion,
        total_tokens=int(df["total_tokens"].sum()),
        average_tokens_per_sample=float(df["total_tokens"].mean()),
        max_tokens_per_sample=int(df["total_tokens"].max()),
        min_tokens_per_sample=int(df["total_tokens"].min()),
        estimated_cost=breakdown.prompt_cost + breakdown.completion_cost,
        cost_breakdown=breakdown,
        samples_counted=len(df),
    )


def estimate_evaluation_cost(
    model: str,
    sample_count: int,
    cost_model: CostModel | None = None,
    provider: str | None = None,
    avg_input_length: int = 500,
    avg_output_length: int = 200,
) -> float:
    """
    Estimate the cost of running sample_count samples

    Token counts are approximated as characters / 4.

    Returns:
        Estimated cost (USD); 0 when the model has no known pricing
    """
    cost_model = cost_model or StaticCostModel()
    rates = cost_model.lookup(provider, model)
    if rates is None:
        return 0.0
    input_tokens = math.ceil(avg_input_length / 4)
    output_tokens = math.ceil(avg_output_length / 4)
    per_sample = (
        (input_tokens / 1000) * rates.input_rate_per_1k
        + (output_tokens / 1000) * rates.output_rate_per_1k
    )
    return per_sample * sample_count


def results_to_dataframe(results: list[EvalResult]) -> pd.DataFrame:
    """
    Flatten evaluation results into one row per sample

    Returns:
        pd.DataFrame with identifiers, scores, completion data and flags
    """
    rows = []
    for index, r in enumerate(results):
        usage = r.completion.usage
        rows.append({
            "index": index,
            "sample_id": r.sample_id,
            "ideal": r.ideal if isinstance(r.ideal, str) else " OR ".join(r.ideal),
            "completion": r.completion.content,
            "score": r.score,
            "passed": r.passed,
            "reasoning": r.reasoning,
            "cached": r.completion.cached,
            "latency_ms": r.completion.latency_ms,
            "prompt_tokens": usage.prompt_tokens if usage else None,
            "completion_tokens": usage.completion_tokens if usage else None,
            "total_tokens": usage.total_tokens if usage else None,
            "error": bool(r.metadata.get("error", False)),
            "dry_run": bool(r.metadata.get("dry_run", False)),
        })
    return pd.DataFrame(rows)
