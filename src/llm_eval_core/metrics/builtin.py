"""
Built-in metrics

Cost efficiency, response consistency, token efficiency, business impact
and latency percentile.
"""

from __future__ import annotations

import json
import re

import pandas as pd

from llm_eval_core.domain.entities import EvalReport, EvalResult, MetricResult
from llm_eval_core.domain.errors import MetricComputationError
from llm_eval_core.domain.value_objects import MetricCategory
from llm_eval_core.metrics.base import CustomMetric


class CostEfficiencyMetric(CustomMetric):
    """Accuracy achieved per dollar spent"""

    name = "cost_efficiency"
    display_name = "Cost Efficiency"
    description = "Accuracy achieved per dollar spent (higher is better)"
    higher_is_better = True
    category = MetricCategory.EFFICIENCY

    async def calculate(self, results: list[EvalResult], report: EvalReport | None = None) -> MetricResult:
        total_cost = report.token_usage.estimated_cost if report and report.token_usage else 0.0
        accuracy = report.score if report else 0.0

        value = accuracy / total_cost if total_cost > 0 else 0.0
        cost_per_point = total_cost / (accuracy * 100) if total_cost > 0 and accuracy > 0 else 0.0
        return self._make_result(
            round(value, 3),
            {"accuracy": accuracy, "total_cost": total_cost, "cost_per_point": cost_per_point},
        )


class ResponseConsistencyMetric(CustomMetric):
    """
    Consistency of responses across identical inputs

    Results are grouped by normalized input. A group with every response
    identical scores 1.0; a group with all-distinct responses scores 0.0.
    """

    name = "response_consistency"
    display_name = "Response Consistency"
    description = "Consistency of responses across similar inputs"
    higher_is_better = True
    category = MetricCategory.QUALITY

    @staticmethod
    def _normalize_input(result: EvalResult) -> str:
        raw = json.dumps([m.to_dict() for m in result.input], ensure_ascii=False)
        return re.sub(r"\s+", " ", raw.lower()).strip()

    async def calculate(self, results: list[EvalResult], report: EvalReport | None = None) -> MetricResult:
        groups: dict[str, list[str]] = {}
        for result in results:
            groups.setdefault(self._normalize_input(result), []).append(result.completion.content)

        consistencies = []
        for responses in groups.values():
            if len(responses) < 2:
                continue
            unique = len(set(responses))
            consistencies.append(1.0 - (unique - 1) / (len(responses) - 1))

        value = sum(consistencies) / len(consistencies) if consistencies else 1.0
        return self._make_result(
            round(value, 3),
            {"groups_analyzed": len(consistencies), "total_samples": len(results)},
        )


class TokenEfficiencyMetric(CustomMetric):
    """
    Average tokens used per correct answer

    Only correct answers with measured usage count; cache hits carry no usage.
    """

    name = "token_efficiency"
    display_name = "Token Efficiency"
    description = "Average tokens used per correct answer"
    higher_is_better = False
    category = MetricCategory.EFFICIENCY

    async def calculate(self, results: list[EvalResult], report: EvalReport | None = None) -> MetricResult:
        correct = [r for r in results if r.passed]
        if not correct:
            return self._make_result(0.0, {"correct_answers": 0, "answers_with_usage": 0, "total_samples": len(results)})

        measured = [r for r in correct if r.completion.usage is not None]
        total_tokens = sum(r.completion.usage.total_tokens for r in measured)
        return self._make_result(
            round(total_tokens / len(measured), 1) if measured else 0.0,
            {
                "correct_answers": len(correct),
                "answers_with_usage": len(measured),
                "total_tokens": total_tokens,
                "total_samples": len(results),
            },
        )


# Default weights of the business impact composite
DEFAULT_IMPACT_WEIGHTS = {
    "accuracy": 0.4,
    "speed": 0.3,
    "cost": 0.2,
    "user_satisfaction": 0.1,
}


class BusinessImpactMetric(CustomMetric):
    """
    Weighted composite of accuracy, speed, cost and user satisfaction

    Parameters (config.parameters):
        impact_weights: Weights per component (defaults to DEFAULT_IMPACT_WEIGHTS)
        max_latency_ms: Latency scored as 0 for speed (default 5000)
        max_tokens: Token count scored as 0 for cost (default 300)

    Samples without measured latency or token usage are skipped.

    Raises:
        MetricComputationError: When the weights or bounds are unusable
    """

    name = "business_impact"
    display_name = "Business Impact Score"
    description = "Weighted business impact score based on accuracy, speed, cost and satisfaction"
    higher_is_better = True
    category = MetricCategory.BUSINESS

    _APOLOGETIC_RE = re.compile(r"^(sorry|i don't|i can't)", re.IGNORECASE)

    def _satisfaction_score(self, content: str) -> float:
        score = 0.5
        if len(content) > 10:
            score += 0.2
        if len(content) < 500:
            score += 0.2
        if not self._APOLOGETIC_RE.match(content):
            score += 0.1
        return min(1.0, score)

    def _sample_impact(self, result: EvalResult, weights: dict, max_latency_ms: float, max_tokens: float) -> float | None:
        latency = result.completion.latency_ms
        usage = result.completion.usage
        if latency is None or usage is None or usage.total_tokens == 0:
            return None

        accuracy = 1.0 if result.passed else 0.0
        speed = max(0.0, (max_latency_ms - latency) / max_latency_ms)
        cost = max(0.0, (max_tokens - usage.total_tokens) / max_tokens)
        satisfaction = self._satisfaction_score(result.completion.content)
        return (
            accuracy * weights.get("accuracy", 0.0)
            + speed * weights.get("speed", 0.0)
            + cost * weights.get("cost", 0.0)
            + satisfaction * weights.get("user_satisfaction", 0.0)
        )

    async def calculate(self, results: list[EvalResult], report: EvalReport | None = None) -> MetricResult:
        params = self.config.parameters
        weights = params.get("impact_weights") or DEFAULT_IMPACT_WEIGHTS
        if not isinstance(weights, dict) or not all(isinstance(w, (int, float)) for w in weights.values()):
            raise MetricComputationError(f"impact_weights must map components to numbers, got {weights!r}")
        try:
            max_latency_ms = float(params.get("max_latency_ms", 5000))
            max_tokens = float(params.get("max_tokens", 300))
        except (TypeError, ValueError) as e:
            raise MetricComputationError(f"Invalid business impact bounds: {e}") from e
        if max_latency_ms <= 0 or max_tokens <= 0:
            raise MetricComputationError("max_latency_ms and max_tokens must be positive")

        impacts = [
            impact
            for impact in (self._sample_impact(r, weights, max_latency_ms, max_tokens) for r in results)
            if impact is not None
        ]
        value = sum(impacts) / len(impacts) if impacts else 0.0
        return self._make_result(
            round(value, 2),
            {"impact_weights": dict(weights), "samples_processed": len(impacts), "total_samples": len(results)},
        )


class LatencyPercentileMetric(CustomMetric):
    """95th percentile of measured model latency (cache hits and failures excluded)"""

    name = "latency_p95"
    display_name = "Latency P95"
    description = "95th percentile of response latency (ms)"
    higher_is_better = False
    category = MetricCategory.EFFICIENCY

    async def calculate(self, results: list[EvalResult], report: EvalReport | None = None) -> MetricResult:
        latencies = pd.Series(
            [r.completion.latency_ms for r in results if r.completion.latency_ms is not None and not r.completion.cached],
            dtype="float64",
        )
        if latencies.empty:
            return self._make_result(0.0, {"samples_with_latency": 0, "total_samples": len(results)})

        return self._make_result(
            float(round(latencies.quantile(0.95, interpolation="higher"))),
            {
                "samples_with_latency": int(latencies.size),
                "total_samples": len(results),
                "median_latency": float(latencies.median()),
                "avg_latency": float(round(latencies.mean())),
            },
        )
