"""
Evaluation Execution

Runs the sample loop (cache, model, grading) for one evaluation and
aggregates the results into an EvalReport.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import asdict, replace
from datetime import datetime, timezone
from typing import Callable

from llm_eval_core.cache.store import CacheStore
from llm_eval_core.domain.constants import DRY_RUN_COMPLETION
from llm_eval_core.domain.entities import EvalReport, EvalResult
from llm_eval_core.domain.errors import ConfigurationError
from llm_eval_core.domain.value_objects import CompletionOptions, CompletionResult, EvalSample, StrategyKind
from llm_eval_core.harness_config import HarnessConfig, load_config
from llm_eval_core.infrastructure.embeddings import EmbeddingsProvider, create_embeddings_provider
from llm_eval_core.infrastructure.model_clients.base import ModelClient, elapsed_ms
from llm_eval_core.infrastructure.model_clients.factory import create_client
from llm_eval_core.metrics.registry import MetricRegistry, create_registry
from llm_eval_core.scoring.base import GradingStrategy, coerce_enum, generate_sample_id
from llm_eval_core.scoring.factory import create_strategy
from llm_eval_core.use_cases.usage import (
    CostModel,
    StaticCostModel,
    aggregate_token_usage,
    estimate_evaluation_cost,
)

logger = logging.getLogger(__name__)


class EvalRunner:
    """
    Runs one evaluation over an ordered list of samples

    Samples are processed strictly one after another. A failure on one
    sample (model call or grading) produces a failed result at that
    sample's position and the run continues. Only configuration problems
    detected before the loop are raised.

    Usage:
        runner = EvalRunner(client, ExactMatchStrategy(), cache=CacheStore())
        report = await runner.run("arithmetic", samples)
    """

    def __init__(
        self,
        model_client: ModelClient | None = None,
        strategy: GradingStrategy | None = None,
        *,
        model_name: str | None = None,
        cache: CacheStore | None = None,
        metrics: MetricRegistry | None = None,
        cost_model: CostModel | None = None,
        provider: str | None = None,
        options: CompletionOptions | None = None,
        dry_run: bool = False,
        max_samples: int | None = None,
    ):
        """
        Args:
            model_client: Client for the evaluated model (not needed for dry runs)
            strategy: Grading strategy (not needed for dry runs)
            model_name: Model identifier (defaults to model_client.get_model())
            cache: Completion cache (no caching when omitted)
            metrics: Metric registry (no custom metrics when omitted)
            cost_model: Pricing lookup (defaults to the built-in pricing table)
            provider: Provider of the evaluated model (detected from the name if omitted)
            options: Completion options sent with every model call
            dry_run: Run the loop without model, cache or grading calls
            max_samples: Default sample limit for run()
        """
        self.model_client = model_client
        self.strategy = strategy
        self._model_name = model_name
        self.cache = cache
        self.metrics = metrics
        self.cost_model = cost_model or StaticCostModel()
        self.provider = provider
        self.options = options or CompletionOptions()
        self.dry_run = dry_run
        self.max_samples = max_samples

    @property
    def model_name(self) -> str | None:
        if self._model_name:
            return self._model_name
        if self.model_client is not None:
            return self.model_client.get_model()
        return None

    def _validate(self) -> None:
        """
        Raises:
            ConfigurationError: When the run cannot start
        """
        if not self.dry_run:
            if self.strategy is None:
                raise ConfigurationError("A grading strategy is required (except for dry runs)")
            if self.model_client is None:
                raise ConfigurationError("A model client is required (except for dry runs)")
        if not self.model_name:
            raise ConfigurationError("A model identifier is required")

    def _grading_config(self) -> dict:
        return {
            "strategy": self.strategy.cache_config() if self.strategy is not None else None,
            "options": self.options.to_dict(),
        }

    def _dry_run_result(self, sample: EvalSample) -> EvalResult:
        return EvalResult(
            sample_id=generate_sample_id(sample),
            input=list(sample.input),
            ideal=sample.ideal,
            completion=CompletionResult(content=DRY_RUN_COMPLETION, model=self.model_name),
            score=0.0,
            passed=False,
            reasoning="Dry run - no actual evaluation performed",
            metadata={"dry_run": True},
        )

    def _failed_result(
        self,
        sample: EvalSample,
        error: Exception,
        stage: str,
        completion: CompletionResult | None = None,
    ) -> EvalResult:
        if completion is None:
            completion = CompletionResult(content="", model=self.model_name, finish_reason="error")
        return EvalResult(
            sample_id=generate_sample_id(sample),
            input=list(sample.input),
            ideal=sample.ideal,
            completion=completion,
            score=0.0,
            passed=False,
            reasoning=f"Evaluation error: {error}",
            metadata={"error": True, "error_stage": stage, "error_type": type(error).__name__},
        )

    async def _complete(self, sample: EvalSample, grading_config: dict) -> CompletionResult:
        """Cached or fresh completion for a sample"""
        model = self.model_name
        if self.cache is not None:
            cached = await self.cache.get(model, sample, grading_config)
            if cached is not None:
                # Cache hits accrue no token cost
                return replace(cached, cached=True, usage=None)

        start_time = time.time()
        completion = await self.model_client.complete(sample.input, self.options)
        completion = replace(completion, latency_ms=elapsed_ms(start_time), cached=False)

        if self.cache is not None:
            await self.cache.set(model, sample, grading_config, completion)
        return completion

    async def _evaluate_sample(self, index: int, sample: EvalSample, grading_config: dict) -> EvalResult:
        try:
            completion = await self._complete(sample, grading_config)
        except Exception as e:
            logger.error("Sample %d: model invocation failed: %s", index, e)
            return self._failed_result(sample, e, "model")

        try:
            return await self.strategy.evaluate(sample, completion)
        except Exception as e:
            logger.error("Sample %d: grading failed: %s", index, e)
            return self._failed_result(sample, e, "grading", completion)

    async def run(
        self,
        eval_name: str,
        samples: list[EvalSample],
        *,
        max_samples: int | None = None,
    ) -> EvalReport:
        """
        Execute the evaluation

        Args:
            eval_name: Name of the evaluation
            samples: Samples in evaluation order
            max_samples: Evaluate only the first max_samples samples (overrides the runner default)

        Returns:
            EvalReport with one result per sample, in sample order

        Raises:
            ConfigurationError: When the run is misconfigured
        """
        self._validate()
        if max_samples is None:
            max_samples = self.max_samples
        if max_samples is not None:
            if max_samples < 0:
                raise ConfigurationError(f"max_samples must be non-negative, got {max_samples}")
            samples = samples[:max_samples]

        model = self.model_name
        run_id = f"{datetime.now().strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:8]}"
        created_at = datetime.now(timezone.utc).isoformat()
        start_time = time.time()
        total = len(samples)
        grading_config = self._grading_config()

        logger.info(
            "Starting run %s: eval=%s model=%s samples=%d%s",
            run_id, eval_name, model, total, " (dry run)" if self.dry_run else "",
        )

        slots: list[EvalResult | None] = [None] * total
        for index, sample in enumerate(samples):
            if self.dry_run:
                slots[index] = self._dry_run_result(sample)
                logger.info("[%d/%d] %s | %s | dry run", index + 1, total, eval_name, model)
                continue

            result = await self._evaluate_sample(index, sample, grading_config)
            slots[index] = result
            logger.info(
                "[%d/%d] %s | %s | Score: %.2f%s",
                index + 1, total, eval_name, model, result.score,
                " (cached)" if result.completion.cached else "",
            )

        results: list[EvalResult] = list(slots)
        correct = sum(1 for r in results if r.passed)

        metadata: dict = {
            "dry_run": self.dry_run,
            "grading_config": grading_config,
            "errors": sum(1 for r in results if r.metadata.get("error")),
        }
        if self.dry_run:
            metadata["estimated_cost"] = estimate_evaluation_cost(
                model, total, self.cost_model, self.provider,
            )
        if self.cache is not None and not self.dry_run:
            metadata["cache_stats"] = asdict(await self.cache.stats())

        report = EvalReport(
            eval_name=eval_name,
            model=model,
            total_samples=total,
            correct=correct,
            incorrect=total - correct,
            score=correct / total if total else 0.0,
            results=results,
            run_id=run_id,
            created_at=created_at,
            duration_ms=elapsed_ms(start_time),
            token_usage=aggregate_token_usage(results, self.cost_model, self.provider, model),
            metadata=metadata,
        )

        if self.metrics is not None:
            try:
                report.custom_metrics = await self.metrics.calculate_all(results, report)
            except Exception as e:
                logger.error("Custom metrics failed for run %s: %s", run_id, e)
                report.custom_metrics = []

        logger.info(
            "Finished run %s: %d/%d correct (score %.3f) in %dms",
            run_id, correct, total, report.score, report.duration_ms,
        )
        return report


def build_runner(
    model_name: str,
    strategy: GradingStrategy | None,
    config: HarnessConfig | None = None,
    *,
    create_client_fn: Callable[[str, HarnessConfig], ModelClient] | None = None,
) -> EvalRunner:
    """
    Create a runner wired from the harness configuration

    Args:
        model_name: Model to evaluate
        strategy: Grading strategy (may be None for dry runs)
        config: HarnessConfig (loads from env if not provided)
        create_client_fn: Function to create the model client (defaults to create_client)

    Returns:
        EvalRunner with client, cache, metrics and options from config
    """
    if config is None:
        config = load_config()
    if create_client_fn is None:
        create_client_fn = create_client

    dry_run = config.run.dry_run
    return EvalRunner(
        None if dry_run else create_client_fn(model_name, config),
        strategy,
        model_name=model_name,
        cache=CacheStore(config.cache) if config.cache.enabled else None,
        metrics=create_registry(config.metrics),
        options=config.run.completion_options(),
        dry_run=dry_run,
        max_samples=config.run.max_samples,
    )


def build_strategy(
    kind: StrategyKind | str,
    args: dict | None = None,
    config: HarnessConfig | None = None,
    *,
    create_client_fn: Callable[[str, HarnessConfig], ModelClient] | None = None,
    create_embeddings_fn: Callable[[str, str | None], EmbeddingsProvider] | None = None,
) -> GradingStrategy:
    """
    Create a grading strategy with its collaborators from the harness configuration

    The grader client (model_graded, choice_based) is created for
    config.grader.grader_model with the grader timeout; the embeddings
    provider (semantic_similarity) from config.embeddings.

    Args:
        kind: Strategy kind
        args: Strategy arguments
        config: HarnessConfig (loads from env if not provided)
        create_client_fn: Function to create the grader client (defaults to create_client)
        create_embeddings_fn: Function to create the embeddings provider
            (defaults to create_embeddings_provider)

    Returns:
        GradingStrategy

    Raises:
        ConfigurationError: When the strategy cannot be built
    """
    if config is None:
        config = load_config()
    if create_client_fn is None:
        create_client_fn = create_client
    if create_embeddings_fn is None:
        create_embeddings_fn = create_embeddings_provider

    kind = coerce_enum(StrategyKind, kind, "strategy kind")
    grader = None
    embeddings = None
    if kind in (StrategyKind.MODEL_GRADED, StrategyKind.CHOICE_BASED):
        grader_config = replace(config, run=replace(config.run, timeout_seconds=config.grader.timeout_seconds))
        grader = create_client_fn(config.grader.grader_model, grader_config)
    elif kind == StrategyKind.SEMANTIC_SIMILARITY:
        embeddings = create_embeddings_fn(config.embeddings.provider, config.embeddings.model)

    return create_strategy(kind, args, grader=grader, embeddings=embeddings)
