"""
Metric registry

Holds the custom metrics applied to a completed run and calculates them
independently of one another.
"""

from __future__ import annotations

import importlib
import logging

from llm_eval_core.domain.entities import EvalReport, EvalResult, MetricResult
from llm_eval_core.domain.errors import ConfigurationError, MetricComputationError
from llm_eval_core.domain.value_objects import MetricCategory
from llm_eval_core.harness_config import MetricsConfig
from llm_eval_core.metrics.base import CustomMetric
from llm_eval_core.metrics.builtin import (
    BusinessImpactMetric,
    CostEfficiencyMetric,
    LatencyPercentileMetric,
    ResponseConsistencyMetric,
    TokenEfficiencyMetric,
)

logger = logging.getLogger(__name__)


def default_metrics() -> list[CustomMetric]:
    """Fresh instances of the built-in metrics"""
    return [
        CostEfficiencyMetric(),
        ResponseConsistencyMetric(),
        TokenEfficiencyMetric(),
        BusinessImpactMetric(),
        LatencyPercentileMetric(),
    ]


class MetricRegistry:
    """
    Registry of custom metrics

    Metrics are keyed by name; registering a metric with an existing name
    replaces it.
    """

    def __init__(self, metrics: list[CustomMetric] | None = None, *, include_defaults: bool = True):
        self._include_defaults = include_defaults
        self._metrics: dict[str, CustomMetric] = {}
        if include_defaults:
            for metric in default_metrics():
                self.register(metric)
        for metric in metrics or []:
            self.register(metric)

    def register(self, metric: CustomMetric) -> None:
        if metric.name in self._metrics:
            logger.warning("Metric '%s' already exists, overwriting", metric.name)
        self._metrics[metric.name] = metric
        logger.debug("Registered metric: %s", metric.display_name)

    def unregister(self, name: str) -> bool:
        return self._metrics.pop(name, None) is not None

    def get(self, name: str) -> CustomMetric | None:
        return self._metrics.get(name)

    def all_metrics(self) -> list[CustomMetric]:
        return list(self._metrics.values())

    def by_category(self, category: MetricCategory | str) -> list[CustomMetric]:
        category = MetricCategory(category)
        return [m for m in self._metrics.values() if m.category == category]

    def configure(self, configurations: dict[str, dict]) -> None:
        """
        Update the configuration of several metrics at once

        Args:
            configurations: Metric name -> config changes (e.g. {"enabled": False})
        """
        for name, changes in configurations.items():
            metric = self._metrics.get(name)
            if metric is None:
                logger.warning("Metric '%s' not found, skipping configuration", name)
                continue
            metric.update_config(**changes)

    def registry_stats(self) -> dict:
        metrics = self.all_metrics()
        by_category: dict[str, int] = {}
        for metric in metrics:
            by_category[metric.category.value] = by_category.get(metric.category.value, 0) + 1
        return {
            "total_metrics": len(metrics),
            "enabled_metrics": sum(1 for m in metrics if m.should_calculate()),
            "metrics_by_category": by_category,
        }

    def reset_to_defaults(self) -> None:
        """Replace every registered metric with fresh built-in metrics"""
        self._metrics.clear()
        for metric in default_metrics():
            self.register(metric)

    async def calculate_all(self, results: list[EvalResult], report: EvalReport | None = None) -> list[MetricResult]:
        """
        Calculate every enabled metric

        A metric that fails validation or raises is logged and left out; the
        others are still calculated.

        Returns:
            MetricResults in registration order
        """
        metric_results: list[MetricResult] = []
        for metric in self._metrics.values():
            if not metric.should_calculate():
                continue
            try:
                valid, reason = metric.validate(results)
                if not valid:
                    logger.warning("Skipping metric %s: %s", metric.name, reason)
                    continue
                metric_results.append(await metric.calculate(results, report))
            except MetricComputationError as e:
                logger.warning("Metric %s could not be calculated: %s", metric.name, e)
            except Exception as e:
                logger.error("Error calculating metric %s: %s", metric.name, e)
        return metric_results


def load_metric_class(path: str) -> type[CustomMetric]:
    """
    Import a metric class from "package.module:ClassName"

    Raises:
        ConfigurationError: When the path cannot be imported or is not a CustomMetric
    """
    module_name, _, class_name = path.partition(":")
    if not module_name or not class_name:
        raise ConfigurationError(f"Invalid metric path '{path}' (expected 'package.module:ClassName')")
    try:
        metric_cls = getattr(importlib.import_module(module_name), class_name)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(f"Cannot load metric '{path}': {e}") from e
    if not (isinstance(metric_cls, type) and issubclass(metric_cls, CustomMetric)):
        raise ConfigurationError(f"'{path}' is not a CustomMetric subclass")
    return metric_cls


def create_registry(config: MetricsConfig | None = None) -> MetricRegistry:
    """
    Build a registry from the metrics configuration

    Args:
        config: MetricsConfig (defaults to the built-in metrics only)

    Returns:
        MetricRegistry
    """
    config = config or MetricsConfig()
    custom = [load_metric_class(path)() for path in config.custom_metrics]
    return MetricRegistry(custom, include_defaults=not config.disable_default_metrics)
