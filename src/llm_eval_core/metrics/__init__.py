"""
Metrics sub-package

Provides custom metrics computed over a completed run and their registry.
"""

from llm_eval_core.metrics.base import CustomMetric, MetricConfig
from llm_eval_core.metrics.builtin import (
    DEFAULT_IMPACT_WEIGHTS,
    BusinessImpactMetric,
    CostEfficiencyMetric,
    LatencyPercentileMetric,
    ResponseConsistencyMetric,
    TokenEfficiencyMetric,
)
from llm_eval_core.metrics.registry import (
    MetricRegistry,
    create_registry,
    default_metrics,
    load_metric_class,
)

__all__ = [
    # base
    "CustomMetric",
    "MetricConfig",
    # built-in metrics
    "DEFAULT_IMPACT_WEIGHTS",
    "BusinessImpactMetric",
    "CostEfficiencyMetric",
    "LatencyPercentileMetric",
    "ResponseConsistencyMetric",
    "TokenEfficiencyMetric",
    # registry
    "MetricRegistry",
    "create_registry",
    "default_metrics",
    "load_metric_class",
]
