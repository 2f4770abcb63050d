"""
Custom metric base

Defines the CustomMetric interface and its configuration.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace

from llm_eval_core.domain.entities import EvalReport, EvalResult, MetricResult
from llm_eval_core.domain.value_objects import MetricCategory


@dataclass
class MetricConfig:
    """Per-metric configuration"""
    enabled: bool = True
    weight: float | None = None  # For weighted composite scores
    threshold: float | None = None
    parameters: dict = field(default_factory=dict)


class CustomMetric(ABC):
    """
    Metric computed over a completed run

    Subclasses set the class attributes and implement calculate().
    """

    name: str = ""
    display_name: str = ""
    description: str = ""
    higher_is_better: bool = True
    category: MetricCategory = MetricCategory.CUSTOM

    def __init__(self, config: MetricConfig | None = None):
        self.config = config or MetricConfig()

    @abstractmethod
    async def calculate(self, results: list[EvalResult], report: EvalReport | None = None) -> MetricResult:
        """Calculate the metric value from evaluation results"""
        pass

    def validate(self, results: list[EvalResult]) -> tuple[bool, str | None]:
        """
        Check whether the metric can be calculated

        Returns:
            (valid, reason when invalid)
        """
        if not results:
            return False, "No results to calculate metric"
        return True, None

    def should_calculate(self) -> bool:
        return self.config.enabled

    def get_config(self) -> MetricConfig:
        return replace(self.config, parameters=dict(self.config.parameters))

    def update_config(self, **changes) -> None:
        """Update configuration fields (enabled, weight, threshold, parameters)"""
        self.config = replace(self.config, **changes)

    def _make_result(self, value: float, metadata: dict | None = None) -> MetricResult:
        return MetricResult(
            name=self.name,
            value=value,
            display_name=self.display_name,
            description=self.description,
            higher_is_better=self.higher_is_better,
            category=self.category,
            metadata=metadata or {},
        )
