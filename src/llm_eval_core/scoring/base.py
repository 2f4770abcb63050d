"""
Grading strategy base

Defines the GradingStrategy interface shared by every grading variant, plus
helpers for sample identifiers and prompt rendering.
"""

from __future__ import annotations

import hashlib
import json
from abc import ABC, abstractmethod
from enum import Enum

from llm_eval_core.domain.entities import EvalResult
from llm_eval_core.domain.errors import ConfigurationError
from llm_eval_core.domain.value_objects import CompletionResult, EvalSample, StrategyKind


def generate_sample_id(sample: EvalSample) -> str:
    """
    Stable identifier derived from the sample's input and ideal answer

    The same sample always receives the same id, within and across runs.
    """
    payload = json.dumps(
        {"input": [m.to_dict() for m in sample.input], "ideal": sample.ideal},
        sort_keys=True,
        ensure_ascii=False,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:16]


def ideal_text(sample: EvalSample) -> str:
    """Ideal answers joined for display in grading prompts"""
    return " OR ".join(sample.ideal_answers())


def render_template(template: str, *, input_text: str, ideal: str, completion: str) -> str:
    """
    Substitute {input}, {ideal} and {completion} in a prompt template

    Other braces are left untouched, so templates may contain JSON examples.
    """
    return (
        template
        .replace("{input}", input_text)
        .replace("{ideal}", ideal)
        .replace("{completion}", completion)
    )


def clamp_score(value: float) -> float:
    """Clamp score to the range 0.0-1.0"""
    return max(0.0, min(1.0, float(value)))


def coerce_enum(enum_cls: type[Enum], value, field_name: str):
    """
    Convert a string (or enum member) into enum_cls

    Raises:
        ConfigurationError: When the value is not a member
    """
    try:
        return enum_cls(value)
    except ValueError:
        allowed = [member.value for member in enum_cls]
        raise ConfigurationError(
            f"Invalid {field_name}: {value!r} (available: {allowed})",
            {"field": field_name, "value": value},
        )


class GradingStrategy(ABC):
    """
    Scores one sample's completion

    Implementations never mutate the sample, always fill reasoning and are
    deterministic given the same collaborator replies.
    """

    kind: StrategyKind

    @abstractmethod
    async def evaluate(self, sample: EvalSample, completion: CompletionResult) -> EvalResult:
        """Grade a completion against the sample's ideal answer(s)"""
        pass

    @abstractmethod
    def config_args(self) -> dict:
        """Arguments that affect grading (part of the cache key)"""
        pass

    def cache_config(self) -> dict:
        return {"type": self.kind.value, "args": self.config_args()}

    def _result(
        self,
        sample: EvalSample,
        completion: CompletionResult,
        *,
        score: float,
        passed: bool,
        reasoning: str,
        metadata: dict | None = None,
    ) -> EvalResult:
        return EvalResult(
            sample_id=generate_sample_id(sample),
            input=list(sample.input),
            ideal=sample.ideal,
            completion=completion,
            score=clamp_score(score),
            passed=passed,
            reasoning=reasoning,
            metadata={"strategy": self.kind.value, **(metadata or {})},
        )
