"""
Exact-match grading

Compares the completion text with each ideal answer using a fixed rule
(exact, includes, fuzzy or regex). Passes if any ideal answer matches.
"""

from __future__ import annotations

from llm_eval_core.domain.constants import DEFAULT_FUZZY_THRESHOLD
from llm_eval_core.domain.entities import EvalResult
from llm_eval_core.domain.errors import ConfigurationError
from llm_eval_core.domain.value_objects import CompletionResult, EvalSample, MatchType, StrategyKind
from llm_eval_core.scoring.base import GradingStrategy, coerce_enum
from llm_eval_core.scoring.text_scorers import (
    clean_text,
    match_exact,
    match_fuzzy,
    match_includes,
    match_regex,
)


class ExactMatchStrategy(GradingStrategy):
    """Rule-based text comparison (score 1.0 or 0.0)"""

    kind = StrategyKind.EXACT_MATCH

    def __init__(
        self,
        match_type: MatchType | str = MatchType.EXACT,
        case_sensitive: bool = True,
        fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD,
    ):
        self.match_type = coerce_enum(MatchType, match_type, "match_type")
        self.case_sensitive = case_sensitive
        if not 0.0 <= fuzzy_threshold <= 1.0:
            raise ConfigurationError(f"fuzzy_threshold must be between 0 and 1, got {fuzzy_threshold}")
        self.fuzzy_threshold = fuzzy_threshold

    def config_args(self) -> dict:
        return {
            "match_type": self.match_type.value,
            "case_sensitive": self.case_sensitive,
            "fuzzy_threshold": self.fuzzy_threshold,
        }

    def _matches(self, ideal: str, actual: str) -> bool:
        if self.match_type == MatchType.REGEX:
            # The ideal answer is the pattern itself; only the completion is cleaned
            return match_regex(ideal, clean_text(actual), case_sensitive=self.case_sensitive)

        ideal_clean = clean_text(ideal, case_sensitive=self.case_sensitive)
        actual_clean = clean_text(actual, case_sensitive=self.case_sensitive)
        if self.match_type == MatchType.EXACT:
            return match_exact(ideal_clean, actual_clean)
        if self.match_type == MatchType.INCLUDES:
            return match_includes(ideal_clean, actual_clean)
        return match_fuzzy(ideal_clean, actual_clean, self.fuzzy_threshold)

    async def evaluate(self, sample: EvalSample, completion: CompletionResult) -> EvalResult:
        ideals = sample.ideal_answers()
        matched = next((ideal for ideal in ideals if self._matches(ideal, completion.content)), None)

        if matched is not None:
            reasoning = f"Matched ideal answer {matched!r} ({self.match_type.value})"
        else:
            reasoning = f"No ideal answer matched ({self.match_type.value}, {len(ideals)} candidates)"

        return self._result(
            sample,
            completion,
            score=1.0 if matched is not None else 0.0,
            passed=matched is not None,
            reasoning=reasoning,
            metadata={
                "match_type": self.match_type.value,
                "case_sensitive": self.case_sensitive,
                "matched_ideal": matched,
            },
        )
