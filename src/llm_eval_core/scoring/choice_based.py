"""
Choice-based scoring

Implements ChoiceBasedStrategy: the grader picks one of an enumerated set of
choices, and each choice maps to a (possibly non-binary) score.
"""

from __future__ import annotations

import logging
import re

from llm_eval_core.domain.constants import DEFAULT_PASS_THRESHOLD
from llm_eval_core.domain.entities import EvalResult
from llm_eval_core.domain.errors import ConfigurationError
from llm_eval_core.domain.value_objects import (
    ChatMessage,
    CompletionOptions,
    CompletionResult,
    EvalSample,
    StrategyKind,
)
from llm_eval_core.infrastructure.model_clients.base import ModelClient
from llm_eval_core.scoring.base import GradingStrategy, ideal_text, render_template

logger = logging.getLogger(__name__)


class ChoiceBasedStrategy(GradingStrategy):
    """
    Grading restricted to declared choices

    The reply's last non-empty line is searched first, then the whole reply;
    within a region the earliest choice wins. A reply naming no declared
    choice fails closed to the lowest-scored choice.
    """

    kind = StrategyKind.CHOICE_BASED

    def __init__(
        self,
        grader: ModelClient,
        prompt: str,
        choice_strings: list[str],
        choice_scores: dict[str, float],
        pass_threshold: float = DEFAULT_PASS_THRESHOLD,
        max_tokens: int = 1000,
    ):
        if grader is None:
            raise ConfigurationError("choice_based grading requires a grader client")
        if not prompt:
            raise ConfigurationError("choice_based grading requires a prompt")
        if not choice_strings:
            raise ConfigurationError("choice_strings must not be empty")
        missing = [c for c in choice_strings if c not in choice_scores]
        if missing:
            raise ConfigurationError(
                f"choice_scores is missing scores for: {missing}",
                {"missing": missing},
            )
        self._grader = grader
        self.prompt = prompt
        self.choice_strings = list(choice_strings)
        self.choice_scores = {c: float(choice_scores[c]) for c in choice_strings}
        self.pass_threshold = pass_threshold
        self.max_tokens = max_tokens
        self._patterns = {
            c: re.compile(rf"(?<!\w){re.escape(c)}(?!\w)", re.IGNORECASE) for c in self.choice_strings
        }

    def config_args(self) -> dict:
        return {
            "prompt": self.prompt,
            "choice_strings": self.choice_strings,
            "choice_scores": self.choice_scores,
            "pass_threshold": self.pass_threshold,
            "grader_model": self._grader.get_model(),
        }

    def _system_prompt(self) -> str:
        return (
            "You are evaluating responses. You must respond with exactly one of these choices: "
            f"{', '.join(self.choice_strings)}. Provide your reasoning first, then state your choice "
            "clearly on the last line."
        )

    def find_choice(self, reply: str) -> str | None:
        """
        Choice named by the grader reply

        Returns:
            The declared choice, or None when no choice is found
        """
        lines = [line for line in reply.splitlines() if line.strip()]
        regions = ([lines[-1]] if lines else []) + [reply]
        for region in regions:
            found: tuple[int, int, str] | None = None
            for choice, pattern in self._patterns.items():
                match = pattern.search(region)
                if match is None:
                    continue
                # Earliest position wins; the longer choice wins a tie
                candidate = (match.start(), -len(choice), choice)
                if found is None or candidate < found:
                    found = candidate
            if found is not None:
                return found[2]
        return None

    def lowest_choice(self) -> str:
        return min(self.choice_strings, key=lambda c: self.choice_scores[c])

    async def evaluate(self, sample: EvalSample, completion: CompletionResult) -> EvalResult:
        metadata = {"grading_model": self._grader.get_model()}
        messages = [
            ChatMessage(role="system", content=self._system_prompt()),
            ChatMessage(
                role="user",
                content=render_template(
                    self.prompt,
                    input_text=sample.user_text(),
                    ideal=ideal_text(sample),
                    completion=completion.content,
                ),
            ),
        ]

        try:
            reply = await self._grader.complete(
                messages,
                CompletionOptions(temperature=0.0, max_tokens=self.max_tokens),
            )
        except Exception as e:
            logger.warning("Choice-based grading failed: %s", e)
            return self._result(
                sample, completion,
                score=0.0,
                passed=False,
                reasoning=f"Grading failed: {e}",
                metadata={**metadata, "grading_error": True},
            )

        choice = self.find_choice(reply.content)
        if choice is None:
            fallback = self.lowest_choice()
            logger.warning("No valid choice found in grader reply: %s", reply.content[:100])
            return self._result(
                sample, completion,
                score=self.choice_scores[fallback],
                passed=False,
                reasoning=(
                    f"Ambiguous grader reply: none of {self.choice_strings} found, "
                    f"defaulted to lowest-scored choice {fallback!r}. Reply: {reply.content.strip()[:500]}"
                ),
                metadata={**metadata, "choice": fallback, "ambiguous": True},
            )

        score = self.choice_scores[choice]
        return self._result(
            sample, completion,
            score=score,
            passed=score >= self.pass_threshold,
            reasoning=reply.content.strip() or f"Choice: {choice}",
            metadata={**metadata, "choice": choice, "ambiguous": False},
        )
