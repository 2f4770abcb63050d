"""
Model-graded scoring

Implements ModelGradedStrategy, which asks a separate model (grader) for a
verdict on the completion and maps the verdict token to a score.
"""

from __future__ import annotations

import logging
import re

from llm_eval_core.domain.constants import DEFAULT_PASS_THRESHOLD, DEFAULT_VERDICT_SCORES
from llm_eval_core.domain.entities import EvalResult
from llm_eval_core.domain.errors import ConfigurationError, UnparseableVerdictError
from llm_eval_core.domain.value_objects import (
    ChatMessage,
    CompletionOptions,
    CompletionResult,
    EvalSample,
    ModelGradedMode,
    StrategyKind,
)
from llm_eval_core.infrastructure.model_clients.base import ModelClient
from llm_eval_core.scoring.base import GradingStrategy, coerce_enum, ideal_text, render_template

logger = logging.getLogger(__name__)

_VERDICT_LABEL_RE = re.compile(r"VERDICT\s*:", re.IGNORECASE)


def verdict_region(reply: str) -> str:
    """Text after the last "VERDICT:" label, or the whole reply when there is none"""
    labels = list(_VERDICT_LABEL_RE.finditer(reply))
    if labels:
        return reply[labels[-1].end():]
    return reply


def extract_verdict(reply: str, vocabulary: list[str]) -> str:
    """
    Find the first verdict token in the grader reply

    Tokens are matched as whole words, case-insensitively.

    Args:
        reply: Grader reply
        vocabulary: Recognized verdict tokens

    Returns:
        The recognized token, spelled as in vocabulary

    Raises:
        UnparseableVerdictError: When no token is found
    """
    by_folded = {token.casefold(): token for token in vocabulary}
    alternatives = "|".join(re.escape(token) for token in sorted(vocabulary, key=len, reverse=True))
    pattern = re.compile(rf"(?<!\w)(?:{alternatives})(?!\w)", re.IGNORECASE)

    match = pattern.search(verdict_region(reply))
    if match is None:
        raise UnparseableVerdictError(
            f"No verdict token found in grader reply: {reply[:200]}",
            {"vocabulary": list(vocabulary)},
        )
    return by_folded[match.group(0).casefold()]


class ModelGradedStrategy(GradingStrategy):
    """
    Grading that uses an LLM as a grader

    Passes the question, expected answer and model response to the grader
    and reads a verdict token from its reply. A reply without a recognized
    verdict fails closed.
    """

    kind = StrategyKind.MODEL_GRADED

    def __init__(
        self,
        grader: ModelClient,
        mode: ModelGradedMode | str = ModelGradedMode.CLASSIFY,
        prompt_template: str | None = None,
        verdict_scores: dict[str, float] | None = None,
        pass_threshold: float = DEFAULT_PASS_THRESHOLD,
        max_tokens: int = 1000,
    ):
        """
        Args:
            grader: Client for the grading model
            mode: classify (direct verdict) or cot_classify (reasoning then verdict)
            prompt_template: User prompt with {input}, {ideal} and {completion}
                placeholders (a built-in prompt is used when omitted)
            verdict_scores: Verdict token -> score (defaults to CORRECT/INCORRECT/PASS/FAIL)
            pass_threshold: Minimum score to pass
            max_tokens: Maximum tokens for the grader reply
        """
        if grader is None:
            raise ConfigurationError("model_graded grading requires a grader client")
        self._grader = grader
        self.mode = coerce_enum(ModelGradedMode, mode, "mode")
        self.prompt_template = prompt_template
        self.verdict_scores = dict(verdict_scores or DEFAULT_VERDICT_SCORES)
        if not self.verdict_scores:
            raise ConfigurationError("verdict_scores must not be empty")
        self.pass_threshold = pass_threshold
        self.max_tokens = max_tokens

    def config_args(self) -> dict:
        return {
            "mode": self.mode.value,
            "prompt_template": self.prompt_template,
            "verdict_scores": self.verdict_scores,
            "pass_threshold": self.pass_threshold,
            "grader_model": self._grader.get_model(),
        }

    def _build_system_prompt(self) -> str:
        tokens = ", ".join(self.verdict_scores)
        parts: list[str] = [
            "You are an expert evaluator grading responses from a language model.",
            "Compare the model's response to the expected answer and judge whether it is correct.",
            "Consider correctness, completeness and accuracy. Do NOT require an exact string match.",
            "",
            f"Your verdict MUST be exactly one of: {tokens}",
            "",
        ]
        if self.mode == ModelGradedMode.COT_CLASSIFY:
            parts.append("Think step by step and give your reasoning before the verdict.")
            parts.append("")
            parts.append("Format your response as:")
            parts.append("REASONING: [Your detailed analysis]")
            parts.append("VERDICT: [One verdict token]")
        else:
            parts.append("Format your response as:")
            parts.append("VERDICT: [One verdict token]")
        return "\n".join(parts)

    def _build_user_prompt(self, sample: EvalSample, completion: CompletionResult) -> str:
        if self.prompt_template is not None:
            return render_template(
                self.prompt_template,
                input_text=sample.user_text(),
                ideal=ideal_text(sample),
                completion=completion.content,
            )

        context = "\n".join(m.content for m in sample.input if m.role == "system")
        parts: list[str] = ["Please evaluate this language model response:", ""]
        if context:
            parts.append(f"CONTEXT:\n{context}")
            parts.append("")
        parts.append(f"QUESTION:\n{sample.user_text()}")
        parts.append("")
        parts.append(f"EXPECTED ANSWER:\n{ideal_text(sample)}")
        parts.append("")
        parts.append(f"MODEL'S RESPONSE:\n{completion.content}")
        parts.append("")
        parts.append("Please evaluate how well the model's response matches the expected answer.")
        return "\n".join(parts)

    @staticmethod
    def _reasoning_text(reply: str) -> str:
        """Reasoning part of a cot_classify reply (before the last VERDICT label)"""
        labels = list(_VERDICT_LABEL_RE.finditer(reply))
        text = reply[:labels[-1].start()] if labels else reply
        text = re.sub(r"^\s*REASONING\s*:\s*", "", text, flags=re.IGNORECASE)
        return text.strip()

    async def evaluate(self, sample: EvalSample, completion: CompletionResult) -> EvalResult:
        metadata = {"mode": self.mode.value, "grading_model": self._grader.get_model()}
        messages = [
            ChatMessage(role="system", content=self._build_system_prompt()),
            ChatMessage(role="user", content=self._build_user_prompt(sample, completion)),
        ]

        try:
            reply = await self._grader.complete(
                messages,
                CompletionOptions(temperature=0.0, max_tokens=self.max_tokens),
            )
        except Exception as e:
            logger.warning("Grading failed: %s", e)
            return self._result(
                sample, completion,
                score=0.0,
                passed=False,
                reasoning=f"Grading failed: {e}",
                metadata={**metadata, "grading_error": True},
            )

        try:
            verdict = extract_verdict(reply.content, list(self.verdict_scores))
        except UnparseableVerdictError as e:
            logger.warning("%s", e.message)
            return self._result(
                sample, completion,
                score=0.0,
                passed=False,
                reasoning=f"Unparseable verdict: {reply.content.strip()[:500]}",
                metadata={**metadata, "verdict": None, "unparseable_verdict": True},
            )

        score = self.verdict_scores[verdict]
        if self.mode == ModelGradedMode.COT_CLASSIFY:
            reasoning = self._reasoning_text(reply.content) or f"Verdict: {verdict}"
        else:
            reasoning = f"Verdict: {verdict}"

        return self._result(
            sample, completion,
            score=score,
            passed=score >= self.pass_threshold,
            reasoning=reasoning,
            metadata={**metadata, "verdict": verdict},
        )
