"""
Semantic similarity scoring

Embeds the completion and every ideal answer and compares them with cosine
similarity.
"""

from __future__ import annotations

import logging

import numpy as np

from llm_eval_core.domain.constants import DEFAULT_SIMILARITY_THRESHOLD
from llm_eval_core.domain.entities import EvalResult
from llm_eval_core.domain.errors import ConfigurationError
from llm_eval_core.domain.value_objects import (
    CompletionResult,
    EvalSample,
    SimilarityMatchMode,
    StrategyKind,
)
from llm_eval_core.infrastructure.embeddings import EmbeddingsProvider, SemanticSimilarityService
from llm_eval_core.scoring.base import GradingStrategy, coerce_enum

logger = logging.getLogger(__name__)


class SemanticSimilarityStrategy(GradingStrategy):
    """
    Embedding-based grading

    Match modes:
        best: score = max similarity, passes if max >= threshold
        threshold: passes if any similarity >= threshold, score = max
        all: passes if every similarity >= threshold, score = mean
    """

    kind = StrategyKind.SEMANTIC_SIMILARITY

    def __init__(
        self,
        embeddings: SemanticSimilarityService | EmbeddingsProvider,
        threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
        match_mode: SimilarityMatchMode | str = SimilarityMatchMode.BEST,
    ):
        if embeddings is None:
            raise ConfigurationError("semantic_similarity grading requires an embeddings provider")
        if isinstance(embeddings, EmbeddingsProvider):
            embeddings = SemanticSimilarityService(embeddings)
        if not -1.0 <= threshold <= 1.0:
            raise ConfigurationError(f"threshold must be between -1 and 1, got {threshold}")
        self.service = embeddings
        self.threshold = threshold
        self.match_mode = coerce_enum(SimilarityMatchMode, match_mode, "match_mode")

    def config_args(self) -> dict:
        return {
            "threshold": self.threshold,
            "match_mode": self.match_mode.value,
            "embedding_model": self.service.provider.get_model(),
        }

    async def evaluate(self, sample: EvalSample, completion: CompletionResult) -> EvalResult:
        ideals = sample.ideal_answers()
        metadata = {
            "match_mode": self.match_mode.value,
            "threshold": self.threshold,
            "embedding_model": self.service.provider.get_model(),
        }

        try:
            similarities = await self.service.similarities(completion.content, ideals)
        except Exception as e:
            logger.warning("Semantic similarity failed: %s", e)
            return self._result(
                sample, completion,
                score=0.0,
                passed=False,
                reasoning=f"Grading failed: {e}",
                metadata={**metadata, "grading_error": True},
            )

        if not similarities:
            return self._result(
                sample, completion,
                score=0.0,
                passed=False,
                reasoning="No ideal answers to compare against",
                metadata={**metadata, "similarities": []},
            )

        best_index = int(np.argmax(similarities))
        best = similarities[best_index]
        meeting = sum(1 for s in similarities if s >= self.threshold)

        if self.match_mode == SimilarityMatchMode.BEST:
            score = best
            passed = best >= self.threshold
            reasoning = f"Best semantic match: {ideals[best_index]} (similarity: {best:.4f})"
        elif self.match_mode == SimilarityMatchMode.THRESHOLD:
            score = best
            passed = meeting > 0
            reasoning = (
                f"{meeting} of {len(ideals)} ideal answers met threshold {self.threshold}; "
                f"best match: {ideals[best_index]} (similarity: {best:.4f})"
            )
        else:
            score = float(np.mean(similarities))
            passed = meeting == len(similarities)
            reasoning = (
                f"Mean similarity {score:.4f}; "
                f"{meeting} of {len(ideals)} ideal answers met threshold {self.threshold}"
            )

        return self._result(
            sample, completion,
            score=score,
            passed=passed,
            reasoning=reasoning,
            metadata={**metadata, "similarities": [float(s) for s in similarities], "best_match": ideals[best_index]},
        )
