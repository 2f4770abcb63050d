"""Tests for SemanticSimilarityStrategy"""

import math

import pytest

from llm_eval_core.domain.errors import ConfigurationError, GradingError
from llm_eval_core.infrastructure.embeddings import SemanticSimilarityService
from llm_eval_core.scoring.semantic_similarity import SemanticSimilarityStrategy

IDEALS = ["Paris", "The capital is Paris"]


def _unit(cos: float) -> list[float]:
    """Unit vector whose cosine with [1, 0] is cos"""
    return [cos, math.sqrt(1 - cos ** 2)]


@pytest.fixture
def vectors():
    return {
        "It is Paris.": [1.0, 0.0],
        "Paris": _unit(0.75),
        "The capital is Paris": _unit(0.83),
    }


class TestSemanticSimilarityStrategy:
    @pytest.mark.asyncio
    async def test_best_mode(self, make_embeddings, make_sample, completion, vectors):
        strategy = SemanticSimilarityStrategy(make_embeddings(vectors), threshold=0.8, match_mode="best")

        result = await strategy.evaluate(make_sample(ideal=IDEALS), completion("It is Paris."))

        assert result.score == pytest.approx(0.83)
        assert result.passed is True
        assert result.metadata["best_match"] == "The capital is Paris"
        assert result.metadata["similarities"] == pytest.approx([0.75, 0.83])
        assert result.reasoning == "Best semantic match: The capital is Paris (similarity: 0.8300)"

    @pytest.mark.asyncio
    async def test_best_mode_below_threshold(self, make_embeddings, make_sample, completion, vectors):
        strategy = SemanticSimilarityStrategy(make_embeddings(vectors), threshold=0.9)
        result = await strategy.evaluate(make_sample(ideal=IDEALS), completion("It is Paris."))
        assert result.score == pytest.approx(0.83)
        assert result.passed is False

    @pytest.mark.asyncio
    async def test_threshold_mode(self, make_embeddings, make_sample, completion, vectors):
        strategy = SemanticSimilarityStrategy(make_embeddings(vectors), threshold=0.8, match_mode="threshold")
        result = await strategy.evaluate(make_sample(ideal=IDEALS), completion("It is Paris."))
        assert result.passed is True
        assert result.score == pytest.approx(0.83)
        assert result.reasoning.startswith("1 of 2 ideal answers met threshold")

    @pytest.mark.asyncio
    async def test_all_mode(self, make_embeddings, make_sample, completion, vectors):
        strategy = SemanticSimilarityStrategy(make_embeddings(vectors), threshold=0.7, match_mode="all")
        result = await strategy.evaluate(make_sample(ideal=IDEALS), completion("It is Paris."))
        assert result.score == pytest.approx(0.79)
        assert result.passed is True

        strict = SemanticSimilarityStrategy(make_embeddings(vectors), threshold=0.8, match_mode="all")
        assert (await strict.evaluate(make_sample(ideal=IDEALS), completion("It is Paris."))).passed is False

    @pytest.mark.asyncio
    async def test_embedding_failure_fails_closed(self, make_embeddings, make_sample, completion):
        provider = make_embeddings({}, error=GradingError("embedding service down"))
        strategy = SemanticSimilarityStrategy(provider)

        result = await strategy.evaluate(make_sample(ideal=IDEALS), completion("It is Paris."))

        assert result.score == 0.0
        assert result.passed is False
        assert result.reasoning == "Grading failed: embedding service down"

    @pytest.mark.asyncio
    async def test_shared_service_memoizes(self, make_embeddings, make_sample, completion, vectors):
        provider = make_embeddings(vectors)
        strategy = SemanticSimilarityStrategy(SemanticSimilarityService(provider))

        await strategy.evaluate(make_sample(ideal=IDEALS), completion("It is Paris."))
        await strategy.evaluate(make_sample(ideal=IDEALS), completion("It is Paris."))

        assert len(provider.batches) == 1

    def test_config_args(self, make_embeddings):
        strategy = SemanticSimilarityStrategy(make_embeddings({}, model="emb-1"), threshold=0.7)
        assert strategy.config_args() == {"threshold": 0.7, "match_mode": "best", "embedding_model": "emb-1"}

    def test_missing_embeddings(self):
        with pytest.raises(ConfigurationError):
            SemanticSimilarityStrategy(None)

    def test_invalid_mode(self, make_embeddings):
        with pytest.raises(ConfigurationError):
            SemanticSimilarityStrategy(make_embeddings({}), match_mode="median")
