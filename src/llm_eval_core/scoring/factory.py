"""
Grading strategy factory

Creates the grading strategy for a strategy kind and its arguments.
"""

from __future__ import annotations

from llm_eval_core.domain.errors import ConfigurationError
from llm_eval_core.domain.value_objects import StrategyKind
from llm_eval_core.infrastructure.embeddings import EmbeddingsProvider, SemanticSimilarityService
from llm_eval_core.infrastructure.model_clients.base import ModelClient
from llm_eval_core.scoring.base import GradingStrategy, coerce_enum
from llm_eval_core.scoring.choice_based import ChoiceBasedStrategy
from llm_eval_core.scoring.exact_match import ExactMatchStrategy
from llm_eval_core.scoring.model_graded import ModelGradedStrategy
from llm_eval_core.scoring.semantic_similarity import SemanticSimilarityStrategy


def create_strategy(
    kind: StrategyKind | str,
    args: dict | None = None,
    *,
    grader: ModelClient | None = None,
    embeddings: SemanticSimilarityService | EmbeddingsProvider | None = None,
) -> GradingStrategy:
    """
    Create the grading strategy for a kind

    Args:
        kind: Strategy kind (exact_match, model_graded, choice_based, semantic_similarity)
        args: Strategy arguments (constructor keyword arguments)
        grader: Grading model client (model_graded, choice_based)
        embeddings: Embeddings provider or service (semantic_similarity)

    Returns:
        GradingStrategy

    Raises:
        ConfigurationError: When the kind is unknown, arguments are invalid
            or a required collaborator is missing
    """
    kind = coerce_enum(StrategyKind, kind, "strategy kind")
    args = dict(args or {})

    try:
        if kind == StrategyKind.EXACT_MATCH:
            return ExactMatchStrategy(**args)
        elif kind == StrategyKind.MODEL_GRADED:
            if grader is None:
                raise ConfigurationError("model_graded strategy requires a grader client")
            return ModelGradedStrategy(grader, **args)
        elif kind == StrategyKind.CHOICE_BASED:
            if grader is None:
                raise ConfigurationError("choice_based strategy requires a grader client")
            return ChoiceBasedStrategy(grader, **args)
        elif kind == StrategyKind.SEMANTIC_SIMILARITY:
            if embeddings is None:
                raise ConfigurationError("semantic_similarity strategy requires an embeddings provider")
            return SemanticSimilarityStrategy(embeddings, **args)
    except TypeError as e:
        raise ConfigurationError(f"Invalid arguments for {kind.value} strategy: {e}", {"args": args}) from e

    raise ConfigurationError(f"Unsupported strategy kind: {kind.value}")
