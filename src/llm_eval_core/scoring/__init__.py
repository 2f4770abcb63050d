"""
Scoring sub-package

Provides the grading strategies and the text matching functions they use.
"""

from llm_eval_core.scoring.base import GradingStrategy, generate_sample_id, render_template
from llm_eval_core.scoring.choice_based import ChoiceBasedStrategy
from llm_eval_core.scoring.exact_match import ExactMatchStrategy
from llm_eval_core.scoring.factory import create_strategy
from llm_eval_core.scoring.model_graded import ModelGradedStrategy, extract_verdict
from llm_eval_core.scoring.semantic_similarity import SemanticSimilarityStrategy
from llm_eval_core.scoring.text_scorers import (
    clean_text,
    levenshtein_distance,
    levenshtein_similarity,
    match_exact,
    match_fuzzy,
    match_includes,
    match_regex,
)

__all__ = [
    # base
    "GradingStrategy",
    "generate_sample_id",
    "render_template",
    # strategies
    "ChoiceBasedStrategy",
    "ExactMatchStrategy",
    "ModelGradedStrategy",
    "SemanticSimilarityStrategy",
    "extract_verdict",
    # factory
    "create_strategy",
    # text scorers
    "clean_text",
    "levenshtein_distance",
    "levenshtein_similarity",
    "match_exact",
    "match_fuzzy",
    "match_includes",
    "match_regex",
]
