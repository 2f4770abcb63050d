"""
Text matching functions

Implements the comparison rules used by exact-match grading: equality,
substring, fuzzy (normalized edit distance) and regular expression.
"""

from __future__ import annotations

import logging
import re
import unicodedata

logger = logging.getLogger(__name__)


def clean_text(text: str, *, case_sensitive: bool = True) -> str:
    """
    Normalize text before comparison

    - Unicode normalization (NFKC)
    - Collapse consecutive whitespace to a single space
    - Strip leading and trailing whitespace
    - Convert to lowercase (only when not case-sensitive)

    Args:
        text: Text to normalize
        case_sensitive: Keep the original case

    Returns:
        Normalized text
    """
    text = unicodedata.normalize("NFKC", text)
    text = re.sub(r"\s+", " ", text)
    text = text.strip()
    if not case_sensitive:
        text = text.casefold()
    return text


def levenshtein_distance(a: str, b: str) -> int:
    """Edit distance (insertions, deletions, substitutions)"""
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (char_a != char_b),
            ))
        previous = current
    return previous[-1]


def levenshtein_similarity(a: str, b: str) -> float:
    """
    Similarity derived from edit distance

    Returns:
        1 - distance / max(len(a), len(b)); 1.0 for two empty strings
    """
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - levenshtein_distance(a, b) / longest


def match_exact(ideal: str, actual: str) -> bool:
    return ideal == actual


def match_includes(ideal: str, actual: str) -> bool:
    return ideal in actual


def match_fuzzy(ideal: str, actual: str, threshold: float) -> bool:
    return levenshtein_similarity(ideal, actual) >= threshold


def match_regex(pattern: str, actual: str, *, case_sensitive: bool = True) -> bool:
    """
    Search actual for pattern

    An invalid pattern is logged and treated as no match.
    """
    flags = 0 if case_sensitive else re.IGNORECASE
    try:
        compiled = re.compile(pattern, flags)
    except re.error as e:
        logger.warning("Invalid regex pattern %r: %s", pattern, e)
        return False
    return compiled.search(actual) is not None
