"""
Domain Constants

Centrally manages constants shared across the evaluation engine.
"""

# Model pricing (USD / 1K tokens), keyed by (provider, model)
MODEL_PRICING = {
    ("openai", "gpt-4"): {"input": 0.03, "output": 0.06},
    ("openai", "gpt-4o"): {"input": 0.0025, "output": 0.01},
    ("openai", "gpt-4o-mini"): {"input": 0.00015, "output": 0.0006},
    ("openai", "gpt-3.5-turbo"): {"input": 0.001, "output": 0.002},
    ("anthropic", "claude-haiku-4-5-20251001"): {"input": 0.0008, "output": 0.004},
    ("anthropic", "claude-sonnet-4-5-20250929"): {"input": 0.003, "output": 0.015},
    ("anthropic", "claude-opus-4-5-20251101"): {"input": 0.015, "output": 0.075},
    ("google", "gemini-2.5-flash"): {"input": 0.000075, "output": 0.0003},
    ("google", "gemini-2.5-pro"): {"input": 0.00125, "output": 0.005},
}

# Default pricing for local models (LMStudio, etc.)
_LOCAL_MODEL_PRICING = {"input": 0.0, "output": 0.0}

# Placeholder content used for dry-run completions
DRY_RUN_COMPLETION = "[DRY RUN - NO COMPLETION]"

# Verdict vocabulary for model-graded evaluation (token -> score)
DEFAULT_VERDICT_SCORES = {
    "CORRECT": 1.0,
    "INCORRECT": 0.0,
    "PASS": 1.0,
    "FAIL": 0.0,
}

# Cache defaults
DEFAULT_CACHE_TTL_SECONDS = 3600
DEFAULT_MAX_MEMORY_ITEMS = 1000
CACHE_KEY_PREFIX = "eval"

# Grading defaults
DEFAULT_PASS_THRESHOLD = 0.5
DEFAULT_SIMILARITY_THRESHOLD = 0.8
DEFAULT_FUZZY_THRESHOLD = 0.8
