"""
Health Check

Pre-run connectivity probes for the evaluated models, the grading model and
the embeddings provider. Probes never raise; failures are reported in the
returned values.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from llm_eval_core.domain.entities import HealthCheckResult
from llm_eval_core.domain.value_objects import ChatMessage, CompletionOptions
from llm_eval_core.infrastructure.embeddings import EmbeddingsProvider
from llm_eval_core.infrastructure.model_clients.base import ModelClient, elapsed_ms

logger = logging.getLogger(__name__)


HEALTH_CHECK_PROMPT = "Respond with the single word OK."

# Probe replies only need a handful of tokens
_PROBE_OPTIONS = CompletionOptions(temperature=0.0, max_tokens=16)

_GRADER_TROUBLESHOOTING = (
    "Troubleshooting:\n"
    "- Gemini: run `gcloud auth application-default login` and set GCP_PROJECT_ID\n"
    "- LMStudio: start the local server (LMSTUDIO_BASE_URL)\n"
    "- Claude: set ANTHROPIC_API_KEY\n"
    "- OpenAI: set OPENAI_API_KEY"
)


def _default_client_factory() -> Callable[[str], ModelClient]:
    from llm_eval_core.infrastructure.model_clients.factory import create_client
    return create_client


async def health_check_model(
    model_name: str,
    create_client_fn: Callable[[str], ModelClient],
) -> HealthCheckResult:
    """
    Send one short prompt to a model

    Args:
        model_name: Model to probe
        create_client_fn: Builds the client for model_name

    Returns:
        HealthCheckResult (latency only on success)
    """
    try:
        client = create_client_fn(model_name)
        start_time = time.time()
        reply = await client.complete([ChatMessage(role="user", content=HEALTH_CHECK_PROMPT)], _PROBE_OPTIONS)
        latency_ms = elapsed_ms(start_time)
        if not reply.content:
            raise ValueError(f"{model_name} returned an empty response")
    except Exception as e:
        return HealthCheckResult(model_name=model_name, success=False, latency_ms=None, error=str(e))
    return HealthCheckResult(model_name=model_name, success=True, latency_ms=latency_ms, error=None)


async def health_check_all_models(
    models: list[str],
    create_client_fn: Callable[[str], ModelClient] | None = None,
) -> tuple[list[str], list[HealthCheckResult]]:
    """
    Probe each model in turn

    Args:
        models: Models to probe
        create_client_fn: Builds a client per model (create_client by default)

    Returns:
        (models that responded, every probe result in input order)
    """
    create_client_fn = create_client_fn or _default_client_factory()

    results: list[HealthCheckResult] = []
    for model_name in models:
        result = await health_check_model(model_name, create_client_fn)
        results.append(result)
        if result.success:
            logger.info("Model %s reachable (%dms)", model_name, result.latency_ms)
        else:
            logger.warning("Model %s unreachable: %s", model_name, (result.error or "no error message")[:100])

    reachable = [r.model_name for r in results if r.success]
    return reachable, results


async def run_grader_health_check(
    grader_model: str,
    create_client_fn: Callable[[str], ModelClient] | None = None,
) -> tuple[bool, str | None]:
    """
    Probe the grading model used by model-graded and choice-based strategies

    Returns:
        (True, None) when the grader answers, otherwise (False, message with
        troubleshooting hints)
    """
    create_client_fn = create_client_fn or _default_client_factory()

    result = await health_check_model(grader_model, create_client_fn)
    if not result.success:
        return False, (
            f"Grading model {grader_model} health check failed: {(result.error or '')[:200]}\n\n"
            f"{_GRADER_TROUBLESHOOTING}"
        )
    return True, None


async def health_check_embeddings(provider: EmbeddingsProvider) -> HealthCheckResult:
    """Embed one short text with the provider used by semantic similarity grading"""
    start_time = time.time()
    try:
        vector = await provider.embed(HEALTH_CHECK_PROMPT)
        if not vector:
            raise ValueError("empty embedding returned")
    except Exception as e:
        return HealthCheckResult(model_name=provider.get_model(), success=False, latency_ms=None, error=str(e))
    return HealthCheckResult(
        model_name=provider.get_model(), success=True, latency_ms=elapsed_ms(start_time), error=None,
    )
