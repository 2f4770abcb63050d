"""
Model client factory

Creates the appropriate client instance based on the model name.
"""

from __future__ import annotations

from llm_eval_core.harness_config import HarnessConfig, load_config
from llm_eval_core.infrastructure.model_clients.base import ModelClient
from llm_eval_core.infrastructure.model_clients.claude import ClaudeClient
from llm_eval_core.infrastructure.model_clients.openai_client import OpenAIClient
from llm_eval_core.infrastructure.model_clients.vertex_ai import VertexAIClient


def detect_provider(model_name: str) -> str:
    """
    Determine the provider from the model name

    Args:
        model_name: Model name

    Returns:
        Provider name (lmstudio, anthropic, google or openai)
    """
    if model_name.startswith("lmstudio/"):
        return "lmstudio"
    if model_name.startswith("claude"):
        return "anthropic"
    if model_name.startswith("gemini"):
        return "google"
    return "openai"


def create_client(model_name: str, config: HarnessConfig | None = None) -> ModelClient:
    """
    Create the appropriate client based on the model name

    Args:
        model_name: Model name
        config: HarnessConfig (loads from env if not provided)

    Returns:
        ModelClient: The appropriate client instance
    """
    if config is None:
        config = load_config()

    timeout = config.run.timeout_seconds
    provider = detect_provider(model_name)

    if provider == "lmstudio":
        return OpenAIClient(
            model_name,
            base_url=config.lmstudio.base_url,
            api_key=config.lmstudio.api_key,
            timeout_seconds=timeout,
        )
    elif provider == "anthropic":
        return ClaudeClient(model_name, timeout_seconds=timeout)
    elif provider == "google":
        return VertexAIClient(model_name, timeout_seconds=timeout)
    else:
        return OpenAIClient(model_name, timeout_seconds=timeout)
