"""
Model client package

Provides a unified async interface to each LLM provider.
"""

from llm_eval_core.infrastructure.model_clients.base import ModelClient
from llm_eval_core.infrastructure.model_clients.factory import create_client, detect_provider

__all__ = ["ModelClient", "create_client", "detect_provider"]
