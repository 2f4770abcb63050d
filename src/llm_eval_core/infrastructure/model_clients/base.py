"""
Model client base class

Defines the abstract base class inherited by all model clients. Retry and
backoff are left to the provider SDKs; a failed call surfaces as a single
ModelInvocationError.
"""

import time
from abc import ABC, abstractmethod

from llm_eval_core.domain.value_objects import ChatMessage, CompletionOptions, CompletionResult


class ModelClient(ABC):
    """Abstract base class for model clients"""

    model_name: str

    @abstractmethod
    async def complete(
        self,
        messages: list[ChatMessage],
        options: CompletionOptions | None = None,
    ) -> CompletionResult:
        """Send chat messages and retrieve the completion"""
        pass

    def get_model(self) -> str:
        """Identifier of the model this client calls"""
        return self.model_name


def split_system_messages(messages: list[ChatMessage]) -> tuple[str | None, list[ChatMessage]]:
    """
    Separate system messages from the conversation

    Some providers take the system prompt as a dedicated parameter.

    Args:
        messages: Chat messages in order

    Returns:
        (joined system prompt or None, remaining messages)
    """
    system_parts = [m.content for m in messages if m.role == "system"]
    rest = [m for m in messages if m.role != "system"]
    return ("\n".join(system_parts) if system_parts else None), rest


def elapsed_ms(start_time: float) -> int:
    """Milliseconds elapsed since start_time (time.time())"""
    return int((time.time() - start_time) * 1000)
