"""
Anthropic Claude model client
"""

import os
import time

from anthropic import AsyncAnthropic, APIError

from llm_eval_core.domain.errors import ModelInvocationError
from llm_eval_core.domain.value_objects import (
    ChatMessage,
    CompletionOptions,
    CompletionResult,
    TokenCounts,
)
from llm_eval_core.infrastructure.model_clients.base import ModelClient, elapsed_ms, split_system_messages


class ClaudeClient(ModelClient):
    """Claude client using the Anthropic API"""

    def __init__(
        self,
        model_name: str,
        api_key: str | None = None,
        timeout_seconds: int = 120,
        max_tokens: int = 1024,
    ):
        """
        Args:
            model_name: Model name (e.g. claude-sonnet-4-5-20250929)
            api_key: Anthropic API key (falls back to environment variable if not specified)
            timeout_seconds: Request timeout in seconds (default: 120)
            max_tokens: Default maximum number of output tokens (default: 1024)
        """
        self.model_name = model_name
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        self.max_tokens = max_tokens

        if not self.api_key:
            raise ValueError("ANTHROPIC_API_KEY is not set")

        self.client = AsyncAnthropic(api_key=self.api_key, timeout=timeout_seconds)

    async def complete(
        self,
        messages: list[ChatMessage],
        options: CompletionOptions | None = None,
    ) -> CompletionResult:
        """
        Send chat messages and retrieve the completion

        Raises:
            ModelInvocationError: If the API call fails
        """
        options = options or CompletionOptions()
        system, conversation = split_system_messages(messages)

        kwargs = {
            "model": self.model_name,
            "max_tokens": options.max_tokens or self.max_tokens,
            "messages": [m.to_dict() for m in conversation],
        }
        if system:
            kwargs["system"] = system
        if options.temperature is not None:
            kwargs["temperature"] = options.temperature
        if options.top_p is not None:
            kwargs["top_p"] = options.top_p
        if options.stop:
            kwargs["stop_sequences"] = list(options.stop)

        start_time = time.time()
        try:
            response = await self.client.messages.create(**kwargs)
        except APIError as e:
            raise ModelInvocationError(f"Claude completion failed: {e}") from e

        text = "".join(block.text for block in response.content if getattr(block, "type", "") == "text")

        input_tokens = getattr(response.usage, "input_tokens", 0) or 0
        output_tokens = getattr(response.usage, "output_tokens", 0) or 0

        return CompletionResult(
            content=text.strip(),
            model=self.model_name,
            usage=TokenCounts(
                prompt_tokens=input_tokens,
                completion_tokens=output_tokens,
                total_tokens=input_tokens + output_tokens,
            ),
            finish_reason=response.stop_reason,
            latency_ms=elapsed_ms(start_time),
        )
