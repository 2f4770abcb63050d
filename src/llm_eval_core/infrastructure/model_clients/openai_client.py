"""
OpenAI (and OpenAI-compatible, e.g. LMStudio) model client
"""

import os
import time

import openai
from openai import AsyncOpenAI

from llm_eval_core.domain.errors import ModelInvocationError
from llm_eval_core.domain.value_objects import (
    ChatMessage,
    CompletionOptions,
    CompletionResult,
    TokenCounts,
)
from llm_eval_core.infrastructure.model_clients.base import ModelClient, elapsed_ms


class OpenAIClient(ModelClient):
    """Client using the OpenAI chat completions API"""

    def __init__(
        self,
        model_name: str,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout_seconds: int = 120,
    ):
        """
        Args:
            model_name: Model name (e.g. gpt-4o-mini, or lmstudio/qwen2.5-7b)
            base_url: API endpoint (defaults to the OpenAI API)
            api_key: API key (falls back to OPENAI_API_KEY if not specified)
            timeout_seconds: Request timeout in seconds (default: 120)
        """
        self.model_name = model_name
        # Strip the lmstudio/ prefix to get the model name for the API
        self.api_model_name = model_name.removeprefix("lmstudio/")
        self.base_url = base_url

        api_key = api_key or os.environ.get("OPENAI_API_KEY")
        if not api_key:
            raise ValueError("OPENAI_API_KEY is not set")

        self.client = AsyncOpenAI(base_url=base_url, api_key=api_key, timeout=timeout_seconds)

    async def complete(
        self,
        messages: list[ChatMessage],
        options: CompletionOptions | None = None,
    ) -> CompletionResult:
        """
        Send chat messages and retrieve the completion

        Raises:
            ModelInvocationError: If the API call fails or returns no content
        """
        options = options or CompletionOptions()
        kwargs = {
            "model": self.api_model_name,
            "messages": [m.to_dict() for m in messages],
            **options.to_dict(),
        }

        start_time = time.time()
        try:
            response = await self.client.chat.completions.create(**kwargs)
        except openai.OpenAIError as e:
            raise ModelInvocationError(f"OpenAI completion failed: {e}") from e

        choice = response.choices[0]
        if not choice.message.content:
            raise ModelInvocationError("OpenAI completion failed: empty completion received")

        usage = None
        if response.usage:
            usage = TokenCounts(
                prompt_tokens=response.usage.prompt_tokens or 0,
                completion_tokens=response.usage.completion_tokens or 0,
                total_tokens=response.usage.total_tokens or 0,
            )

        return CompletionResult(
            content=choice.message.content.strip(),
            model=response.model or self.model_name,
            usage=usage,
            finish_reason=choice.finish_reason,
            latency_ms=elapsed_ms(start_time),
        )
