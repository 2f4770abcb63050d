"""
Vertex AI Model Client
"""

import os
import time

from google import genai
from google.genai import errors as genai_errors
from google.genai.types import GenerateContentConfig, HttpOptions

from llm_eval_core.domain.errors import ModelInvocationError
from llm_eval_core.domain.value_objects import (
    ChatMessage,
    CompletionOptions,
    CompletionResult,
    TokenCounts,
)
from llm_eval_core.infrastructure.model_clients.base import ModelClient, elapsed_ms, split_system_messages


class VertexAIClient(ModelClient):
    """Gemini models served through Vertex AI"""

    def __init__(
        self,
        model_name: str,
        project_id: str | None = None,
        location: str | None = None,
        timeout_seconds: int = 120,
    ):
        """
        Args:
            model_name: Gemini model, e.g. gemini-2.5-flash
            project_id: GCP project (GCP_PROJECT_ID when omitted)
            location: Region (defaults to "global")
            timeout_seconds: Timeout in seconds (default: 120)
        """
        self.model_name = model_name
        self.project_id = project_id or os.environ.get("GCP_PROJECT_ID")
        self.location = location or "global"
        self.timeout_seconds = timeout_seconds

        if not self.project_id:
            raise ValueError("GCP_PROJECT_ID is not set")

        # Timeout is configured via HttpOptions (milliseconds)
        self.client = genai.Client(
            vertexai=True,
            project=self.project_id,
            location=self.location,
            http_options=HttpOptions(timeout=timeout_seconds * 1000),
        )

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

        contents = [
            {"role": "model" if m.role == "assistant" else "user", "parts": [{"text": m.content}]}
            for m in conversation
        ]
        config = GenerateContentConfig(
            temperature=options.temperature,
            max_output_tokens=options.max_tokens,
            top_p=options.top_p,
            stop_sequences=list(options.stop) if options.stop else None,
            system_instruction=system,
        )

        start_time = time.time()
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model_name,
                contents=contents,
                config=config,
            )
        except genai_errors.APIError as e:
            raise ModelInvocationError(f"Vertex AI completion failed: {e}") from e

        usage = None
        if getattr(response, "usage_metadata", None):
            input_tokens = getattr(response.usage_metadata, "prompt_token_count", 0) or 0
            output_tokens = getattr(response.usage_metadata, "candidates_token_count", 0) or 0
            usage = TokenCounts(
                prompt_tokens=input_tokens,
                completion_tokens=output_tokens,
                total_tokens=input_tokens + output_tokens,
            )

        return CompletionResult(
            content=(response.text or "").strip(),
            model=self.model_name,
            usage=usage,
            latency_ms=elapsed_ms(start_time),
        )
