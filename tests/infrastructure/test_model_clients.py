"""
Tests for the model clients

Covers the create_client() factory branches and each client's request
mapping and error wrapping (provider SDKs are mocked).
"""

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

import anthropic
import openai

from llm_eval_core.domain.errors import ModelInvocationError
from llm_eval_core.domain.value_objects import ChatMessage, CompletionOptions
from llm_eval_core.harness_config import HarnessConfig
from llm_eval_core.infrastructure.model_clients.base import split_system_messages
from llm_eval_core.infrastructure.model_clients.claude import ClaudeClient
from llm_eval_core.infrastructure.model_clients.factory import create_client, detect_provider
from llm_eval_core.infrastructure.model_clients.openai_client import OpenAIClient
from llm_eval_core.infrastructure.model_clients.vertex_ai import VertexAIClient

MESSAGES = [
    ChatMessage(role="system", content="Answer briefly."),
    ChatMessage(role="user", content="What is 2+2?"),
]


class TestSplitSystemMessages:
    def test_splits_system(self):
        system, rest = split_system_messages(MESSAGES)
        assert system == "Answer briefly."
        assert [m.role for m in rest] == ["user"]

    def test_no_system(self):
        system, rest = split_system_messages(MESSAGES[1:])
        assert system is None
        assert len(rest) == 1


class TestDetectProvider:
    @pytest.mark.parametrize("model, provider", [
        ("lmstudio/qwen2.5-7b", "lmstudio"),
        ("claude-sonnet-4-5-20250929", "anthropic"),
        ("gemini-2.5-flash", "google"),
        ("gpt-4o-mini", "openai"),
    ])
    def test_detect(self, model, provider):
        assert detect_provider(model) == provider


class TestCreateClient:
    """Tests for the create_client() factory"""

    @patch.dict("os.environ", {"GCP_PROJECT_ID": "test-project"})
    @patch("llm_eval_core.infrastructure.model_clients.vertex_ai.genai.Client")
    def test_gemini_model_returns_vertex_ai_client(self, mock_genai_client):
        client = create_client("gemini-2.5-flash", HarnessConfig())
        assert isinstance(client, VertexAIClient)
        assert mock_genai_client.call_args.kwargs["vertexai"] is True

    @patch.dict("os.environ", {"ANTHROPIC_API_KEY": "test-key"})
    def test_claude_model_returns_claude_client(self):
        client = create_client("claude-sonnet-4-5-20250929", HarnessConfig())
        assert isinstance(client, ClaudeClient)

    @patch.dict("os.environ", {"OPENAI_API_KEY": "test-key"})
    def test_gpt_model_returns_openai_client(self):
        client = create_client("gpt-4o-mini", HarnessConfig())
        assert isinstance(client, OpenAIClient)
        assert client.base_url is None

    def test_lmstudio_model_uses_configured_base_url(self):
        config = HarnessConfig()
        config.lmstudio.base_url = "http://custom:5678/v1"
        client = create_client("lmstudio/qwen2.5-7b", config)
        assert isinstance(client, OpenAIClient)
        assert client.base_url == "http://custom:5678/v1"
        assert client.api_model_name == "qwen2.5-7b"
        assert client.get_model() == "lmstudio/qwen2.5-7b"

    @patch.dict("os.environ", {}, clear=True)
    def test_missing_api_key_raises(self):
        with pytest.raises(ValueError, match="ANTHROPIC_API_KEY"):
            ClaudeClient("claude-haiku-4-5-20251001")


class TestClaudeClient:
    def _client(self):
        return ClaudeClient("claude-haiku-4-5-20251001", api_key="test-key")

    @pytest.mark.asyncio
    async def test_complete_maps_system_and_usage(self):
        client = self._client()
        response = MagicMock()
        response.content = [MagicMock(type="text", text=" 4 ")]
        response.usage = MagicMock(input_tokens=12, output_tokens=3)
        response.stop_reason = "end_turn"
        client.client.messages.create = AsyncMock(return_value=response)

        result = await client.complete(MESSAGES, CompletionOptions(temperature=0.0, max_tokens=20))

        kwargs = client.client.messages.create.call_args.kwargs
        assert kwargs["system"] == "Answer briefly."
        assert kwargs["messages"] == [{"role": "user", "content": "What is 2+2?"}]
        assert kwargs["max_tokens"] == 20
        assert result.content == "4"
        assert result.usage.total_tokens == 15
        assert result.finish_reason == "end_turn"
        assert result.latency_ms is not None

    @pytest.mark.asyncio
    async def test_api_error_is_wrapped(self):
        client = self._client()
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        client.client.messages.create = AsyncMock(side_effect=anthropic.APIConnectionError(request=request))

        with pytest.raises(ModelInvocationError, match="Claude completion failed"):
            await client.complete(MESSAGES)


class TestOpenAIClient:
    def _response(self, content="hello"):
        response = MagicMock()
        response.choices = [MagicMock(message=MagicMock(content=content), finish_reason="stop")]
        response.usage = MagicMock(prompt_tokens=7, completion_tokens=2, total_tokens=9)
        response.model = "gpt-4o-mini"
        return response

    @pytest.mark.asyncio
    async def test_complete_passes_options(self):
        client = OpenAIClient("gpt-4o-mini", api_key="test-key")
        client.client.chat.completions.create = AsyncMock(return_value=self._response())

        result = await client.complete(MESSAGES, CompletionOptions(temperature=0.2, top_p=0.9))

        kwargs = client.client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["temperature"] == 0.2
        assert kwargs["top_p"] == 0.9
        assert "max_tokens" not in kwargs
        assert kwargs["messages"][0] == {"role": "system", "content": "Answer briefly."}
        assert result.content == "hello"
        assert result.usage.total_tokens == 9

    @pytest.mark.asyncio
    async def test_lmstudio_prefix_stripped(self):
        client = OpenAIClient("lmstudio/qwen2.5-7b", base_url="http://localhost:1234/v1", api_key="lm-studio")
        client.client.chat.completions.create = AsyncMock(return_value=self._response())

        await client.complete(MESSAGES)

        assert client.client.chat.completions.create.call_args.kwargs["model"] == "qwen2.5-7b"

    @pytest.mark.asyncio
    async def test_empty_content_raises(self):
        client = OpenAIClient("gpt-4o-mini", api_key="test-key")
        client.client.chat.completions.create = AsyncMock(return_value=self._response(content=""))

        with pytest.raises(ModelInvocationError, match="empty completion"):
            await client.complete(MESSAGES)

    @pytest.mark.asyncio
    async def test_api_error_is_wrapped(self):
        client = OpenAIClient("gpt-4o-mini", api_key="test-key")
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        client.client.chat.completions.create = AsyncMock(side_effect=openai.APIConnectionError(request=request))

        with pytest.raises(ModelInvocationError, match="OpenAI completion failed"):
            await client.complete(MESSAGES)


class TestVertexAIClient:
    @pytest.mark.asyncio
    @patch("llm_eval_core.infrastructure.model_clients.vertex_ai.genai.Client")
    async def test_complete_maps_roles_and_system(self, mock_genai_client):
        response = MagicMock(text=" Paris ")
        response.usage_metadata = MagicMock(prompt_token_count=4, candidates_token_count=6)
        mock_genai_client.return_value.aio.models.generate_content = AsyncMock(return_value=response)

        client = VertexAIClient("gemini-2.5-flash", project_id="test-project")
        messages = MESSAGES + [
            ChatMessage(role="assistant", content="4"),
            ChatMessage(role="user", content="And the capital of France?"),
        ]
        result = await client.complete(messages, CompletionOptions(temperature=0.0, max_tokens=32))

        kwargs = mock_genai_client.return_value.aio.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-2.5-flash"
        assert [c["role"] for c in kwargs["contents"]] == ["user", "model", "user"]
        assert kwargs["config"].system_instruction == "Answer briefly."
        assert kwargs["config"].max_output_tokens == 32
        assert result.content == "Paris"
        assert result.usage.total_tokens == 10

    @patch.dict("os.environ", {}, clear=True)
    def test_missing_project_raises(self):
        with pytest.raises(ValueError, match="GCP_PROJECT_ID"):
            VertexAIClient("gemini-2.5-flash")
