"""
Tests for health_check.py

Tests for the model, grader and embeddings probes with scripted fakes.
"""

import pytest

from llm_eval_core.domain.errors import ModelInvocationError
from llm_eval_core.use_cases.health_check import (
    HEALTH_CHECK_PROMPT,
    health_check_all_models,
    health_check_embeddings,
    health_check_model,
    run_grader_health_check,
)


class TestHealthCheckModel:
    @pytest.mark.asyncio
    async def test_success(self, make_client):
        client = make_client(["OK"])
        result = await health_check_model("gpt-4o-mini", lambda name: client)

        assert result.success is True
        assert result.error is None
        assert result.latency_ms is not None
        assert client.calls[0][0][0].content == HEALTH_CHECK_PROMPT

    @pytest.mark.asyncio
    async def test_completion_failure(self, make_client):
        client = make_client([ModelInvocationError("unauthorized")])
        result = await health_check_model("gpt-4o-mini", lambda name: client)

        assert result.success is False
        assert result.latency_ms is None
        assert result.error == "unauthorized"

    @pytest.mark.asyncio
    async def test_client_creation_failure(self):
        def create_client_fn(name):
            raise ValueError("OPENAI_API_KEY is not set")

        result = await health_check_model("gpt-4o-mini", create_client_fn)
        assert result.success is False
        assert "OPENAI_API_KEY" in result.error

    @pytest.mark.asyncio
    async def test_empty_reply_is_failure(self, make_client):
        result = await health_check_model("gpt-4o-mini", lambda name: make_client([""]))
        assert result.success is False
        assert "empty response" in result.error


class TestHealthCheckAllModels:
    @pytest.mark.asyncio
    async def test_filters_available(self, make_client):
        clients = {
            "good": make_client(["OK"]),
            "bad": make_client([ModelInvocationError("down")]),
        }
        available, results = await health_check_all_models(["good", "bad"], lambda name: clients[name])

        assert available == ["good"]
        assert [r.model_name for r in results] == ["good", "bad"]
        assert results[1].success is False


class TestRunGraderHealthCheck:
    @pytest.mark.asyncio
    async def test_success(self, make_client):
        assert await run_grader_health_check("gpt-4o-mini", lambda name: make_client(["OK"])) == (True, None)

    @pytest.mark.asyncio
    async def test_empty_response(self, make_client):
        ok, error = await run_grader_health_check("gpt-4o-mini", lambda name: make_client([""]))
        assert ok is False
        assert "empty response" in error

    @pytest.mark.asyncio
    async def test_failure_message(self, make_client):
        ok, error = await run_grader_health_check(
            "claude-haiku-4-5-20251001", lambda name: make_client([ModelInvocationError("401")])
        )
        assert ok is False
        assert "health check failed" in error
        assert "ANTHROPIC_API_KEY" in error


class TestHealthCheckEmbeddings:
    @pytest.mark.asyncio
    async def test_success(self, make_embeddings):
        provider = make_embeddings({HEALTH_CHECK_PROMPT: [1.0, 0.0]}, model="all-MiniLM-L6-v2")
        result = await health_check_embeddings(provider)

        assert result.success is True
        assert result.model_name == "all-MiniLM-L6-v2"
        assert result.latency_ms is not None

    @pytest.mark.asyncio
    async def test_provider_error(self, make_embeddings):
        provider = make_embeddings({}, error=RuntimeError("model not downloaded"))
        result = await health_check_embeddings(provider)

        assert result.success is False
        assert result.latency_ms is None
        assert result.error == "model not downloaded"

    @pytest.mark.asyncio
    async def test_empty_vector(self, make_embeddings):
        result = await health_check_embeddings(make_embeddings({HEALTH_CHECK_PROMPT: []}))
        assert result.success is False
        assert "empty embedding" in result.error
