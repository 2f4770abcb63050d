"""Shared fakes for model clients and embeddings providers"""

import pytest

from llm_eval_core.domain.value_objects import (
    ChatMessage,
    CompletionOptions,
    CompletionResult,
    EvalSample,
    TokenCounts,
)
from llm_eval_core.infrastructure.embeddings import EmbeddingsProvider
from llm_eval_core.infrastructure.model_clients.base import ModelClient


class FakeModelClient(ModelClient):
    """
    Model client returning scripted replies

    Each call consumes the next reply; the last reply is repeated. A reply
    that is an exception instance is raised instead.
    """

    def __init__(self, replies=("OK",), model_name="fake-model", usage=TokenCounts(10, 5, 15)):
        self.model_name = model_name
        self._replies = list(replies)
        self._usage = usage
        self.calls: list[tuple[list[ChatMessage], CompletionOptions | None]] = []

    async def complete(self, messages, options=None):
        self.calls.append((messages, options))
        reply = self._replies.pop(0) if len(self._replies) > 1 else self._replies[0]
        if isinstance(reply, Exception):
            raise reply
        return CompletionResult(content=reply, model=self.model_name, usage=self._usage, finish_reason="stop")


class FakeEmbeddingsProvider(EmbeddingsProvider):
    """Embeddings provider returning fixed vectors per text"""

    def __init__(self, vectors: dict[str, list[float]], model="fake-embedder", error: Exception | None = None):
        self.vectors = vectors
        self.model = model
        self.error = error
        self.batches: list[list[str]] = []

    async def embed(self, text):
        return (await self.embed_batch([text]))[0]

    async def embed_batch(self, texts):
        self.batches.append(list(texts))
        if self.error is not None:
            raise self.error
        return [self.vectors[t] for t in texts]

    def get_model(self):
        return self.model


@pytest.fixture
def make_client():
    return FakeModelClient


@pytest.fixture
def make_embeddings():
    return FakeEmbeddingsProvider


@pytest.fixture
def make_sample():
    def _make(question="What is 2+2?", ideal="4", system=None, metadata=None):
        messages = []
        if system is not None:
            messages.append(ChatMessage(role="system", content=system))
        messages.append(ChatMessage(role="user", content=question))
        return EvalSample(input=messages, ideal=ideal, metadata=metadata or {})

    return _make


@pytest.fixture
def completion():
    def _make(content="4", usage=TokenCounts(10, 5, 15), latency_ms=100, cached=False):
        return CompletionResult(content=content, model="fake-model", usage=usage, latency_ms=latency_ms, cached=cached)

    return _make
