"""
Embeddings providers and semantic similarity service

Wraps text-to-vector providers and memoizes embeddings within a run so that
identical texts are embedded only once per embedding model.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
from abc import ABC, abstractmethod

import numpy as np
import openai
from openai import AsyncOpenAI

from llm_eval_core.domain.errors import ConfigurationError, GradingError

logger = logging.getLogger(__name__)


class EmbeddingsProvider(ABC):
    """Abstract base class for embeddings providers"""

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """Embed a single text"""
        pass

    @abstractmethod
    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed several texts, preserving order"""
        pass

    @abstractmethod
    def get_model(self) -> str:
        """Identifier of the embedding model"""
        pass


class OpenAIEmbeddingsProvider(EmbeddingsProvider):
    """Embeddings through the OpenAI embeddings API"""

    def __init__(self, model: str = "text-embedding-3-small", api_key: str | None = None):
        self.model = model
        api_key = api_key or os.environ.get("OPENAI_API_KEY")
        if not api_key:
            raise ValueError("OPENAI_API_KEY is not set")
        self.client = AsyncOpenAI(api_key=api_key)

    async def embed(self, text: str) -> list[float]:
        vectors = await self.embed_batch([text])
        return vectors[0]

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        try:
            response = await self.client.embeddings.create(model=self.model, input=texts)
        except openai.OpenAIError as e:
            raise GradingError(f"OpenAI embedding failed: {e}") from e
        # The API may return items out of order; sort by index
        items = sorted(response.data, key=lambda item: item.index)
        return [list(item.embedding) for item in items]

    def get_model(self) -> str:
        return self.model


class LocalEmbeddingsProvider(EmbeddingsProvider):
    """Embeddings computed locally with sentence-transformers"""

    def __init__(self, model: str = "all-MiniLM-L6-v2"):
        """
        Args:
            model: HuggingFace model for sentence embeddings

        Requires the "local" extra (sentence-transformers).
        """
        from sentence_transformers import SentenceTransformer

        self.model = model
        self._encoder = SentenceTransformer(model)

    async def embed(self, text: str) -> list[float]:
        vectors = await self.embed_batch([text])
        return vectors[0]

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        # encode() is CPU bound; keep the event loop free
        vectors = await asyncio.to_thread(self._encoder.encode, texts)
        return [list(map(float, v)) for v in vectors]

    def get_model(self) -> str:
        return self.model


def create_embeddings_provider(provider: str = "openai", model: str | None = None) -> EmbeddingsProvider:
    """
    Create an embeddings provider

    Args:
        provider: "openai" or "local"
        model: Embedding model (provider default if not specified)

    Returns:
        EmbeddingsProvider

    Raises:
        ConfigurationError: When the provider is unknown
    """
    name = provider.lower()
    if name == "openai":
        return OpenAIEmbeddingsProvider(model) if model else OpenAIEmbeddingsProvider()
    if name == "local":
        return LocalEmbeddingsProvider(model) if model else LocalEmbeddingsProvider()
    raise ConfigurationError(f"Unknown embeddings provider: {provider} (available: ['openai', 'local'])")


def cosine_similarity(vector_a: list[float], vector_b: list[float]) -> float:
    """
    Cosine similarity between two vectors

    Returns 0.0 when either vector has zero magnitude.

    Raises:
        ValueError: When the vectors have different dimensions
    """
    a = np.asarray(vector_a, dtype=float)
    b = np.asarray(vector_b, dtype=float)
    if a.shape != b.shape:
        raise ValueError("Vectors must have the same dimension")
    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.dot(a, b) / (norm_a * norm_b))


def normalize_for_embedding(text: str) -> str:
    """Collapse whitespace and strip (memo key normalization)"""
    return re.sub(r"\s+", " ", text).strip()


class SemanticSimilarityService:
    """
    Similarity calculations with in-process embedding memoization

    Embeddings are memoized by (embedding model id, normalized text).
    """

    def __init__(self, provider: EmbeddingsProvider):
        self.provider = provider
        self._cache: dict[tuple[str, str], list[float]] = {}

    def _key(self, text: str) -> tuple[str, str]:
        return (self.provider.get_model(), normalize_for_embedding(text))

    async def embeddings_for(self, texts: list[str]) -> list[list[float]]:
        """
        Embeddings for texts, calling the provider only for texts not seen yet

        Args:
            texts: Texts to embed

        Returns:
            Vectors in the same order as texts
        """
        missing: list[str] = []
        for text in texts:
            key = self._key(text)
            if key not in self._cache and key[1] not in missing:
                missing.append(key[1])

        if missing:
            vectors = await self.provider.embed_batch(missing)
            if len(vectors) != len(missing):
                raise GradingError(
                    f"Embeddings provider returned {len(vectors)} vectors for {len(missing)} texts"
                )
            model = self.provider.get_model()
            for text, vector in zip(missing, vectors):
                self._cache[(model, text)] = vector

        return [self._cache[self._key(text)] for text in texts]

    async def similarities(self, text: str, candidates: list[str]) -> list[float]:
        """Cosine similarity of text against each candidate"""
        vectors = await self.embeddings_for([text, *candidates])
        base, others = vectors[0], vectors[1:]
        return [cosine_similarity(base, other) for other in others]

    async def calculate_similarity(self, text_a: str, text_b: str) -> float:
        """Cosine similarity between two texts"""
        (similarity,) = await self.similarities(text_a, [text_b])
        return similarity

    async def best_match(self, text: str, candidates: list[str]) -> tuple[str, float, list[float]]:
        """
        Candidate most similar to text

        Returns:
            (best candidate, best similarity, all similarities)

        Raises:
            ValueError: When candidates is empty
        """
        if not candidates:
            raise ValueError("candidates must not be empty")
        sims = await self.similarities(text, candidates)
        best_index = int(np.argmax(sims))
        return candidates[best_index], sims[best_index], sims

    async def precompute(self, texts: list[str], batch_size: int = 10) -> None:
        """Warm the memo for texts in batches"""
        unique = list(dict.fromkeys(texts))
        for i in range(0, len(unique), batch_size):
            await self.embeddings_for(unique[i:i + batch_size])

    def clear_cache(self) -> None:
        self._cache.clear()

    def cache_stats(self) -> dict:
        return {"size": len(self._cache), "keys": [text for _, text in self._cache]}
