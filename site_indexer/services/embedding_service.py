"""Embedding generation via pydantic-ai."""

import asyncio
from typing import List, Protocol

import logfire
from pydantic_ai import Embedder
from pydantic_ai.embeddings.openai import OpenAIEmbeddingModel
from pydantic_ai.providers.openai import OpenAIProvider

from site_indexer.constants import (
    DEFAULT_EMBEDDING_MODEL,
    DEFAULT_EMBEDDING_TIMEOUT_SECONDS,
)


class EmbeddingError(RuntimeError):
    """Raised when the embedding service fails, times out or returns nothing."""


class TextEmbedder(Protocol):
    """Protocol for turning text into a fixed-length vector."""

    async def embed_document(self, text: str) -> List[float]:
        ...

    async def embed_query(self, text: str) -> List[float]:
        ...


class EmbeddingClient:
    """
    Embed chunk and query text with a pydantic-ai Embedder.

    One request per call; callers await each call before issuing the next.
    """

    def __init__(
        self,
        model: str = DEFAULT_EMBEDDING_MODEL,
        timeout: float = DEFAULT_EMBEDDING_TIMEOUT_SECONDS,
        api_key: str | None = None,
    ):
        """
        Args:
            model: pydantic-ai embedding model (e.g. openai:text-embedding-3-small)
            timeout: Per-call timeout in seconds
            api_key: OpenAI API key for ``openai:`` models. When omitted the
                provider reads OPENAI_API_KEY from the environment.
        """
        self._model = model
        self._timeout = timeout
        self._api_key = api_key
        self._embedder: Embedder | None = None

    @property
    def model(self) -> str:
        return self._model

    def _get_embedder(self) -> Embedder:
        if self._embedder is None:
            provider_name, _, model_name = self._model.partition(":")
            if self._api_key and provider_name == "openai" and model_name:
                model = OpenAIEmbeddingModel(
                    model_name, provider=OpenAIProvider(api_key=self._api_key)
                )
                self._embedder = Embedder(model)
            else:
                self._embedder = Embedder(self._model)
        return self._embedder

    async def embed_document(self, text: str) -> List[float]:
        """
        Embed one chunk of page content.

        Raises:
            EmbeddingError: If the call fails, times out or returns no vector
        """
        with logfire.span("embedding_document", model=self._model, chars=len(text)):
            return await self._embed(text, query=False)

    async def embed_query(self, text: str) -> List[float]:
        """
        Embed a search query.

        Raises:
            EmbeddingError: If the call fails, times out or returns no vector
        """
        with logfire.span("embedding_query", model=self._model):
            return await self._embed(text, query=True)

    async def _embed(self, text: str, query: bool) -> List[float]:
        try:
            embedder = self._get_embedder()
            if query:
                call = embedder.embed_query(text)
            else:
                call = embedder.embed_documents([text])
            result = await asyncio.wait_for(call, timeout=self._timeout)
        except asyncio.TimeoutError as e:
            raise EmbeddingError(
                f"Embedding timed out after {self._timeout}s ({self._model})"
            ) from e
        except Exception as e:
            raise EmbeddingError(f"Embedding failed ({self._model}): {e}") from e

        if not result.embeddings:
            raise EmbeddingError(f"Embedding returned no vectors ({self._model})")
        return list(result.embeddings[0])
