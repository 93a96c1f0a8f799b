"""Shared pytest fixtures and configuration.

Fixture Categories:
1. Fakes: in-memory page fetcher (link graph), deterministic embedder,
   in-memory vector store
2. Factories: make_fetcher, make_page, make_ingestor
3. Infrastructure: respx_mock, mock_settings, logfire_capture
"""

import hashlib
import math
import os
from typing import Any, Dict, List, Sequence
from unittest.mock import patch

import pytest

os.environ.setdefault("LOGFIRE_IGNORE_NO_CONFIG", "1")

import logfire
import respx

from site_indexer.config import Settings
from site_indexer.db.vector_store import VectorStoreError
from site_indexer.models.page_models import PageContent
from site_indexer.services.chunker import TextChunker
from site_indexer.services.crawler import SiteIngestor
from site_indexer.services.embedding_service import EmbeddingError
from site_indexer.services.page_fetcher import FetchError


# =============================================================================
# Fakes
# =============================================================================


class FakePageFetcher:
    """PageFetcher over a fixed url -> PageContent graph. Records every fetch."""

    def __init__(self, pages: Dict[str, PageContent | Exception]):
        self.pages = pages
        self.calls: List[str] = []

    async def fetch(self, url: str) -> PageContent:
        self.calls.append(url)
        page = self.pages.get(url)
        if page is None:
            raise FetchError(f"Failed to fetch {url}: 404 Not Found")
        if isinstance(page, Exception):
            raise page
        return page


class FakeEmbedder:
    """Deterministic bag-of-words embedder; texts in ``fail_on`` raise EmbeddingError."""

    DIMENSIONS = 16

    def __init__(self, fail_on: Sequence[str] = ()):
        self.fail_on = set(fail_on)
        self.document_calls: List[str] = []
        self.query_calls: List[str] = []

    def vector(self, text: str) -> List[float]:
        vec = [0.0] * self.DIMENSIONS
        for word in text.lower().split():
            digest = hashlib.md5(word.encode()).digest()
            vec[digest[0] % self.DIMENSIONS] += 1.0
        return vec

    async def embed_document(self, text: str) -> List[float]:
        self.document_calls.append(text)
        if text in self.fail_on:
            raise EmbeddingError("Embedding failed (fake): quota exceeded")
        return self.vector(text)

    async def embed_query(self, text: str) -> List[float]:
        self.query_calls.append(text)
        if text in self.fail_on:
            raise EmbeddingError("Embedding failed (fake): quota exceeded")
        return self.vector(text)


class InMemoryVectorStore:
    """VectorStore keeping records in a dict; cosine-distance queries."""

    def __init__(self, fail_on_ids: Sequence[str] = ()):
        self.records: Dict[str, tuple[List[float], dict[str, Any]]] = {}
        self.add_calls: List[List[str]] = []
        self.fail_on_ids = set(fail_on_ids)
        self.fail_queries = False

    async def get_or_create_collection(self, name: str | None = None) -> "InMemoryVectorStore":
        return self

    async def add(self, ids, embeddings, metadatas) -> None:
        self.add_calls.append(list(ids))
        if self.fail_on_ids.intersection(ids):
            raise VectorStoreError("add failed: connection reset")
        for record_id, embedding, metadata in zip(ids, embeddings, metadatas):
            self.records[record_id] = (list(embedding), dict(metadata))

    async def query(self, query_embeddings, n_results: int):
        if self.fail_queries:
            raise VectorStoreError("query failed: connection refused")
        results = []
        for query in query_embeddings:
            ranked = sorted(
                (
                    {"id": rid, "metadata": meta, "distance": _cosine_distance(query, emb)}
                    for rid, (emb, meta) in self.records.items()
                ),
                key=lambda hit: (hit["distance"], hit["id"]),
            )
            results.append(ranked[:n_results])
        return results


def _cosine_distance(a: Sequence[float], b: Sequence[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    if not norm:
        return 1.0
    return 1.0 - dot / norm


# =============================================================================
# Factories
# =============================================================================


@pytest.fixture
def make_page():
    """Build a PageContent with body text and internal links."""

    def _make(body: str = "", head: str = "", internal=(), external=()) -> PageContent:
        return PageContent(
            head=head,
            body=body,
            internal_links=tuple(internal),
            external_links=tuple(external),
        )

    return _make


@pytest.fixture
def make_fetcher():
    def _make(pages: Dict[str, PageContent | Exception]) -> FakePageFetcher:
        return FakePageFetcher(pages)

    return _make


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def vector_store():
    return InMemoryVectorStore()


@pytest.fixture
def make_ingestor(embedder, vector_store):
    """SiteIngestor wired to fakes; override any collaborator by keyword."""

    def _make(fetcher, **kwargs) -> SiteIngestor:
        kwargs.setdefault("embedder", embedder)
        kwargs.setdefault("store", vector_store)
        kwargs.setdefault("chunker", TextChunker(40))
        return SiteIngestor(fetcher=fetcher, **kwargs)

    return _make


# =============================================================================
# Infrastructure
# =============================================================================


@pytest.fixture
def respx_mock():
    """Respx mock fixture for HTTP mocking."""
    with respx.mock:
        yield respx


@pytest.fixture
def mock_settings(monkeypatch):
    """Settings with test values, independent of any local .env file."""
    settings = Settings(
        _env_file=None,
        openai_api_key="sk-test-key",
        chroma_host="chroma.test",
        chroma_port=8001,
        chroma_collection="test-collection",
        chroma_token="chroma-secret-token",
        env="local",
        logfire_token=None,
    )
    monkeypatch.setattr("site_indexer.config.get_settings", lambda: settings)
    monkeypatch.setattr("site_indexer.services.crawler.get_settings", lambda: settings)
    monkeypatch.setattr("site_indexer.services.retriever.get_settings", lambda: settings)
    return settings


@pytest.fixture
def logfire_capture():
    """
    Capture Logfire logs for testing.

    Yields a list of (level, args, kwargs) tuples.
    """
    captured_logs = []

    original_info = logfire.info
    original_warning = logfire.warning
    original_error = logfire.error

    def capture_info(*args, **kwargs):
        captured_logs.append(("info", args, kwargs))
        return original_info(*args, **kwargs)

    def capture_warning(*args, **kwargs):
        captured_logs.append(("warning", args, kwargs))
        return original_warning(*args, **kwargs)

    def capture_error(*args, **kwargs):
        captured_logs.append(("error", args, kwargs))
        return original_error(*args, **kwargs)

    with (
        patch("logfire.info", side_effect=capture_info),
        patch("logfire.warning", side_effect=capture_warning),
        patch("logfire.error", side_effect=capture_error),
    ):
        yield captured_logs
