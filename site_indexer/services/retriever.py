"""Query-time retrieval of source URLs by embedding similarity."""

from typing import List

import logfire

from site_indexer.config import Settings, get_settings
from site_indexer.constants import CHUNK_FIELDS, DEFAULT_RETRIEVAL_TOP_K
from site_indexer.db.vector_store import ChromaVectorStore, VectorStore
from site_indexer.models.page_models import RetrievedChunk
from site_indexer.services.embedding_service import EmbeddingClient, TextEmbedder


class Retriever:
    """Embed a query and map its nearest stored chunks back to source URLs.

    Embedding and store failures propagate unchanged; there are no partial
    results.
    """

    def __init__(self, embedder: TextEmbedder, store: VectorStore):
        self._embedder = embedder
        self._store = store

    async def search(
        self, query: str, k: int = DEFAULT_RETRIEVAL_TOP_K
    ) -> List[RetrievedChunk]:
        """
        Return the ``k`` nearest chunks to ``query`` in similarity rank order.

        Raises:
            EmbeddingError: If the query cannot be embedded
            VectorStoreError: If the store query fails
        """
        if not query or not query.strip() or k <= 0:
            return []

        with logfire.span("retrieval_search", k=k):
            embedding = await self._embedder.embed_query(query)
            results = await self._store.query(query_embeddings=[embedding], n_results=k)

        hits = results[0] if results else []
        return [_to_retrieved_chunk(hit) for hit in hits[:k]]

    async def retrieve(
        self,
        query: str,
        k: int = DEFAULT_RETRIEVAL_TOP_K,
        unique: bool = False,
    ) -> List[str]:
        """
        Source URLs of the ``k`` nearest chunks, nearest first.

        Empty or missing URLs are dropped. Several chunks of one page can rank
        in the top ``k``, so URLs may repeat unless ``unique`` is set, in which
        case each URL is kept at its best rank.
        """
        hits = await self.search(query, k)
        urls = [hit.url for hit in hits if hit.url and hit.url.strip()]
        if unique:
            urls = list(dict.fromkeys(urls))

        logfire.info(
            "Retrieval completed",
            k=k,
            hit_count=len(hits),
            url_count=len(urls),
            unique=unique,
        )
        return urls


def _to_retrieved_chunk(hit: dict) -> RetrievedChunk:
    metadata = hit.get("metadata") or {}
    field = next((f for f in CHUNK_FIELDS if metadata.get(f)), None)
    return RetrievedChunk(
        id=str(hit.get("id", "")),
        url=metadata.get("url") or "",
        field=field,
        text=metadata.get(field, "") if field else "",
        distance=hit.get("distance"),
    )


# =============================================================================
# Factory function wiring the production collaborators
# =============================================================================


async def build_retriever(settings: Settings | None = None) -> Retriever:
    """Retriever backed by pydantic-ai embeddings and the configured Chroma collection."""
    settings = settings or get_settings()
    store = await ChromaVectorStore.connect(settings)
    embedder = EmbeddingClient(
        model=settings.embedding_model,
        timeout=settings.embedding_timeout_seconds,
        api_key=settings.openai_api_key,
    )
    return Retriever(embedder, store)
