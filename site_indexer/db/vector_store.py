"""Vector store adapter over a Chroma collection."""

from typing import Any, List, Protocol, Sequence

import logfire
from chromadb.api import AsyncClientAPI

from site_indexer.config import Settings
from site_indexer.constants import DEFAULT_VECTOR_STORE_TIMEOUT_SECONDS
from site_indexer.db.client import get_chroma_client
from site_indexer.db.query_executor import VectorStoreError, execute_store_call


class VectorStore(Protocol):
    """Protocol for the vector store collaborator."""

    async def get_or_create_collection(self, name: str) -> Any:
        ...

    async def add(
        self,
        ids: Sequence[str],
        embeddings: Sequence[Sequence[float]],
        metadatas: Sequence[dict[str, Any]],
    ) -> None:
        ...

    async def query(
        self, query_embeddings: Sequence[Sequence[float]], n_results: int
    ) -> List[List[dict[str, Any]]]:
        ...


class ChromaVectorStore:
    """
    Store and query chunk embeddings in one named Chroma collection.

    ``add`` overwrites records with the same id (Chroma ``upsert``); Chroma's
    own ``add`` silently keeps the first record for a duplicate id.
    """

    def __init__(
        self,
        client: AsyncClientAPI,
        collection_name: str,
        timeout: float = DEFAULT_VECTOR_STORE_TIMEOUT_SECONDS,
    ):
        """
        Args:
            client: Async Chroma client
            collection_name: Collection used by ``add`` and ``query``
            timeout: Per-call timeout in seconds
        """
        self._client = client
        self._collection_name = collection_name
        self._timeout = timeout
        self._collection: Any = None

    @classmethod
    async def connect(cls, settings: Settings) -> "ChromaVectorStore":
        """Connect to the configured Chroma server and verify it responds."""
        try:
            client = await get_chroma_client(settings)
            await execute_store_call(
                "chroma_heartbeat",
                client.heartbeat(),
                timeout=settings.vector_store_timeout_seconds,
                host=settings.chroma_host,
            )
        except Exception as e:
            raise VectorStoreError(
                f"Chroma unreachable at {settings.chroma_host}:{settings.chroma_port}: {e}"
            ) from e
        logfire.info(
            "Connected to Chroma",
            host=settings.chroma_host,
            port=settings.chroma_port,
            collection=settings.chroma_collection,
        )
        return cls(
            client,
            settings.chroma_collection,
            timeout=settings.vector_store_timeout_seconds,
        )

    @property
    def collection_name(self) -> str:
        return self._collection_name

    async def get_or_create_collection(self, name: str | None = None) -> Any:
        """Return the collection handle, creating the collection if needed."""
        name = name or self._collection_name
        if self._collection is not None and name == self._collection_name:
            return self._collection
        collection = await execute_store_call(
            "chroma_get_or_create_collection",
            self._client.get_or_create_collection(name=name),
            timeout=self._timeout,
            collection=name,
        )
        if name == self._collection_name:
            self._collection = collection
        return collection

    async def add(
        self,
        ids: Sequence[str],
        embeddings: Sequence[Sequence[float]],
        metadatas: Sequence[dict[str, Any]],
    ) -> None:
        """
        Insert or overwrite records keyed by id.

        Raises:
            VectorStoreError: If the call fails or times out
        """
        collection = await self.get_or_create_collection()
        await execute_store_call(
            "chroma_add",
            collection.upsert(
                ids=list(ids),
                embeddings=[list(e) for e in embeddings],
                metadatas=[dict(m) for m in metadatas],
            ),
            timeout=self._timeout,
            collection=self._collection_name,
            record_ids=list(ids),
        )

    async def query(
        self, query_embeddings: Sequence[Sequence[float]], n_results: int
    ) -> List[List[dict[str, Any]]]:
        """
        Nearest-neighbour query.

        Returns:
            One list per query vector, ordered by similarity (nearest first),
            of ``{"id", "metadata", "distance"}`` dicts.

        Raises:
            VectorStoreError: If the call fails or times out
        """
        collection = await self.get_or_create_collection()
        raw = await execute_store_call(
            "chroma_query",
            collection.query(
                query_embeddings=[list(e) for e in query_embeddings],
                n_results=n_results,
                include=["metadatas", "distances"],
            ),
            timeout=self._timeout,
            describe=lambda r: {"result_counts": [len(ids) for ids in r.get("ids") or []]},
            collection=self._collection_name,
            n_results=n_results,
        )
        return _unpack_query_result(raw, len(query_embeddings))


def _unpack_query_result(raw: Any, query_count: int) -> List[List[dict[str, Any]]]:
    """Convert Chroma's column-wise QueryResult into per-hit dicts."""
    ids = raw.get("ids") or [[] for _ in range(query_count)]
    metadatas = raw.get("metadatas") or [[] for _ in range(query_count)]
    distances = raw.get("distances") or [[] for _ in range(query_count)]

    results: List[List[dict[str, Any]]] = []
    for q in range(query_count):
        hits = []
        q_metadatas = metadatas[q] if q < len(metadatas) and metadatas[q] else []
        q_distances = distances[q] if q < len(distances) and distances[q] else []
        for i, record_id in enumerate(ids[q] if q < len(ids) else []):
            hits.append(
                {
                    "id": record_id,
                    "metadata": dict(q_metadatas[i] or {}) if i < len(q_metadatas) else {},
                    "distance": q_distances[i] if i < len(q_distances) else None,
                }
            )
        results.append(hits)
    return results
