"""Vector store client and adapter layer."""

from site_indexer.db.query_executor import VectorStoreError, execute_store_call
from site_indexer.db.vector_store import ChromaVectorStore, VectorStore

__all__ = [
    "execute_store_call",
    "ChromaVectorStore",
    "VectorStore",
    "VectorStoreError",
]
