"""Chroma client initialization."""

import chromadb
from chromadb.api import AsyncClientAPI

from site_indexer.config import Settings, get_settings


async def get_chroma_client(settings: Settings | None = None) -> AsyncClientAPI:
    """Get an async Chroma HTTP client for the configured server."""
    settings = settings or get_settings()
    headers = None
    if settings.chroma_token:
        headers = {"Authorization": f"Bearer {settings.chroma_token}"}
    return await chromadb.AsyncHttpClient(
        host=settings.chroma_host,
        port=settings.chroma_port,
        ssl=settings.chroma_ssl,
        headers=headers,
    )
