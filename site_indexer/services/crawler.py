"""Site ingestion: crawl internal links, chunk, embed and store each page.

The crawl is depth-first over internal links. An explicit stack replaces
recursion: children are pushed in reverse link order and the dedup/skip checks
run when a URL is popped, which yields the same visiting order as recursing
into each link in turn.
"""

import re
import time
from typing import Iterable, List, Sequence

import logfire

from site_indexer.config import Settings, get_settings
from site_indexer.constants import DEFAULT_CHUNK_SIZE_WORDS
from site_indexer.db.vector_store import ChromaVectorStore, VectorStore, VectorStoreError
from site_indexer.models.page_models import (
    Chunk,
    CrawlState,
    IngestionReport,
    RecordMetadata,
)
from site_indexer.services.chunker import TextChunker
from site_indexer.services.embedding_service import (
    EmbeddingClient,
    EmbeddingError,
    TextEmbedder,
)
from site_indexer.services.link_classifier import resolve_link
from site_indexer.services.page_fetcher import (
    FetchError,
    HttpxPageFetcher,
    PageFetcher,
    PageParser,
)


def matches_skip_pattern(url: str, patterns: Iterable[re.Pattern[str]]) -> bool:
    """True if any pattern matches anywhere in ``url``."""
    return any(pattern.search(url) for pattern in patterns)


class SiteIngestor:
    """Coordinate fetch → chunk → embed → store over a site's internal links.

    Components are injected so each collaborator can be replaced in tests.
    """

    def __init__(
        self,
        fetcher: PageFetcher,
        embedder: TextEmbedder,
        store: VectorStore,
        chunker: TextChunker | None = None,
        skip_patterns: Sequence[re.Pattern[str] | str] = (),
        max_pages: int | None = None,
    ):
        """
        Args:
            fetcher: Page fetcher/extractor
            embedder: Embedding client used for every chunk
            store: Vector store receiving one record per chunk
            chunker: Text chunker (defaults to 40-word chunks)
            skip_patterns: URLs matching any of these are never fetched
            max_pages: Optional cap on URLs taken up per session
        """
        self._fetcher = fetcher
        self._embedder = embedder
        self._store = store
        self._chunker = chunker or TextChunker(DEFAULT_CHUNK_SIZE_WORDS)
        self._skip_patterns = [
            p if isinstance(p, re.Pattern) else re.compile(p) for p in skip_patterns
        ]
        self._max_pages = max_pages

    def should_skip(self, url: str) -> bool:
        return matches_skip_pattern(url, self._skip_patterns)

    async def ingest(self, url: str, state: CrawlState | None = None) -> IngestionReport:
        """
        Ingest ``url`` and every page reachable through its internal links.

        Args:
            url: Seed URL
            state: URLs already ingested in this session. A fresh state is
                used when omitted; pass the same object to continue a session.

        Returns:
            IngestionReport with page and chunk counters
        """
        state = state if state is not None else CrawlState()
        report = IngestionReport(seed_url=url)
        start_time = time.time()
        stack: List[str] = [url]

        logfire.info("Starting ingestion", url=url, max_pages=self._max_pages)

        while stack:
            current = stack.pop()

            if current in state:
                logfire.info("Already ingested", url=current)
                report.duplicate_hits += 1
                continue

            if self.should_skip(current):
                logfire.info("Skipped URL", url=current)
                report.urls_skipped += 1
                continue

            if self._max_pages is not None and len(state) >= self._max_pages:
                logfire.warning(
                    "Page limit reached, dropping URL",
                    url=current,
                    max_pages=self._max_pages,
                )
                report.urls_dropped += 1
                continue

            state.mark_if_new(current)
            links = await self._ingest_page(current, report)

            for link in reversed(links):
                try:
                    stack.append(resolve_link(link, current))
                except ValueError as e:
                    logfire.warning(
                        "Unresolvable link", url=current, link=link, error=str(e)
                    )
                    report.links_unresolvable += 1

        logfire.info(
            "Ingestion completed",
            url=url,
            pages_ingested=report.pages_ingested,
            pages_failed=report.pages_failed,
            urls_skipped=report.urls_skipped,
            links_unresolvable=report.links_unresolvable,
            chunks_stored=report.chunks_stored,
            chunks_failed=report.chunks_failed,
            total_time_ms=(time.time() - start_time) * 1000,
        )
        return report

    async def _ingest_page(self, url: str, report: IngestionReport) -> Sequence[str]:
        """Ingest one marked URL. Returns its internal links, or () if the fetch failed."""
        with logfire.span("ingest_page", url=url):
            logfire.info("Ingesting", url=url)

            try:
                page = await self._fetcher.fetch(url)
            except FetchError as e:
                logfire.error("Page fetch failed", url=url, error=str(e))
                report.pages_failed += 1
                report.failed_urls.append(url)
                return ()

            chunks = self._chunker.chunk_page(url, page)
            for chunk in chunks:
                if await self._store_chunk(chunk):
                    report.chunks_stored += 1
                else:
                    report.chunks_failed += 1

            report.pages_ingested += 1
            logfire.info(
                "Ingesting success",
                url=url,
                chunk_count=len(chunks),
                internal_links=len(page.internal_links),
            )
            return page.internal_links

    async def _store_chunk(self, chunk: Chunk) -> bool:
        """Embed and store one chunk. Failures are logged and reported as False."""
        try:
            embedding = await self._embedder.embed_document(chunk.text)
            await self._store.add(
                ids=[chunk.record_id],
                embeddings=[embedding],
                metadatas=[RecordMetadata.from_chunk(chunk).model_dump()],
            )
        except (EmbeddingError, VectorStoreError) as e:
            logfire.error(
                "Chunk ingestion failed",
                url=chunk.url,
                field=chunk.field,
                chunk_index=chunk.index,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False
        return True


# =============================================================================
# Factory function wiring the production collaborators
# =============================================================================


async def ingest_site(
    url: str,
    settings: Settings | None = None,
    state: CrawlState | None = None,
) -> IngestionReport:
    """Ingest a site using httpx, pydantic-ai embeddings and Chroma.

    Args:
        url: Seed URL
        settings: Settings (defaults to ``get_settings()``)
        state: Optional session state to continue

    Returns:
        IngestionReport for the session

    Raises:
        VectorStoreError: If Chroma is unreachable before crawling starts
    """
    settings = settings or get_settings()
    store = await ChromaVectorStore.connect(settings)
    ingestor = SiteIngestor(
        fetcher=HttpxPageFetcher(
            timeout=settings.scraper_timeout_seconds,
            parser=PageParser(content_mode=settings.page_content_mode),
        ),
        embedder=EmbeddingClient(
            model=settings.embedding_model,
            timeout=settings.embedding_timeout_seconds,
            api_key=settings.openai_api_key,
        ),
        store=store,
        chunker=TextChunker(settings.chunk_size_words),
        skip_patterns=settings.compiled_skip_patterns(),
        max_pages=settings.max_pages,
    )
    return await ingestor.ingest(url, state)
