"""Models for crawling, chunking, storage records and retrieval hits."""

from dataclasses import dataclass, field
from typing import List, Literal

from pydantic import BaseModel, Field, model_validator

ChunkField = Literal["head", "body"]


@dataclass(frozen=True)
class PageContent:
    """Structured content of one fetched page."""

    head: str
    body: str
    internal_links: tuple[str, ...] = ()
    external_links: tuple[str, ...] = ()


@dataclass(frozen=True)
class ClassifiedLinks:
    """Internal/external partition of a page's hrefs, deduplicated, in document order."""

    internal: tuple[str, ...]
    external: tuple[str, ...]


@dataclass(frozen=True)
class Chunk:
    """A bounded-size slice of one page field."""

    url: str
    field: ChunkField
    index: int
    text: str

    @property
    def record_id(self) -> str:
        """Composite store id, unique per (url, field, index)."""
        return build_record_id(self.url, self.field, self.index)


def build_record_id(url: str, field: ChunkField, index: int) -> str:
    """Build the vector store id for a chunk: ``{url}#{field}-{index}``."""
    return f"{url}#{field}-{index}"


class CrawlState:
    """
    Session-scoped set of URLs already taken up for ingestion.

    Insert-only and never persisted. ``mark_if_new`` is the single
    check-and-insert operation the crawler uses, so dedup stays correct if
    traversal is ever parallelized on one event loop.
    """

    def __init__(self) -> None:
        self._urls: set[str] = set()

    def __contains__(self, url: object) -> bool:
        return url in self._urls

    def __len__(self) -> int:
        return len(self._urls)

    def mark_if_new(self, url: str) -> bool:
        """Mark ``url`` as ingested. Returns False if it was already marked."""
        if url in self._urls:
            return False
        self._urls.add(url)
        return True

    @property
    def urls(self) -> frozenset[str]:
        return frozenset(self._urls)


@dataclass
class IngestionReport:
    """Counters for one ingestion session."""

    seed_url: str
    pages_ingested: int = 0
    pages_failed: int = 0
    urls_skipped: int = 0
    duplicate_hits: int = 0
    urls_dropped: int = 0
    links_unresolvable: int = 0
    chunks_stored: int = 0
    chunks_failed: int = 0
    failed_urls: List[str] = field(default_factory=list)


class RecordMetadata(BaseModel):
    """Metadata stored with each chunk embedding.

    Exactly one of ``head``/``body`` carries the chunk text; the other is "".
    """

    url: str = Field(..., min_length=1, description="Source page URL")
    head: str = Field(default="", description="Head chunk text")
    body: str = Field(default="", description="Body chunk text")

    @model_validator(mode="after")
    def _one_field_populated(self) -> "RecordMetadata":
        if bool(self.head) == bool(self.body):
            raise ValueError("exactly one of head/body must be populated")
        return self

    @classmethod
    def from_chunk(cls, chunk: Chunk) -> "RecordMetadata":
        return cls(url=chunk.url, **{chunk.field: chunk.text})


@dataclass(frozen=True)
class RetrievedChunk:
    """One nearest-neighbour hit returned by the vector store."""

    id: str
    url: str
    field: ChunkField | None
    text: str
    distance: float | None = None
