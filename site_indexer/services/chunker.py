"""Word-count text chunking."""

from typing import List

from site_indexer.constants import CHUNK_FIELDS, DEFAULT_CHUNK_SIZE_WORDS
from site_indexer.models.page_models import Chunk, PageContent


def chunk_text(text: str | None, size: int = DEFAULT_CHUNK_SIZE_WORDS) -> List[str]:
    """
    Split text into consecutive chunks of exactly ``size`` words.

    Words are runs of non-whitespace; chunks are re-joined with single spaces,
    so original spacing is not preserved but word order and content are. The
    last chunk may be shorter.

    Returns an empty list for empty/None text or ``size <= 0``.
    """
    if not text or size <= 0:
        return []

    words = text.split()
    return [" ".join(words[i : i + size]) for i in range(0, len(words), size)]


class TextChunker:
    """Chunk the head and body of a page independently."""

    def __init__(self, size: int = DEFAULT_CHUNK_SIZE_WORDS):
        """
        Args:
            size: Words per chunk
        """
        self._size = size

    @property
    def size(self) -> int:
        return self._size

    def chunk(self, text: str | None) -> List[str]:
        return chunk_text(text, self._size)

    def chunk_page(self, url: str, page: PageContent) -> List[Chunk]:
        """All head chunks followed by all body chunks of ``page``."""
        chunks: List[Chunk] = []
        for field_name in CHUNK_FIELDS:
            for index, text in enumerate(self.chunk(getattr(page, field_name))):
                chunks.append(Chunk(url=url, field=field_name, index=index, text=text))
        return chunks
