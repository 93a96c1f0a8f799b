"""Application-wide constants.

This module centralizes all magic numbers and configuration constants
to ensure a single source of truth and easier maintenance.
"""

# =============================================================================
# Chunking Configuration
# =============================================================================

# Number of whitespace-separated words per chunk
DEFAULT_CHUNK_SIZE_WORDS = 40

# Page sections that are chunked and stored, in ingestion order
CHUNK_FIELDS = ("head", "body")

# =============================================================================
# Link Classification
# =============================================================================

# href values dropped outright (homepage self-link)
IGNORED_EXACT_HREFS = frozenset(("/",))

# href prefixes dropped outright (anchors, email and phone links)
IGNORED_HREF_PREFIXES = ("#", "mailto:", "tel:")

# Literal prefix that marks an href as external
EXTERNAL_HREF_PREFIX = "http"

# =============================================================================
# HTTP Timeout Configuration
# =============================================================================

# Default timeout for page fetch requests (seconds)
DEFAULT_HTTP_TIMEOUT_SECONDS = 30.0

# Default timeout for a single embedding request (seconds)
DEFAULT_EMBEDDING_TIMEOUT_SECONDS = 30.0

# Default timeout for a single vector store call (seconds)
DEFAULT_VECTOR_STORE_TIMEOUT_SECONDS = 30.0

# =============================================================================
# Embedding Configuration
# =============================================================================

DEFAULT_EMBEDDING_MODEL = "openai:text-embedding-3-small"

# =============================================================================
# Vector Store Configuration
# =============================================================================

DEFAULT_CHROMA_HOST = "localhost"
DEFAULT_CHROMA_PORT = 8000
DEFAULT_COLLECTION_NAME = "WEB_SCRAPED_DATA_COLLECTION-1"

# =============================================================================
# Retrieval Configuration
# =============================================================================

# Default number of nearest neighbours returned for a query
DEFAULT_RETRIEVAL_TOP_K = 10
