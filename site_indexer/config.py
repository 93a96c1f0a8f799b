"""Application configuration using Pydantic BaseSettings."""

import re
from functools import lru_cache
from typing import Literal

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from site_indexer.constants import (
    DEFAULT_CHROMA_HOST,
    DEFAULT_CHROMA_PORT,
    DEFAULT_CHUNK_SIZE_WORDS,
    DEFAULT_COLLECTION_NAME,
    DEFAULT_EMBEDDING_MODEL,
    DEFAULT_EMBEDDING_TIMEOUT_SECONDS,
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    DEFAULT_RETRIEVAL_TOP_K,
    DEFAULT_VECTOR_STORE_TIMEOUT_SECONDS,
)


class ConfigurationError(RuntimeError):
    """Raised when settings are missing or invalid. Fatal at startup."""


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        # Later files override earlier ones, so .env.local takes precedence
        env_file=[".env", ".env.local"],
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Embedding (via pydantic-ai)
    openai_api_key: str = Field(
        ..., min_length=1, description="OpenAI API key used by the embedding model"
    )
    embedding_model: str = Field(
        default=DEFAULT_EMBEDDING_MODEL,
        description="pydantic-ai embedding model (e.g. openai:text-embedding-3-small)",
    )
    embedding_timeout_seconds: float = Field(
        default=DEFAULT_EMBEDDING_TIMEOUT_SECONDS,
        gt=0,
        description="Timeout for a single embedding call (seconds)",
    )

    # Chroma vector store
    chroma_host: str = Field(default=DEFAULT_CHROMA_HOST)
    chroma_port: int = Field(default=DEFAULT_CHROMA_PORT)
    chroma_ssl: bool = Field(default=False)
    chroma_token: str | None = Field(
        default=None, description="Bearer token for an authenticated Chroma server"
    )
    chroma_collection: str = Field(
        default=DEFAULT_COLLECTION_NAME,
        description="Collection holding the page chunk embeddings",
    )
    vector_store_timeout_seconds: float = Field(
        default=DEFAULT_VECTOR_STORE_TIMEOUT_SECONDS,
        gt=0,
        description="Timeout for a single vector store call (seconds)",
    )

    # Crawling
    scraper_timeout_seconds: float = Field(
        default=DEFAULT_HTTP_TIMEOUT_SECONDS,
        gt=0,
        description="HTTP timeout for page fetches (seconds)",
    )
    chunk_size_words: int = Field(
        default=DEFAULT_CHUNK_SIZE_WORDS,
        description="Words per chunk; values <= 0 produce no chunks",
    )
    skip_url_patterns: list[str] = Field(
        default_factory=list,
        description="Regular expressions; matching URLs are never fetched",
    )
    max_pages: int | None = Field(
        default=None,
        ge=1,
        description="Optional cap on pages ingested per session (None = unlimited)",
    )
    page_content_mode: Literal["markup", "text"] = Field(
        default="markup",
        description="Chunk raw head/body markup, or visible text only",
    )

    # Retrieval
    retrieval_top_k: int = Field(default=DEFAULT_RETRIEVAL_TOP_K, ge=1)

    # Environment
    env: Literal["local", "prod"] = Field(
        default="local", description="Current environment"
    )
    log_level: str = Field(default="INFO")
    logfire_token: str | None = Field(
        default=None, description="Pydantic Logfire token (optional)"
    )

    @field_validator("skip_url_patterns")
    @classmethod
    def _validate_patterns(cls, patterns: list[str]) -> list[str]:
        for pattern in patterns:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"Invalid skip pattern {pattern!r}: {e}") from e
        return patterns

    def compiled_skip_patterns(self) -> list[re.Pattern[str]]:
        """Compile ``skip_url_patterns`` for the crawler."""
        return [re.compile(p) for p in self.skip_url_patterns]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def load_settings() -> Settings:
    """
    Load settings, converting validation failures into ConfigurationError.

    Call once at startup, before any crawling or querying begins.

    Raises:
        ConfigurationError: If required values (e.g. OPENAI_API_KEY) are
            missing or any value is invalid.
    """
    try:
        return get_settings()
    except ValidationError as e:
        fields = ", ".join(
            ".".join(str(part) for part in err["loc"]) or "settings"
            for err in e.errors()
        )
        raise ConfigurationError(f"Invalid configuration ({fields}): {e}") from e
