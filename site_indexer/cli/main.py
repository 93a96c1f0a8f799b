"""Typer CLI: ingest a site, then query it."""

import os

os.environ.setdefault("LOGFIRE_IGNORE_NO_CONFIG", "1")

from pathlib import Path

from dotenv import load_dotenv

# pydantic-ai reads provider keys (OPENAI_API_KEY) from the process environment
_project_root = Path(__file__).resolve().parent.parent.parent
load_dotenv(_project_root / ".env")
load_dotenv(_project_root / ".env.local")

import asyncio
from typing import List, Optional

import typer

from site_indexer.config import ConfigurationError, Settings, load_settings
from site_indexer.db.vector_store import VectorStoreError
from site_indexer.logging_config import setup_logfire
from site_indexer.services.crawler import ingest_site
from site_indexer.services.embedding_service import EmbeddingError
from site_indexer.services.retriever import build_retriever

app = typer.Typer(help="Crawl a website into a vector store and query it.")


def _startup(**overrides) -> Settings:
    """Load and validate settings, apply CLI overrides, configure logging."""
    try:
        settings = load_settings()
        if overrides:
            settings = Settings.model_validate(
                {**settings.model_dump(), **overrides}
            )
    except ConfigurationError as e:
        typer.echo(f"✗ Configuration error: {e}", err=True)
        raise typer.Exit(1)
    except ValueError as e:
        typer.echo(f"✗ Invalid option: {e}", err=True)
        raise typer.Exit(1)
    setup_logfire(settings)
    return settings


def _run_async(coro):
    """Run a coroutine on a fresh event loop, cancelling leftovers on exit."""
    loop = asyncio.new_event_loop()
    try:
        asyncio.set_event_loop(loop)
        return loop.run_until_complete(coro)
    finally:
        try:
            pending = [task for task in asyncio.all_tasks(loop) if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
            loop.run_until_complete(loop.shutdown_asyncgens())
        finally:
            loop.close()
            asyncio.set_event_loop(None)


@app.command()
def ingest(
    url: str = typer.Argument(..., help="Seed URL to start crawling from"),
    skip_pattern: List[str] = typer.Option(
        [], "--skip-pattern", "-s", help="Regex; matching URLs are never fetched"
    ),
    max_pages: Optional[int] = typer.Option(
        None, "--max-pages", help="Stop after this many pages"
    ),
    chunk_size: Optional[int] = typer.Option(
        None, "--chunk-size", help="Words per chunk"
    ),
):
    """Crawl URL and its internal links, storing chunk embeddings."""
    overrides: dict = {}
    if skip_pattern:
        overrides["skip_url_patterns"] = list(skip_pattern)
    if max_pages is not None:
        overrides["max_pages"] = max_pages
    if chunk_size is not None:
        overrides["chunk_size_words"] = chunk_size
    settings = _startup(**overrides)

    typer.echo(f"Ingesting {url}...")
    try:
        report = _run_async(ingest_site(url, settings))
    except VectorStoreError as e:
        typer.echo(f"✗ Vector store error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(
        f"✓ Ingested {report.pages_ingested} pages "
        f"({report.chunks_stored} chunks stored)"
    )
    if report.urls_skipped:
        typer.echo(f"  Skipped {report.urls_skipped} URLs matching skip patterns")
    if report.urls_dropped:
        typer.echo(f"  Dropped {report.urls_dropped} URLs after the page limit")
    if report.links_unresolvable:
        typer.echo(f"  Ignored {report.links_unresolvable} unresolvable links")
    if report.chunks_failed:
        typer.echo(f"  {report.chunks_failed} chunks failed to embed or store", err=True)
    for failed in report.failed_urls:
        typer.echo(f"  ✗ Failed to fetch {failed}", err=True)


@app.command()
def query(
    text: str = typer.Argument(..., help="Natural-language query"),
    k: Optional[int] = typer.Option(
        None, "--top-k", "-k", min=1, help="Number of nearest chunks"
    ),
    unique: bool = typer.Option(False, "--unique", help="Drop repeated URLs"),
    show_chunks: bool = typer.Option(
        False, "--show-chunks", help="Print the matching chunk text"
    ),
):
    """Print the source URLs most relevant to TEXT, best first."""
    settings = _startup()
    top_k = k or settings.retrieval_top_k

    async def _query():
        retriever = await build_retriever(settings)
        if show_chunks:
            return await retriever.search(text, top_k)
        return await retriever.retrieve(text, top_k, unique=unique)

    try:
        results = _run_async(_query())
    except (EmbeddingError, VectorStoreError) as e:
        typer.echo(f"✗ Query failed: {e}", err=True)
        raise typer.Exit(1)

    if not results:
        typer.echo("No results.")
        return

    if show_chunks:
        seen: set[str] = set()
        printed = 0
        for hit in results:
            if not hit.url or (unique and hit.url in seen):
                continue
            seen.add(hit.url)
            printed += 1
            typer.echo(f"{printed}. {hit.url} [{hit.field}] {hit.text[:200]}")
        return

    for rank, url in enumerate(results, start=1):
        typer.echo(f"{rank}. {url}")


if __name__ == "__main__":
    app()
